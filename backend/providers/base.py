"""
Abstract contracts for score providers.
The sync pipeline depends only on these; tests substitute doubles.
"""
from __future__ import annotations

import abc

import httpx
from pydantic import BaseModel, ValidationError

from shared.errors import DecodeError, ProviderError
from shared.models.domain import RaiderIOProfile, RatingProfile
from shared.utils.http_client import ProviderHTTPClient


class RatingProvider(abc.ABC):
    """Authoritative overall rating source."""

    @abc.abstractmethod
    async def fetch_rating(self, realm: str, name: str) -> RatingProfile:
        ...


class ProfileProvider(abc.ABC):
    """Supplementary role scores, ranks and recent runs."""

    @abc.abstractmethod
    async def fetch_profile(self, realm: str, name: str) -> RaiderIOProfile:
        ...


class HTTPProvider:
    """Shared lifecycle and response decoding for HTTP-backed providers."""

    def __init__(self, http_client: ProviderHTTPClient) -> None:
        self._http = http_client

    @property
    def name(self) -> str:
        return self._http.provider

    async def start(self) -> None:
        await self._http.start()

    async def close(self) -> None:
        await self._http.close()

    async def _get(self, path: str, **kwargs) -> httpx.Response:
        try:
            return await self._http.get(path, **kwargs)
        except httpx.HTTPError as exc:
            raise ProviderError(self.name, None, f"failed to send request: {exc}") from exc

    def _decode(self, resp: httpx.Response, model: type[BaseModel]):
        if resp.status_code != httpx.codes.OK:
            raise ProviderError(self.name, resp.status_code)
        try:
            return model.model_validate_json(resp.content)
        except ValidationError as exc:
            raise DecodeError(f"{self.name}: failed to decode response: {exc}") from exc
