"""
OAuth client-credentials token cache for the Blizzard API.

The cache owns exactly one bearer token and its expiry. Tokens are refreshed
proactively once they are within EXPIRY_BUFFER of expiring; a failed refresh
leaves the previous credential in place.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

import httpx
from pydantic import BaseModel, ValidationError

from shared.errors import CredentialRefreshFailed, NotConfigured
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import TOKEN_REFRESHES

logger = get_logger(__name__)

EXPIRY_BUFFER = timedelta(minutes=5)


class TimeSource(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Wall-clock time source (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Credential:
    token: str
    expires_at: datetime


class TokenResponse(BaseModel):
    access_token: str
    expires_in: int
    token_type: str = "bearer"
    scope: str = ""


class CredentialCache:
    """Holds a client-credentials bearer token and refreshes it when stale."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str,
        http_client: ProviderHTTPClient,
        clock: TimeSource | None = None,
    ) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._http = http_client
        self._clock = clock or SystemClock()
        self._credential: Optional[Credential] = None
        self._lock = asyncio.Lock()

    @property
    def credential(self) -> Optional[Credential]:
        return self._credential

    def _is_stale(self) -> bool:
        cred = self._credential
        if cred is None or not cred.token:
            return True
        return self._clock.now() + EXPIRY_BUFFER >= cred.expires_at

    async def ensure_valid(self) -> str:
        """
        Return a bearer token that is valid for at least EXPIRY_BUFFER.

        Raises:
            NotConfigured: client id or secret is empty.
            CredentialRefreshFailed: the token exchange failed.
        """
        if not self._client_id or not self._client_secret:
            raise NotConfigured("blizzard client id and secret are required")

        async with self._lock:
            if self._is_stale():
                self._credential = await self._refresh()
            return self._credential.token

    async def _refresh(self) -> Credential:
        logger.debug("credential_refresh_started")
        try:
            resp = await self._http.post(
                self._token_url,
                data={"grant_type": "client_credentials"},
                auth=(self._client_id, self._client_secret),
            )
        except httpx.HTTPError as exc:
            TOKEN_REFRESHES.labels(outcome="transport_error").inc()
            raise CredentialRefreshFailed(f"failed to make request: {exc}") from exc

        if resp.status_code != httpx.codes.OK:
            TOKEN_REFRESHES.labels(outcome="bad_status").inc()
            raise CredentialRefreshFailed(f"failed to get bearer token: status {resp.status_code}")

        try:
            body = TokenResponse.model_validate_json(resp.content)
        except ValidationError as exc:
            TOKEN_REFRESHES.labels(outcome="decode_error").inc()
            raise CredentialRefreshFailed(f"failed to parse response: {exc}") from exc

        credential = Credential(
            token=body.access_token,
            expires_at=self._clock.now() + timedelta(seconds=body.expires_in),
        )
        TOKEN_REFRESHES.labels(outcome="ok").inc()
        logger.debug("credential_refreshed", expires_at=credential.expires_at.isoformat())
        return credential
