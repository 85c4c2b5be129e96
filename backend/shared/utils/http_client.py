"""
Async HTTP client wrapper for provider requests.
Single attempt per call; records metrics and logs each request.
"""
from __future__ import annotations

import time
from typing import Any, Optional

import httpx

from shared.config import get_settings
from shared.utils.logging import get_logger
from shared.utils.metrics import PROVIDER_LATENCY, PROVIDER_REQUESTS

logger = get_logger(__name__)


class ProviderHTTPClient:
    """
    Async HTTP client tailored for score provider APIs.
    Callers inspect the status code themselves; transport errors propagate as httpx errors.
    """

    def __init__(
        self,
        provider_name: str,
        base_url: str = "",
        headers: dict[str, str] | None = None,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._provider = provider_name
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_s or get_settings().provider_request_timeout_s
        self._default_headers = headers or {}
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def provider(self) -> str:
        return self._provider

    @property
    def timeout_s(self) -> float:
        return self._timeout

    async def start(self) -> None:
        """Initialize the underlying httpx client."""
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._default_headers,
            timeout=httpx.Timeout(self._timeout, connect=5.0),
            follow_redirects=True,
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform one request with metrics and structured logging.

        Raises:
            RuntimeError: If start() was not called.
            httpx.HTTPError: On transport failure (timeouts, connection errors).
        """
        if not self._client:
            raise RuntimeError("ProviderHTTPClient not started. Call start() first.")

        start_time = time.perf_counter()
        status = "error"
        try:
            kwargs: dict[str, Any] = {"params": params, "data": data, "json": json, "headers": headers}
            if auth is not None:
                kwargs["auth"] = auth
            resp = await self._client.request(method, path, **kwargs)
            status = str(resp.status_code)
            logger.debug(
                "provider_request_complete",
                provider=self._provider,
                method=method,
                path=path,
                status=resp.status_code,
                latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            return resp
        except httpx.TimeoutException:
            status = "timeout"
            logger.warning("provider_timeout", provider=self._provider, path=path)
            raise
        except httpx.HTTPError as exc:
            logger.warning("provider_request_error", provider=self._provider, path=path, error=str(exc))
            raise
        finally:
            PROVIDER_REQUESTS.labels(provider=self._provider, status=status).inc()
            PROVIDER_LATENCY.labels(provider=self._provider).observe(time.perf_counter() - start_time)

    async def get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        return await self.request("GET", path, params=params, headers=headers)

    async def post(
        self,
        path: str,
        data: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
    ) -> httpx.Response:
        return await self.request("POST", path, data=data, json=json, headers=headers, auth=auth)
