"""
Unit tests for the client-credentials token cache.

Run: pytest backend/tests/test_credential_cache.py -v
"""
from __future__ import annotations

import asyncio
import base64
import json
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs

import httpx
import pytest

from providers.auth import Credential, CredentialCache
from shared.errors import CredentialRefreshFailed, NotConfigured
from shared.utils.http_client import ProviderHTTPClient

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
TOKEN_URL = "https://oauth.example.test/token"


class FakeClock:
    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current


class TokenServer:
    """MockTransport handler that hands out numbered tokens."""

    def __init__(self, status: int = 200, body: str | None = None) -> None:
        self.status = status
        self.body = body
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.body is not None:
            return httpx.Response(self.status, content=self.body.encode())
        payload = {"access_token": f"token-{len(self.requests)}", "token_type": "bearer", "expires_in": 3600}
        return httpx.Response(self.status, json=payload)


async def _cache(handler, clock: FakeClock, client_id: str = "id", secret: str = "secret") -> CredentialCache:
    http = ProviderHTTPClient("blizzard", timeout_s=5.0, transport=httpx.MockTransport(handler))
    await http.start()
    return CredentialCache(client_id, secret, TOKEN_URL, http, clock=clock)


@pytest.mark.asyncio
async def test_first_use_fetches_token_with_basic_auth() -> None:
    server = TokenServer()
    clock = FakeClock(T0)
    cache = await _cache(server, clock)

    token = await cache.ensure_valid()

    assert token == "token-1"
    assert len(server.requests) == 1
    req = server.requests[0]
    assert req.method == "POST"
    assert str(req.url) == TOKEN_URL
    expected = base64.b64encode(b"id:secret").decode()
    assert req.headers["Authorization"] == f"Basic {expected}"
    assert parse_qs(req.content.decode()) == {"grant_type": ["client_credentials"]}
    assert cache.credential == Credential("token-1", T0 + timedelta(seconds=3600))


@pytest.mark.asyncio
async def test_token_reused_before_buffer() -> None:
    server = TokenServer()
    clock = FakeClock(T0)
    cache = await _cache(server, clock)
    await cache.ensure_valid()

    clock.current = T0 + timedelta(seconds=3000)
    token = await cache.ensure_valid()

    assert token == "token-1"
    assert len(server.requests) == 1


@pytest.mark.asyncio
async def test_token_refreshed_once_at_buffer_boundary() -> None:
    server = TokenServer()
    clock = FakeClock(T0)
    cache = await _cache(server, clock)
    await cache.ensure_valid()

    clock.current = T0 + timedelta(seconds=3300)
    assert await cache.ensure_valid() == "token-2"
    assert await cache.ensure_valid() == "token-2"

    assert len(server.requests) == 2
    assert cache.credential.expires_at == T0 + timedelta(seconds=3300 + 3600)


@pytest.mark.asyncio
async def test_token_refreshed_after_boundary() -> None:
    server = TokenServer()
    clock = FakeClock(T0)
    cache = await _cache(server, clock)
    await cache.ensure_valid()

    clock.current = T0 + timedelta(seconds=3500)
    assert await cache.ensure_valid() == "token-2"
    assert len(server.requests) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("client_id,secret", [("", "secret"), ("id", "")])
async def test_missing_credentials_not_configured(client_id: str, secret: str) -> None:
    server = TokenServer()
    cache = await _cache(server, FakeClock(T0), client_id=client_id, secret=secret)

    with pytest.raises(NotConfigured):
        await cache.ensure_valid()
    assert server.requests == []


@pytest.mark.asyncio
async def test_bad_status_keeps_previous_credential() -> None:
    server = TokenServer()
    clock = FakeClock(T0)
    cache = await _cache(server, clock)
    await cache.ensure_valid()
    previous = cache.credential

    server.status = 503
    server.body = "unavailable"
    clock.current = T0 + timedelta(seconds=3400)
    with pytest.raises(CredentialRefreshFailed):
        await cache.ensure_valid()

    assert cache.credential is previous


@pytest.mark.asyncio
async def test_undecodable_body_fails_refresh() -> None:
    server = TokenServer(body=json.dumps({"token_type": "bearer"}))
    cache = await _cache(server, FakeClock(T0))

    with pytest.raises(CredentialRefreshFailed):
        await cache.ensure_valid()
    assert cache.credential is None


@pytest.mark.asyncio
async def test_transport_error_fails_refresh() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    cache = await _cache(handler, FakeClock(T0))

    with pytest.raises(CredentialRefreshFailed):
        await cache.ensure_valid()


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_refresh() -> None:
    requests: list[httpx.Request] = []

    async def slow_token_endpoint(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        await asyncio.sleep(0.05)
        return httpx.Response(200, json={"access_token": "shared", "expires_in": 3600})

    cache = await _cache(slow_token_endpoint, FakeClock(T0))

    tokens = await asyncio.gather(*(cache.ensure_valid() for _ in range(5)))

    assert tokens == ["shared"] * 5
    assert len(requests) == 1
