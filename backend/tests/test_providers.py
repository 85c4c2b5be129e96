"""
Unit tests for the Blizzard and Raider.IO clients, plus season/run selection.
"""
from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest

from providers.auth import CredentialCache
from providers.blizzard import BlizzardClient
from providers.raiderio import RaiderIOClient, current_season, latest_run
from shared.errors import CredentialRefreshFailed, DecodeError, ProviderError
from shared.models.domain import RaiderIOProfile, Run
from shared.utils.http_client import ProviderHTTPClient

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)

MYTHIC_PROFILE = {
    "current_mythic_rating": {
        "color": {"r": 1.0, "g": 0.5, "b": 0.0, "a": 1.0},
        "rating": 2500.5,
    },
    "character": {"name": "Testchar", "id": 123, "realm": {"id": 456, "slug": "test-realm"}},
}

RAIDERIO_PROFILE = {
    "name": "Testchar",
    "race": "Orc",
    "class": "Death Knight",
    "realm": "Test Realm",
    "thumbnail_url": "https://render.example/thumb.jpg",
    "profile_url": "https://raider.io/characters/us/test-realm/Testchar",
    "mythic_plus_scores_by_season": [
        {"season": "season-tww-2", "scores": {"all": 2500.5, "dps": 2400.0, "healer": 0, "tank": 2450.25}},
        {"season": "season-tww-1", "scores": {"all": 3000.0, "dps": 3000.0, "healer": 0, "tank": 0}},
    ],
    "mythic_plus_ranks": {
        "overall": {"world": 1000, "region": 500, "realm": 10},
        "tank": {"world": 800, "region": 400, "realm": 5},
        "dps": {"world": 9000, "region": 4000, "realm": 50},
    },
    "mythic_plus_recent_runs": [],
    "gear": {"item_level_equipped": 640},
}


class FixedClock:
    def now(self) -> datetime:
        return T0


def _blizzard_handler(profile_status: int = 200, profile_body: str | None = None, calls: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if request.url.path == "/token":
            return httpx.Response(200, json={"access_token": "bearer-1", "expires_in": 3600})
        body = profile_body if profile_body is not None else json.dumps(MYTHIC_PROFILE)
        return httpx.Response(profile_status, content=body.encode())
    return handler


async def _blizzard(handler, client_id: str = "id") -> BlizzardClient:
    http = ProviderHTTPClient(
        "blizzard", base_url="https://api.example.test", timeout_s=5.0, transport=httpx.MockTransport(handler)
    )
    await http.start()
    creds = CredentialCache(client_id, "secret", "https://oauth.example.test/token", http, clock=FixedClock())
    return BlizzardClient(creds, http, namespace="profile-us")


async def _raiderio(handler) -> RaiderIOClient:
    http = ProviderHTTPClient(
        "raiderio", base_url="https://raider.example.test", timeout_s=5.0, transport=httpx.MockTransport(handler)
    )
    await http.start()
    return RaiderIOClient("rio-key", http, region="us")


# ── BlizzardClient.fetch_rating ─────────────────────────────────────────

@pytest.mark.asyncio
async def test_fetch_rating_lowercases_and_authenticates() -> None:
    calls: list[httpx.Request] = []
    client = await _blizzard(_blizzard_handler(calls=calls))

    profile = await client.fetch_rating("Test-Realm", "TestChar")

    assert profile.rating == 2500.5
    assert profile.character.id == 123
    assert profile.character.realm.slug == "test-realm"
    token_req, profile_req = calls
    assert token_req.url.path == "/token"
    assert profile_req.url.path == "/profile/wow/character/test-realm/testchar/mythic-keystone-profile"
    assert profile_req.url.params["namespace"] == "profile-us"
    assert profile_req.url.params["locale"] == "en_US"
    assert profile_req.headers["Authorization"] == "Bearer bearer-1"


@pytest.mark.asyncio
async def test_fetch_rating_reuses_token_across_calls() -> None:
    calls: list[httpx.Request] = []
    client = await _blizzard(_blizzard_handler(calls=calls))

    await client.fetch_rating("realm", "one")
    await client.fetch_rating("realm", "two")

    assert [c.url.path for c in calls].count("/token") == 1


@pytest.mark.asyncio
async def test_fetch_rating_non_200_is_provider_error() -> None:
    client = await _blizzard(_blizzard_handler(profile_status=404, profile_body="{}"))

    with pytest.raises(ProviderError) as info:
        await client.fetch_rating("realm", "missing")
    assert info.value.status == 404
    assert info.value.provider == "blizzard"


@pytest.mark.asyncio
async def test_fetch_rating_malformed_body_is_decode_error() -> None:
    client = await _blizzard(_blizzard_handler(profile_body="<html>not json</html>"))

    with pytest.raises(DecodeError):
        await client.fetch_rating("realm", "char")


@pytest.mark.asyncio
async def test_fetch_rating_without_rating_decodes_as_zero() -> None:
    body = json.dumps({"character": MYTHIC_PROFILE["character"]})
    client = await _blizzard(_blizzard_handler(profile_body=body))

    profile = await client.fetch_rating("realm", "char")
    assert profile.rating == 0.0


@pytest.mark.asyncio
async def test_fetch_rating_propagates_credential_failure() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(401, content=b"unauthorized")

    client = await _blizzard(handler)

    with pytest.raises(CredentialRefreshFailed):
        await client.fetch_rating("realm", "char")
    assert len(calls) == 1


# ── RaiderIOClient.fetch_profile ────────────────────────────────────────

@pytest.mark.asyncio
async def test_fetch_profile_query_and_decode() -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=RAIDERIO_PROFILE)

    client = await _raiderio(handler)
    profile = await client.fetch_profile("test-realm", "Testchar")

    params = calls[0].url.params
    assert calls[0].url.path == "/api/v1/characters/profile"
    assert params["access_key"] == "rio-key"
    assert params["region"] == "us"
    assert params["realm"] == "test-realm"
    assert params["name"] == "Testchar"
    assert "mythic_plus_recent_runs" in params["fields"]
    assert "Authorization" not in calls[0].headers
    assert profile.class_name == "Death Knight"
    assert profile.mythic_plus_ranks.overall.realm == 10
    assert profile.mythic_plus_ranks.healer.world == 0


@pytest.mark.asyncio
async def test_fetch_profile_bad_status() -> None:
    client = await _raiderio(lambda request: httpx.Response(500, content=b"oops"))

    with pytest.raises(ProviderError) as info:
        await client.fetch_profile("realm", "char")
    assert info.value.status == 500
    assert info.value.provider == "raiderio"


@pytest.mark.asyncio
async def test_fetch_profile_malformed_body() -> None:
    client = await _raiderio(lambda request: httpx.Response(200, content=b'{"mythic_plus_scores_by_season": 5}'))

    with pytest.raises(DecodeError):
        await client.fetch_profile("realm", "char")


@pytest.mark.asyncio
async def test_fetch_profile_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    client = await _raiderio(handler)

    with pytest.raises(ProviderError) as info:
        await client.fetch_profile("realm", "char")
    assert info.value.status is None


# ── Season and run selection ────────────────────────────────────────────

def test_current_season_is_first_element() -> None:
    profile = RaiderIOProfile.model_validate(RAIDERIO_PROFILE)
    season = current_season(profile)
    assert season.season == "season-tww-2"
    assert season.scores.tank == 2450.25


def test_current_season_missing_is_zero() -> None:
    season = current_season(RaiderIOProfile())
    assert (season.scores.tank, season.scores.healer, season.scores.dps) == (0, 0, 0)


def test_latest_run_ignores_input_order() -> None:
    runs = [
        Run(dungeon="Older", completed_at=T0 - timedelta(hours=2)),
        Run(dungeon="Latest", completed_at=T0),
        Run(dungeon="Old", completed_at=T0 - timedelta(hours=1)),
    ]
    profile = RaiderIOProfile(mythic_plus_recent_runs=runs)

    assert latest_run(profile).dungeon == "Latest"


def test_latest_run_tie_keeps_first_seen() -> None:
    runs = [
        Run(dungeon="First", completed_at=T0),
        Run(dungeon="Second", completed_at=T0),
    ]
    assert latest_run(RaiderIOProfile(mythic_plus_recent_runs=runs)).dungeon == "First"


def test_latest_run_none_without_runs() -> None:
    assert latest_run(RaiderIOProfile()) is None


def test_run_completed_at_parsed_from_provider_json() -> None:
    profile = RaiderIOProfile.model_validate({
        "mythic_plus_recent_runs": [
            {"dungeon": "A", "completed_at": "2025-03-01T10:00:00.000Z"},
            {"dungeon": "B", "completed_at": "2025-03-01T11:30:00.000Z"},
        ]
    })
    assert latest_run(profile).dungeon == "B"


def test_naive_completed_at_treated_as_utc() -> None:
    profile = RaiderIOProfile.model_validate({
        "mythic_plus_recent_runs": [
            {"dungeon": "Naive", "completed_at": "2024-01-01T00:00:00"},
            {"dungeon": "Aware", "completed_at": "2024-01-02T00:00:00Z"},
        ]
    })

    assert profile.mythic_plus_recent_runs[0].completed_at.tzinfo is not None
    assert latest_run(profile).dungeon == "Aware"


def test_unrendered_payload_fields_dropped() -> None:
    profile = RaiderIOProfile.model_validate({
        "mythic_plus_ranks": {
            "overall": {"world": 1, "region": 1, "realm": 1},
            "class_dps": {"world": 2, "region": 2, "realm": 2},
        },
        "mythic_plus_recent_runs": [
            {"dungeon": "A", "keystone_run_id": 99, "clear_time_ms": 1800000, "par_time_ms": 2100000},
        ],
    })

    assert set(profile.mythic_plus_ranks.model_dump()) == {"overall", "tank", "healer", "dps"}
    run = profile.mythic_plus_recent_runs[0]
    assert run.dungeon == "A"
    assert not {"keystone_run_id", "clear_time_ms", "par_time_ms"} & set(run.model_dump())
