"""
Raider.IO connector.
Fetches per-role scores, ranks and recent runs for a single character.

docs: https://raider.io/api#/character/getApiV1CharactersProfile
"""
from __future__ import annotations

from typing import Optional

from shared.config import Settings, get_settings
from shared.models.domain import RaiderIOProfile, Run, SeasonScores
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

from providers.base import HTTPProvider, ProfileProvider

logger = get_logger(__name__)

PROVIDER_NAME = "raiderio"
PROFILE_FIELDS = "mythic_plus_scores_by_season:current,mythic_plus_ranks,mythic_plus_recent_runs"


class RaiderIOClient(HTTPProvider, ProfileProvider):
    """Character profile client; the API key travels in the query string."""

    def __init__(self, access_key: str, http_client: ProviderHTTPClient, region: str = "us") -> None:
        super().__init__(http_client)
        self._access_key = access_key
        self._region = region

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        http_client: ProviderHTTPClient | None = None,
    ) -> "RaiderIOClient":
        settings = settings or get_settings()
        http_client = http_client or ProviderHTTPClient(
            PROVIDER_NAME, base_url=settings.raiderio_api_url, timeout_s=settings.provider_request_timeout_s
        )
        return cls(settings.raiderio_access_key, http_client, region=settings.blizzard_region)

    async def fetch_profile(self, realm: str, name: str) -> RaiderIOProfile:
        logger.debug("fetching_raiderio_profile", character=name, realm=realm)
        resp = await self._get(
            "/api/v1/characters/profile",
            params={
                "access_key": self._access_key,
                "region": self._region,
                "realm": realm,
                "name": name,
                "fields": PROFILE_FIELDS,
            },
        )
        return self._decode(resp, RaiderIOProfile)


def current_season(profile: RaiderIOProfile) -> SeasonScores:
    """First season breakdown, or an all-zero season when none was returned."""
    if profile.mythic_plus_scores_by_season:
        return profile.mythic_plus_scores_by_season[0]
    return SeasonScores()


def latest_run(profile: RaiderIOProfile) -> Optional[Run]:
    """Most recently completed run; input order is not trusted and ties keep the first seen."""
    latest: Optional[Run] = None
    for run in profile.mythic_plus_recent_runs:
        if latest is None or run.completed_at > latest.completed_at:
            latest = run
    return latest
