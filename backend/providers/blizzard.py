"""
Blizzard Game Data/Profile API connector.
Fetches the authoritative Mythic+ rating for a single character.
"""
from __future__ import annotations

from urllib.parse import quote

from shared.config import Settings, get_settings
from shared.models.domain import RatingProfile
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger

from providers.auth import CredentialCache, TimeSource
from providers.base import HTTPProvider, RatingProvider

logger = get_logger(__name__)

PROVIDER_NAME = "blizzard"


class BlizzardClient(HTTPProvider, RatingProvider):
    """Mythic keystone profile client; one bearer-authenticated GET per call, no retries."""

    def __init__(
        self,
        credentials: CredentialCache,
        http_client: ProviderHTTPClient,
        namespace: str = "profile-us",
        locale: str = "en_US",
    ) -> None:
        super().__init__(http_client)
        self._credentials = credentials
        self._namespace = namespace
        self._locale = locale

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        clock: TimeSource | None = None,
        http_client: ProviderHTTPClient | None = None,
    ) -> "BlizzardClient":
        settings = settings or get_settings()
        http_client = http_client or ProviderHTTPClient(
            PROVIDER_NAME, base_url=settings.blizzard_api_url, timeout_s=settings.provider_request_timeout_s
        )
        credentials = CredentialCache(
            client_id=settings.blizzard_client_id,
            client_secret=settings.blizzard_client_secret,
            token_url=settings.blizzard_oauth_url,
            http_client=http_client,
            clock=clock,
        )
        return cls(credentials, http_client, namespace=settings.blizzard_namespace)

    async def fetch_rating(self, realm: str, name: str) -> RatingProfile:
        token = await self._credentials.ensure_valid()

        realm = realm.lower()
        name = name.lower()
        logger.debug("fetching_mythic_profile", character=name, realm=realm)

        path = f"/profile/wow/character/{quote(realm)}/{quote(name)}/mythic-keystone-profile"
        resp = await self._get(
            path,
            params={"namespace": self._namespace, "locale": self._locale},
            headers={"Authorization": f"Bearer {token}"},
        )
        return self._decode(resp, RatingProfile)
