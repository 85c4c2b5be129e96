"""
Tracked-character management: add, remove, list.
"""
from __future__ import annotations

from shared.errors import StoreError
from shared.models.domain import Character, format_name, format_realm
from shared.utils.logging import get_logger

from providers.base import ProfileProvider, RatingProvider
from providers.raiderio import current_season
from tracker.store import SQLCharacterStore

logger = get_logger(__name__)


class CharacterService:
    def __init__(self, store: SQLCharacterStore, ratings: RatingProvider, profiles: ProfileProvider) -> None:
        self._store = store
        self._ratings = ratings
        self._profiles = profiles

    async def add_character(self, name: str, realm: str) -> Character:
        """Look the character up on both providers and start tracking it."""
        name = format_name(name)
        realm = format_realm(realm)
        if await self._store.character_exists(name, realm):
            raise StoreError(f"{name}-{realm} is already tracked")

        rating = await self._ratings.fetch_rating(realm, name)
        profile = await self._profiles.fetch_profile(realm, name)
        season = current_season(profile)

        character = Character(
            id=rating.character.id,
            name=name,
            realm=rating.character.realm.slug or realm,
            class_name=profile.class_name,
            overall_score=rating.rating,
            tank_score=season.scores.tank,
            heal_score=season.scores.healer,
            dps_score=season.scores.dps,
        )
        await self._store.insert_character(character)
        logger.info("character_added", character=character.name, realm=character.realm, score=character.overall_score)
        return character

    async def remove_character(self, name: str, realm: str) -> bool:
        name = format_name(name)
        realm = format_realm(realm)
        removed = await self._store.delete_character(name, realm)
        if removed:
            logger.info("character_removed", character=name, realm=realm)
        else:
            logger.warning("character_remove_missing", character=name, realm=realm)
        return removed

    async def list_characters(self, limit: int = 10) -> list[Character]:
        return await self._store.list_characters(limit)
