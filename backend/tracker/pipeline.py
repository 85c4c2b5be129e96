"""
Score synchronization pipeline.

One pass walks every tracked character in store order:
Blizzard rating -> exact-equality check -> Raider.IO profile -> merge ->
persist -> announce -> cooldown. Characters are processed strictly one at a
time; the cooldown after each attempted update is what keeps request volume
to both providers bounded.
"""
from __future__ import annotations

import asyncio
import enum
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from shared.errors import StoreError
from shared.models.domain import Character
from shared.utils.logging import bind_pass_id, clear_pass_id, get_logger
from shared.utils.metrics import CHARACTER_OUTCOMES, PASS_DURATION, SYNC_PASSES, atrack_latency

from providers.base import ProfileProvider, RatingProvider
from providers.raiderio import current_season
from tracker.messages import build_score_update_message
from tracker.notifier import Notifier
from tracker.store import CharacterStore

logger = get_logger(__name__)

DEFAULT_COOLDOWN_S = 0.25

Sleep = Callable[[float], Awaitable[None]]


class CharacterOutcome(str, enum.Enum):
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    NOTIFY_FAILED = "notify_failed"
    FAILED = "failed"


@dataclass
class PassResult:
    checked: int = 0
    unchanged: int = 0
    updated: int = 0
    notify_failed: int = 0
    failed: int = 0
    cancelled: bool = False


class SyncPipeline:
    """Reconciles stored scores against both providers; overlapping passes are not serialized here."""

    def __init__(
        self,
        store: CharacterStore,
        ratings: RatingProvider,
        profiles: ProfileProvider,
        notifier: Notifier,
        sleep: Sleep = asyncio.sleep,
        cooldown_s: float = DEFAULT_COOLDOWN_S,
    ) -> None:
        self._store = store
        self._ratings = ratings
        self._profiles = profiles
        self._notifier = notifier
        self._sleep = sleep
        self._cooldown_s = cooldown_s

    async def run_pass(self, channel_id: str, stop_event: Optional[asyncio.Event] = None) -> PassResult:
        """
        Run one full pass.

        Raises:
            StoreError: the character listing failed; nothing else was attempted.
        """
        bind_pass_id()
        try:
            return await self._run_pass(channel_id, stop_event)
        finally:
            clear_pass_id()

    async def _run_pass(self, channel_id: str, stop_event: Optional[asyncio.Event]) -> PassResult:
        logger.info("sync_pass_started")
        async with atrack_latency(PASS_DURATION):
            try:
                characters = await self._store.list_characters(0)
            except Exception as exc:
                SYNC_PASSES.labels(outcome="list_failed").inc()
                logger.error("sync_pass_list_failed", error=str(exc))
                raise StoreError(f"failed to list characters: {exc}") from exc

            result = PassResult()
            for index, character in enumerate(characters):
                if stop_event is not None and stop_event.is_set():
                    result.cancelled = True
                    logger.info("sync_pass_cancelled", remaining=len(characters) - index)
                    break

                result.checked += 1
                outcome = await self._sync_isolated(channel_id, character)
                CHARACTER_OUTCOMES.labels(outcome=outcome.value).inc()

                if outcome is CharacterOutcome.FAILED:
                    result.failed += 1
                    continue
                if outcome is CharacterOutcome.UNCHANGED:
                    result.unchanged += 1
                    continue

                result.updated += 1
                if outcome is CharacterOutcome.NOTIFY_FAILED:
                    result.notify_failed += 1
                await self._sleep(self._cooldown_s)

        SYNC_PASSES.labels(outcome="cancelled" if result.cancelled else "completed").inc()
        logger.info(
            "sync_pass_finished",
            checked=result.checked,
            updated=result.updated,
            unchanged=result.unchanged,
            failed=result.failed,
            notify_failed=result.notify_failed,
        )
        return result

    async def _sync_isolated(self, channel_id: str, character: Character) -> CharacterOutcome:
        try:
            return await self._sync_character(channel_id, character)
        except Exception as exc:
            logger.error(
                "character_sync_failed",
                character=character.name,
                realm=character.realm,
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return CharacterOutcome.FAILED

    async def _sync_character(self, channel_id: str, character: Character) -> CharacterOutcome:
        rating = (await self._ratings.fetch_rating(character.realm, character.name)).rating

        # Exact comparison; a season reset to any new value counts as a change.
        if rating == character.overall_score:
            logger.debug("character_unchanged", character=character.name, realm=character.realm, score=rating)
            return CharacterOutcome.UNCHANGED

        profile = await self._profiles.fetch_profile(character.realm, character.name)
        season = current_season(profile)

        old_score = character.overall_score
        merged = character.model_copy(update={
            "overall_score": rating,
            "tank_score": season.scores.tank,
            "heal_score": season.scores.healer,
            "dps_score": season.scores.dps,
        })
        await self._store.update_character(merged)
        logger.info(
            "character_score_updated",
            character=merged.name,
            realm=merged.realm,
            old_score=old_score,
            new_score=rating,
        )

        try:
            await self._notifier.send_rich(channel_id, build_score_update_message(merged, profile, old_score))
        except Exception as exc:
            logger.warning(
                "character_notify_failed",
                character=merged.name,
                realm=merged.realm,
                error=str(exc),
            )
            return CharacterOutcome.NOTIFY_FAILED
        return CharacterOutcome.UPDATED
