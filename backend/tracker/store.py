"""
Character store: persisted set of tracked characters keyed by name+realm.
"""
from __future__ import annotations

import abc
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from shared.errors import StoreError
from shared.models.domain import Character
from shared.models.orm import CharacterORM
from shared.utils.database import DatabaseManager
from shared.utils.logging import get_logger

logger = get_logger(__name__)


class CharacterStore(abc.ABC):
    """What the sync pipeline needs from storage."""

    @abc.abstractmethod
    async def list_characters(self, limit: int = 0) -> list[Character]:
        """All tracked characters by descending overall score; limit <= 0 means unbounded."""

    @abc.abstractmethod
    async def update_character(self, character: Character) -> None:
        """Persist the four score fields of the character matching name+realm."""


class SQLCharacterStore(CharacterStore):
    """SQLAlchemy-backed store."""

    def __init__(self, db: DatabaseManager) -> None:
        self._db = db

    async def list_characters(self, limit: int = 0) -> list[Character]:
        stmt = select(CharacterORM).order_by(CharacterORM.overall_score.desc())
        if limit > 0:
            stmt = stmt.limit(limit)
        try:
            async with self._db.read_session() as session:
                result = await session.execute(stmt)
                return [Character.model_validate(row) for row in result.scalars()]
        except SQLAlchemyError as exc:
            raise StoreError(f"database error: {exc}") from exc

    async def update_character(self, character: Character) -> None:
        stmt = (
            update(CharacterORM)
            .where(CharacterORM.name == character.name, CharacterORM.realm == character.realm)
            .values(
                overall_score=character.overall_score,
                tank_score=character.tank_score,
                heal_score=character.heal_score,
                dps_score=character.dps_score,
            )
        )
        try:
            async with self._db.write_session() as session:
                result = await session.execute(stmt)
                matched = result.rowcount
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to update character score: {exc}") from exc
        if not matched:
            raise StoreError(f"character {character.display_name} is not tracked")

    async def insert_character(self, character: Character) -> None:
        row = CharacterORM(
            id=character.id,
            name=character.name,
            realm=character.realm,
            class_name=character.class_name,
            overall_score=character.overall_score,
            tank_score=character.tank_score,
            heal_score=character.heal_score,
            dps_score=character.dps_score,
        )
        try:
            async with self._db.write_session() as session:
                session.add(row)
        except IntegrityError as exc:
            raise StoreError(f"character {character.display_name} is already tracked") from exc
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to insert character: {exc}") from exc

    async def delete_character(self, name: str, realm: str) -> bool:
        """Returns False when nothing matched."""
        stmt = delete(CharacterORM).where(CharacterORM.name == name, CharacterORM.realm == realm)
        try:
            async with self._db.write_session() as session:
                result = await session.execute(stmt)
                return bool(result.rowcount)
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to delete character: {exc}") from exc

    async def get_character(self, name: str, realm: str) -> Optional[Character]:
        stmt = select(CharacterORM).where(CharacterORM.name == name, CharacterORM.realm == realm).limit(1)
        try:
            async with self._db.read_session() as session:
                row = (await session.execute(stmt)).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise StoreError(f"database error: {exc}") from exc
        return Character.model_validate(row) if row is not None else None

    async def character_exists(self, name: str, realm: str) -> bool:
        return await self.get_character(name, realm) is not None


class InMemoryCharacterStore(CharacterStore):
    """Dict-backed store for tests and dry runs; keeps insertion order for equal scores."""

    def __init__(self, characters: list[Character] | None = None) -> None:
        self._rows: dict[tuple[str, str], Character] = {}
        for c in characters or []:
            self._rows[(c.name, c.realm)] = c.model_copy()

    async def list_characters(self, limit: int = 0) -> list[Character]:
        rows = sorted(self._rows.values(), key=lambda c: c.overall_score, reverse=True)
        if limit > 0:
            rows = rows[:limit]
        return [c.model_copy() for c in rows]

    async def update_character(self, character: Character) -> None:
        key = (character.name, character.realm)
        current = self._rows.get(key)
        if current is None:
            raise StoreError(f"character {character.display_name} is not tracked")
        self._rows[key] = current.model_copy(update={
            "overall_score": character.overall_score,
            "tank_score": character.tank_score,
            "heal_score": character.heal_score,
            "dps_score": character.dps_score,
            "date_updated": datetime.now(timezone.utc),
        })

    def get(self, name: str, realm: str) -> Optional[Character]:
        return self._rows.get((name, realm))
