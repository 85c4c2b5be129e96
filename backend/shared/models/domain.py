"""
Pydantic v2 domain models shared across the tracker.
These are the canonical wire/internal representations, not ORM models.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


# ── Base ────────────────────────────────────────────────────────────────
class DomainModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class ProviderModel(DomainModel):
    """Provider payloads: unknown fields are dropped."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True, extra="ignore")


# ── Tracked character ───────────────────────────────────────────────────
class Character(DomainModel):
    id: int
    name: str
    realm: str
    class_name: str = ""
    overall_score: float = 0.0
    tank_score: float = 0.0
    heal_score: float = 0.0
    dps_score: float = 0.0
    date_created: Optional[datetime] = None
    date_updated: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        return f"{self.name}-{self.realm}"


def format_name(name: str) -> str:
    """First letter upper case, the rest lower case."""
    name = name.strip()
    if not name:
        return name
    return name[:1].upper() + name[1:].lower()


def format_realm(realm: str) -> str:
    return realm.strip().lower()


# ── Blizzard mythic keystone profile ────────────────────────────────────
class RealmRef(ProviderModel):
    id: int = 0
    slug: str = ""


class CharacterRef(ProviderModel):
    id: int = 0
    name: str = ""
    realm: RealmRef = Field(default_factory=RealmRef)


class MythicRating(ProviderModel):
    rating: float = 0.0


class RatingProfile(ProviderModel):
    character: CharacterRef = Field(default_factory=CharacterRef)
    current_mythic_rating: MythicRating = Field(default_factory=MythicRating)

    @property
    def rating(self) -> float:
        return self.current_mythic_rating.rating


# ── Raider.IO character profile ─────────────────────────────────────────
class RoleScores(ProviderModel):
    all: float = 0.0
    dps: float = 0.0
    healer: float = 0.0
    tank: float = 0.0


class SeasonScores(ProviderModel):
    season: str = ""
    scores: RoleScores = Field(default_factory=RoleScores)


class Rank(ProviderModel):
    world: int = 0
    region: int = 0
    realm: int = 0


class Ranks(ProviderModel):
    overall: Rank = Field(default_factory=Rank)
    tank: Rank = Field(default_factory=Rank)
    healer: Rank = Field(default_factory=Rank)
    dps: Rank = Field(default_factory=Rank)


class Run(ProviderModel):
    dungeon: str = ""
    short_name: str = ""
    mythic_level: int = 0
    completed_at: datetime = EPOCH
    num_keystone_upgrades: int = 0
    score: float = 0.0
    url: str = ""
    icon_url: str = ""
    background_image_url: str = ""

    @field_validator("completed_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


class RaiderIOProfile(ProviderModel):
    name: str = ""
    race: str = ""
    class_name: str = Field(default="", alias="class")
    realm: str = ""
    thumbnail_url: str = ""
    profile_url: str = ""
    mythic_plus_scores_by_season: list[SeasonScores] = Field(default_factory=list)
    mythic_plus_ranks: Ranks = Field(default_factory=Ranks)
    mythic_plus_recent_runs: list[Run] = Field(default_factory=list)


# ── Notifications ───────────────────────────────────────────────────────
class EmbedField(DomainModel):
    name: str
    value: str
    inline: bool = False


class RichContent(DomainModel):
    """Structured message: one embed plus an optional plain line above it."""
    title: str
    content: Optional[str] = None
    url: Optional[str] = None
    description: Optional[str] = None
    color: int = 0
    image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    author_name: Optional[str] = None
    author_icon_url: Optional[str] = None
    fields: list[EmbedField] = Field(default_factory=list)
