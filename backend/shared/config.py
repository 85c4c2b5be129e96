"""
Central configuration for the Mythic+ score tracker.
Uses pydantic-settings for env-based config with validation.
"""
from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEV = "dev"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Root settings for the tracker process."""

    model_config = SettingsConfigDict(
        env_prefix="MPT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── General ──────────────────────────────────────────────
    environment: Environment = Environment.DEV
    debug: bool = False
    log_level: str = "INFO"

    # ── Storage ──────────────────────────────────────────────
    database_url: str = Field(default="sqlite+aiosqlite:///mythicplus.sqlite")

    # ── Blizzard (ratings) ───────────────────────────────────
    blizzard_client_id: str = ""
    blizzard_client_secret: str = ""
    blizzard_region: str = "us"
    blizzard_oauth_url: str = "https://oauth.battle.net/token"
    blizzard_api_url: str = "https://us.api.blizzard.com"

    # ── Raider.IO (role scores, ranks, runs) ─────────────────
    raiderio_access_key: str = ""
    raiderio_api_url: str = "https://raider.io"

    # ── Discord ──────────────────────────────────────────────
    discord_token: str = ""
    discord_channel_id: str = ""
    discord_api_url: str = "https://discord.com/api/v10"

    # ── Updater ──────────────────────────────────────────────
    updater_frequency_minutes: int = Field(default=30, description="Minutes between scheduled passes")
    character_cooldown_s: float = Field(default=0.25, description="Pause after each attempted character update")
    provider_request_timeout_s: float = 30.0

    # ── Observability ────────────────────────────────────────
    metrics_enabled: bool = False
    metrics_port: int = 9090

    @field_validator("blizzard_region")
    @classmethod
    def lowercase_region(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("updater_frequency_minutes")
    @classmethod
    def positive_frequency(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("updater_frequency_minutes must be positive")
        return v

    @property
    def blizzard_namespace(self) -> str:
        return f"profile-{self.blizzard_region}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Singleton access to validated settings."""
    return Settings()
