"""
Settings loading and validation.
"""
from __future__ import annotations

import pytest

from providers.blizzard import BlizzardClient
from providers.raiderio import RaiderIOClient
from shared.config import Settings
from tracker.notifier import DiscordNotifier


def test_settings_defaults() -> None:
    settings = Settings(_env_file=None)

    assert settings.database_url == "sqlite+aiosqlite:///mythicplus.sqlite"
    assert settings.updater_frequency_minutes == 30
    assert settings.character_cooldown_s == 0.25
    assert settings.blizzard_namespace == "profile-us"


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MPT_BLIZZARD_REGION", " EU ")
    monkeypatch.setenv("MPT_UPDATER_FREQUENCY_MINUTES", "15")

    settings = Settings(_env_file=None)

    assert settings.blizzard_namespace == "profile-eu"
    assert settings.updater_frequency_minutes == 15


def test_settings_reject_non_positive_frequency(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MPT_UPDATER_FREQUENCY_MINUTES", "0")

    with pytest.raises(ValueError):
        Settings(_env_file=None)


def test_clients_take_timeout_from_given_settings() -> None:
    settings = Settings(_env_file=None, provider_request_timeout_s=7.5, discord_token="t")

    blizzard = BlizzardClient.from_settings(settings)
    raiderio = RaiderIOClient.from_settings(settings)
    discord = DiscordNotifier.from_settings(settings)

    assert blizzard._http.timeout_s == 7.5
    assert raiderio._http.timeout_s == 7.5
    assert discord._http.timeout_s == 7.5
