"""
Score providers: Blizzard (authoritative rating) and Raider.IO (role scores, ranks, runs).
"""
from providers.base import ProfileProvider, RatingProvider
from providers.blizzard import BlizzardClient
from providers.raiderio import RaiderIOClient, current_season, latest_run

__all__ = [
    "ProfileProvider",
    "RatingProvider",
    "BlizzardClient",
    "RaiderIOClient",
    "current_season",
    "latest_run",
]
