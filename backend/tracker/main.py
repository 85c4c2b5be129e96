"""
Tracker entrypoint.

    python -m tracker.main run              # pass now, then every MPT_UPDATER_FREQUENCY_MINUTES
    python -m tracker.main sync             # one pass and exit
    python -m tracker.main add NAME REALM
    python -m tracker.main remove NAME REALM
    python -m tracker.main list [-n 10]      # print the leaderboard
    python -m tracker.main scores [-n 10]    # post the leaderboard to the channel
"""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import signal
import sys
from pathlib import Path
from typing import Optional

# Ensure backend root is on path when run as python -m tracker.main
_backend = Path(__file__).resolve().parent.parent
if str(_backend) not in sys.path:
    sys.path.insert(0, str(_backend))

from shared.config import Settings, get_settings
from shared.errors import NotConfigured, StoreError, TrackerError
from shared.utils.database import DatabaseManager
from shared.utils.health_server import HealthState, start_health_server
from shared.utils.logging import get_logger, setup_logging
from shared.utils.metrics import start_metrics_server

from providers.blizzard import BlizzardClient
from providers.raiderio import RaiderIOClient
from tracker.characters import CharacterService
from tracker.messages import build_scores_message
from tracker.notifier import DiscordNotifier, LoggingNotifier, Notifier
from tracker.pipeline import PassResult, SyncPipeline
from tracker.store import SQLCharacterStore

logger = get_logger(__name__)


class Runtime:
    """Owns every long-lived resource of the process."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.db = DatabaseManager(settings)
        self.store = SQLCharacterStore(self.db)
        self.blizzard = BlizzardClient.from_settings(settings)
        self.raiderio = RaiderIOClient.from_settings(settings)
        self.notifier: Notifier = (
            DiscordNotifier.from_settings(settings) if settings.discord_token else LoggingNotifier()
        )

    async def __aenter__(self) -> "Runtime":
        try:
            await self.db.connect()
            await self.db.create_tables()
            await self.blizzard.start()
            await self.raiderio.start()
            await self.notifier.start()
        except BaseException:
            await self.__aexit__(None, None, None)
            raise
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.notifier.close()
        await self.raiderio.close()
        await self.blizzard.close()
        await self.db.disconnect()

    def pipeline(self) -> SyncPipeline:
        return SyncPipeline(
            self.store,
            self.blizzard,
            self.raiderio,
            self.notifier,
            cooldown_s=self.settings.character_cooldown_s,
        )

    def characters(self) -> CharacterService:
        return CharacterService(self.store, self.blizzard, self.raiderio)


def _require_credentials(settings: Settings) -> None:
    if not settings.blizzard_client_id or not settings.blizzard_client_secret:
        raise NotConfigured("MPT_BLIZZARD_CLIENT_ID and MPT_BLIZZARD_CLIENT_SECRET must be set")
    if settings.discord_token and not settings.discord_channel_id:
        raise NotConfigured("MPT_DISCORD_CHANNEL_ID must be set when a Discord token is configured")


async def run_scheduled(
    pipeline: SyncPipeline,
    channel_id: str,
    interval_s: float,
    shutdown: asyncio.Event,
    health: Optional[HealthState] = None,
) -> None:
    """Run a pass immediately, then every interval_s until shutdown is set."""
    while not shutdown.is_set():
        try:
            result = await pipeline.run_pass(channel_id, stop_event=shutdown)
            if health:
                health.record_pass(dataclasses.asdict(result))
        except StoreError as exc:
            logger.error("updater_failed", error=str(exc))
            if health:
                health.record_error(str(exc))
        try:
            await asyncio.wait_for(shutdown.wait(), timeout=interval_s)
        except asyncio.TimeoutError:
            pass


async def cmd_run(settings: Settings) -> int:
    _require_credentials(settings)
    health = HealthState("tracker")
    start_metrics_server()
    start_health_server(health)

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except NotImplementedError:
            pass

    async with Runtime(settings) as rt:
        logger.info("tracker_started", interval_minutes=settings.updater_frequency_minutes)
        await run_scheduled(
            rt.pipeline(),
            settings.discord_channel_id,
            settings.updater_frequency_minutes * 60.0,
            shutdown,
            health,
        )
    logger.info("tracker_stopped")
    return 0


async def sync_now(pipeline: SyncPipeline, notifier: Notifier, channel_id: str) -> PassResult:
    """On-demand pass, acknowledged in the channel first."""
    await notifier.send_text(channel_id, "Checking for updates...")
    try:
        return await pipeline.run_pass(channel_id)
    except StoreError:
        await notifier.send_text(channel_id, "Failed to update scores")
        raise


async def post_scores(
    service: CharacterService, notifier: Notifier, channel_id: str, limit: int, region: str = "us"
) -> int:
    """Post the leaderboard to the channel; returns the number of rows listed."""
    try:
        characters = await service.list_characters(limit)
    except StoreError:
        await notifier.send_text(channel_id, "Failed to get scores")
        raise
    await notifier.send_rich(channel_id, build_scores_message(characters, region=region))
    return len(characters)


async def cmd_sync(settings: Settings) -> int:
    _require_credentials(settings)
    async with Runtime(settings) as rt:
        result = await sync_now(rt.pipeline(), rt.notifier, settings.discord_channel_id)
    print(f"checked={result.checked} updated={result.updated} unchanged={result.unchanged} failed={result.failed}")
    return 0


async def cmd_scores(settings: Settings, limit: int) -> int:
    _require_credentials(settings)
    async with Runtime(settings) as rt:
        rows = await post_scores(
            rt.characters(), rt.notifier, settings.discord_channel_id, limit, region=settings.blizzard_region
        )
    logger.info("scores_posted", rows=rows)
    return 0


async def cmd_add(settings: Settings, name: str, realm: str) -> int:
    _require_credentials(settings)
    async with Runtime(settings) as rt:
        character = await rt.characters().add_character(name, realm)
    print(f"Now tracking {character.display_name} ({character.overall_score:.2f})")
    return 0


async def cmd_remove(settings: Settings, name: str, realm: str) -> int:
    async with Runtime(settings) as rt:
        removed = await rt.characters().remove_character(name, realm)
    if not removed:
        print(f"{name}-{realm} was not tracked")
        return 1
    print(f"No longer tracking {name}-{realm}")
    return 0


async def cmd_list(settings: Settings, limit: int) -> int:
    async with Runtime(settings) as rt:
        characters = await rt.characters().list_characters(limit)
    for i, c in enumerate(characters, start=1):
        print(f"{i:>3}) {c.display_name:<32} {c.overall_score:>8.2f}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mplus-tracker", description="Mythic+ score tracker")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("run", help="run passes on a timer until interrupted")
    sub.add_parser("sync", help="run a single pass")
    for name in ("add", "remove"):
        p = sub.add_parser(name, help=f"{name} a tracked character")
        p.add_argument("name")
        p.add_argument("realm")
    p = sub.add_parser("list", help="list tracked characters by score")
    p.add_argument("-n", type=int, default=10, help="rows to show (0 for all)")
    p = sub.add_parser("scores", help="post the tracked characters leaderboard to the channel")
    p.add_argument("-n", type=int, default=10, help="rows to post (0 for all)")
    return parser


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging("tracker" if args.command == "run" else "cli")

    try:
        if args.command == "run":
            return await cmd_run(settings)
        if args.command == "sync":
            return await cmd_sync(settings)
        if args.command == "add":
            return await cmd_add(settings, args.name, args.realm)
        if args.command == "remove":
            return await cmd_remove(settings, args.name, args.realm)
        if args.command == "scores":
            return await cmd_scores(settings, args.n)
        return await cmd_list(settings, args.n)
    except TrackerError as exc:
        logger.error("command_failed", command=args.command, error=str(exc))
        print(f"error: {exc}", file=sys.stderr)
        return 1


def cli() -> None:
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
