"""
Notification delivery: Discord REST channel messages, or log-only when unconfigured.
"""
from __future__ import annotations

import abc
from typing import Any

import httpx

from shared.config import Settings, get_settings
from shared.errors import NotifyError
from shared.models.domain import RichContent
from shared.utils.http_client import ProviderHTTPClient
from shared.utils.logging import get_logger
from shared.utils.metrics import NOTIFICATIONS

logger = get_logger(__name__)


class Notifier(abc.ABC):

    @abc.abstractmethod
    async def send_text(self, channel_id: str, text: str) -> None:
        ...

    @abc.abstractmethod
    async def send_rich(self, channel_id: str, content: RichContent) -> None:
        ...

    async def start(self) -> None:
        pass

    async def close(self) -> None:
        pass


def render_embed(content: RichContent) -> dict[str, Any]:
    """Discord embed object for a RichContent."""
    embed: dict[str, Any] = {"title": content.title, "color": content.color}
    if content.url:
        embed["url"] = content.url
    if content.description:
        embed["description"] = content.description
    if content.image_url:
        embed["image"] = {"url": content.image_url}
    if content.thumbnail_url:
        embed["thumbnail"] = {"url": content.thumbnail_url}
    if content.author_name:
        author: dict[str, str] = {"name": content.author_name}
        if content.author_icon_url:
            author["icon_url"] = content.author_icon_url
        embed["author"] = author
    if content.fields:
        embed["fields"] = [f.model_dump() for f in content.fields]
    return embed


class DiscordNotifier(Notifier):
    """Posts to channels through the Discord REST API with a bot token."""

    def __init__(self, token: str, http_client: ProviderHTTPClient) -> None:
        self._http = http_client
        self._headers = {"Authorization": f"Bot {token}"}

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        http_client: ProviderHTTPClient | None = None,
    ) -> "DiscordNotifier":
        settings = settings or get_settings()
        http_client = http_client or ProviderHTTPClient(
            "discord", base_url=settings.discord_api_url, timeout_s=settings.provider_request_timeout_s
        )
        return cls(settings.discord_token, http_client)

    async def start(self) -> None:
        await self._http.start()

    async def close(self) -> None:
        await self._http.close()

    async def send_text(self, channel_id: str, text: str) -> None:
        await self._post(channel_id, {"content": text}, kind="text")

    async def send_rich(self, channel_id: str, content: RichContent) -> None:
        payload: dict[str, Any] = {"embeds": [render_embed(content)]}
        if content.content:
            payload["content"] = content.content
        await self._post(channel_id, payload, kind="rich")

    async def _post(self, channel_id: str, payload: dict[str, Any], kind: str) -> None:
        try:
            resp = await self._http.post(
                f"/channels/{channel_id}/messages", json=payload, headers=self._headers
            )
        except httpx.HTTPError as exc:
            NOTIFICATIONS.labels(kind=kind, status="error").inc()
            raise NotifyError(f"failed to send message: {exc}") from exc
        if not resp.is_success:
            NOTIFICATIONS.labels(kind=kind, status="error").inc()
            raise NotifyError(f"failed to send message: status {resp.status_code}")
        NOTIFICATIONS.labels(kind=kind, status="ok").inc()


class LoggingNotifier(Notifier):
    """Writes messages to the log instead of a channel."""

    async def send_text(self, channel_id: str, text: str) -> None:
        logger.info("notification_text", channel_id=channel_id, text=text)
        NOTIFICATIONS.labels(kind="text", status="logged").inc()

    async def send_rich(self, channel_id: str, content: RichContent) -> None:
        logger.info(
            "notification_rich",
            channel_id=channel_id,
            content=content.content,
            title=content.title,
            description=content.description,
        )
        NOTIFICATIONS.labels(kind="rich", status="logged").inc()
