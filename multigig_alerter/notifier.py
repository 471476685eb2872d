"""Chat notification transports (Discord webhooks, Telegram bot)."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Protocol

import httpx
from telegram import Bot
from telegram.error import TelegramError

from .formatting import (
    DISCORD_MESSAGE_LIMIT,
    TELEGRAM_MESSAGE_LIMIT,
    chunk,
    truncate_message,
)

logger = logging.getLogger(__name__)

TEST_MODE_BANNER = "🧪 **TEST MODE**\n\n"


class Channel(str, Enum):
    PRIMARY = "primary"
    SYSTEM = "system"


class NotifyError(RuntimeError):
    """Raised when a message could not be delivered."""


class Notifier(Protocol):
    async def deliver(
        self,
        text: str,
        channel: Channel = Channel.PRIMARY,
        *,
        username: str | None = None,
    ) -> None: ...


class DiscordWebhookNotifier:
    """Posts to a primary webhook (celebrations) and an alert webhook (system).

    In test mode primary messages are redirected to the alert webhook.
    """

    def __init__(
        self,
        webhook_url: str | None,
        alert_webhook_url: str | None,
        *,
        bot_username: str = "MultiGig Alerter",
        avatar_url: str | None = None,
        test_mode: bool = False,
        timeout_s: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.webhook_url = webhook_url
        self.alert_webhook_url = alert_webhook_url
        self.bot_username = bot_username
        self.avatar_url = avatar_url
        self.test_mode = test_mode
        self.timeout_s = timeout_s
        self._transport = transport

    def _route(self, channel: Channel) -> str | None:
        if channel is Channel.SYSTEM or self.test_mode:
            return self.alert_webhook_url
        return self.webhook_url

    def _payload(
        self, text: str, channel: Channel, username: str | None
    ) -> dict[str, str]:
        if channel is Channel.PRIMARY:
            name = username or self.bot_username
            if self.test_mode:
                text = f"{TEST_MODE_BANNER}{text}"
                name = f"[TEST] {name}"
        else:
            name = username or "System Alert"
        payload = {
            "content": truncate_message(text, DISCORD_MESSAGE_LIMIT),
            "username": name,
        }
        if channel is Channel.PRIMARY and self.avatar_url:
            payload["avatar_url"] = self.avatar_url
        return payload

    async def deliver(
        self,
        text: str,
        channel: Channel = Channel.PRIMARY,
        *,
        username: str | None = None,
    ) -> None:
        url = self._route(channel)
        if not url:
            raise NotifyError(f"No webhook configured for {channel.value} channel")
        payload = self._payload(text, channel, username)
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_s, transport=self._transport
            ) as client:
                resp = await client.post(url, json=payload)
                resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotifyError(f"Webhook error: {exc}") from exc
        logger.debug(
            "Delivered %d chars to %s webhook", len(payload["content"]), channel.value
        )


class TelegramNotifier:
    """Sends to a primary chat and an alert chat through a Telegram bot."""

    def __init__(
        self,
        token: str,
        chat_id: int | str | None,
        alert_chat_id: int | str | None = None,
        *,
        test_mode: bool = False,
        bot: Bot | None = None,
    ) -> None:
        self.chat_id = chat_id
        self.alert_chat_id = alert_chat_id or chat_id
        self.test_mode = test_mode
        self._bot = bot or Bot(token)
        self._initialized = False

    def _route(self, channel: Channel) -> int | str | None:
        if channel is Channel.SYSTEM or self.test_mode:
            return self.alert_chat_id
        return self.chat_id

    async def deliver(
        self,
        text: str,
        channel: Channel = Channel.PRIMARY,
        *,
        username: str | None = None,
    ) -> None:
        chat_id = self._route(channel)
        if chat_id is None:
            raise NotifyError(f"No chat configured for {channel.value} channel")
        if channel is Channel.PRIMARY and self.test_mode:
            text = f"{TEST_MODE_BANNER}{text}"
        if username and channel is Channel.SYSTEM:
            text = f"[{username}]\n{text}"
        try:
            if not self._initialized:
                await self._bot.initialize()
                self._initialized = True
            for part in chunk(text, TELEGRAM_MESSAGE_LIMIT):
                await self._bot.send_message(chat_id=chat_id, text=part)
        except TelegramError as exc:
            raise NotifyError(f"Telegram error: {exc}") from exc

    async def close(self) -> None:
        if self._initialized:
            await self._bot.shutdown()
            self._initialized = False


def build_notifier(settings) -> DiscordWebhookNotifier | TelegramNotifier:
    if settings.NOTIFIER == "telegram":
        if not settings.TELEGRAM_BOT_TOKEN:
            raise RuntimeError("TELEGRAM_BOT_TOKEN is required for NOTIFIER=telegram")
        return TelegramNotifier(
            settings.TELEGRAM_BOT_TOKEN,
            settings.TELEGRAM_CHAT_ID,
            settings.TELEGRAM_ALERT_CHAT_ID,
            test_mode=settings.TEST_MODE,
        )
    return DiscordWebhookNotifier(
        settings.DISCORD_WEBHOOK_URL,
        settings.DISCORD_ALERT_WEBHOOK_URL,
        bot_username=settings.DISCORD_BOT_USERNAME,
        avatar_url=settings.DISCORD_BOT_AVATAR_URL,
        test_mode=settings.TEST_MODE,
    )
