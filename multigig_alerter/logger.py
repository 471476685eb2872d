"""Logging helpers for multigig_alerter
"""
from __future__ import annotations

import asyncio
import logging
import os
import time
from datetime import datetime

from .notifier import Channel, Notifier

SINK_LOGGER_NAME = "multigig_alerter.logger.sink"

_CRITICAL_WARNING_PATTERNS = (
    "critical",
    "read-only",
    "permission denied",
    "configuration",
    "security",
    "authentication failed",
    "certificate",
    "ssl",
)
_MAX_MESSAGE_CHARS = 1500

_sink_logger = logging.getLogger(SINK_LOGGER_NAME)


def setup_logging() -> None:
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)

    # Suppress verbose HTTP request logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("telegram").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


class SystemChannelHandler(logging.Handler):
    """Forward error logs to the notifier's system channel.

    ERROR records are always forwarded; WARNING records only when they look
    operationally critical. At most ``max_per_window`` messages go out per
    ``window_s``; the first suppressed record triggers one rate limit notice.
    Sending happens on the running event loop; without one, records are
    dropped.
    """

    def __init__(
        self,
        notifier: Notifier,
        *,
        max_per_window: int = 5,
        window_s: float = 60.0,
        clock=time.monotonic,
    ) -> None:
        super().__init__(level=logging.WARNING)
        self._notifier = notifier
        self.max_per_window = max_per_window
        self.window_s = window_s
        self._clock = clock
        self._window_start = 0.0
        self._sent = 0
        self._limit_notified = False
        self._tasks: set[asyncio.Task] = set()

    def should_forward(self, record: logging.LogRecord) -> bool:
        if record.name == SINK_LOGGER_NAME:
            return False
        if record.levelno >= logging.ERROR:
            return True
        message = record.getMessage().lower()
        return any(p in message for p in _CRITICAL_WARNING_PATTERNS)

    def _allow(self) -> tuple[bool, bool]:
        """Return (send_record, send_rate_limit_notice)."""
        now = self._clock()
        if now - self._window_start > self.window_s:
            self._window_start = now
            self._sent = 0
            self._limit_notified = False
        if self._sent < self.max_per_window:
            self._sent += 1
            return True, False
        if not self._limit_notified:
            self._limit_notified = True
            return False, True
        return False, False

    def emit(self, record: logging.LogRecord) -> None:
        try:
            if not self.should_forward(record):
                return
            send, notice = self._allow()
            if not (send or notice):
                return
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                return
            if send:
                text, username = self.format_alert(record)
            else:
                text, username = self.rate_limit_notice(), "System Monitor"
            task = loop.create_task(self._send(text, username))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
        except Exception:
            self.handleError(record)

    def format_alert(self, record: logging.LogRecord) -> tuple[str, str]:
        if record.levelno >= logging.ERROR:
            emoji, title, username = "🚨", "SYSTEM ERROR", "System Error"
        else:
            emoji, title, username = "⚠️", "SYSTEM WARNING", "System Warning"
        message = record.getMessage().strip()
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            message = f"{message}\n{type(exc).__name__}: {exc}"
        if len(message) > _MAX_MESSAGE_CHARS:
            message = message[:_MAX_MESSAGE_CHARS] + "... (truncated)"
        when = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        text = (
            f"{emoji} **{title}**\n\n"
            f"**Time**: {when}\n"
            f"**Message**: {message}\n"
            f"**Source**: {record.name}"
        )
        return text, username

    def rate_limit_notice(self) -> str:
        return (
            "🛑 **RATE LIMIT**\n\n"
            f"**ERROR RATE LIMIT REACHED** - more than {self.max_per_window} "
            f"notifications in {self.window_s:.0f}s; suppressing further error "
            "notifications for now"
        )

    async def _send(self, text: str, username: str) -> None:
        try:
            await self._notifier.deliver(text, Channel.SYSTEM, username=username)
        except Exception as exc:
            _sink_logger.warning("Failed to forward log record to system channel: %s", exc)

    async def drain(self) -> None:
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


__all__ = ["setup_logging", "SystemChannelHandler", "SINK_LOGGER_NAME"]
