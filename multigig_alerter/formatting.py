"""Message helpers for chat limits and common number formats."""

from __future__ import annotations

from collections.abc import Mapping

DISCORD_MESSAGE_LIMIT = 2000
TELEGRAM_MESSAGE_LIMIT = 4000

GIB = 1024**3
TIB = 1024**4

TRUNCATION_NOTICE = "\n\n⚠️ *Message truncated due to length limits*"

_NATURAL_BREAKS = ("\n\n", "\n📊", "\n💡", "\n🎊", "\n🚀")


def truncate_message(message: str, limit: int = DISCORD_MESSAGE_LIMIT) -> str:
    """Cut ``message`` to ``limit`` characters, preferring section breaks."""
    if len(message) <= limit:
        return message

    cut_at = max(0, limit - 100)
    for marker in _NATURAL_BREAKS:
        pos = message.rfind(marker, 0, cut_at)
        if pos > cut_at * 0.7:
            return message[:pos] + TRUNCATION_NOTICE

    truncated = message[:cut_at]
    last_space = truncated.rfind(" ")
    if last_space > cut_at * 0.9:
        truncated = truncated[:last_space]
    return truncated + TRUNCATION_NOTICE


def chunk(msg: str, size: int = TELEGRAM_MESSAGE_LIMIT) -> list[str]:
    """Split message into chunks ensuring no chunk exceeds size limit."""
    if len(msg) <= size:
        return [msg]

    lines = msg.splitlines()
    chunks: list[str] = []
    current = ""
    for line in lines:
        if len(line) > size:
            if current:
                chunks.append(current)
                current = ""
            start = 0
            while start < len(line):
                chunks.append(line[start : start + size])
                start += size
            continue
        added_length = len(line) + (1 if current else 0)
        if len(current) + added_length > size and current:
            chunks.append(current)
            current = line
        else:
            current = f"{current}\n{line}" if current else line
    if current:
        chunks.append(current)
    return chunks


def site_name(row: object, fallback: str = "Unknown") -> str:
    if isinstance(row, Mapping):
        return str(row.get("test_site") or fallback)
    return fallback


def number(row: object, key: str) -> float:
    if not isinstance(row, Mapping):
        return 0.0
    value = row.get(key)
    if isinstance(value, bool):
        return 0.0
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def bytes_per_s_to_mbps(value: float) -> float:
    return value * 8 / 1_000_000


def medal(index: int, rest: str = "🔹") -> str:
    return ("👑", "🥈", "🥉")[index] if index < 3 else rest
