"""Demonstration of chaos scheduling, registered in test mode only."""
from __future__ import annotations

import random
from datetime import datetime

from ..formatting import bytes_per_s_to_mbps, number
from ..models.alert_unit import Rows
from .base import pick

NAME = "Chaos Scheduling Example"
SCHEDULE = "chaos:10m"
QUERY = (
    'SELECT COUNT(*) AS test_count, MAX(download_bandwidth) AS max_download '
    'FROM "speedtest_result" WHERE time > now() - 1h'
)

COMMENTARY = (
    "This message appeared because the chaos gods smiled upon us! 🎭",
    "Probability smiled and said 'today is the day!' 🎲",
    "Against all odds (well, 5-15% odds), here we are! 🎪",
    "The chaos scheduler rolled the dice and we won! 🎯",
    "The schedule said 'maybe' and the universe said 'yes!' 🌌",
)


def condition(rows: Rows | None) -> bool:
    return bool(rows)


def message(
    rows: Rows | None,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> str:
    rng = rng or random.Random()
    row = rows[0] if rows else {}
    count = int(number(row, "test_count"))
    peak = bytes_per_s_to_mbps(number(row, "max_download"))
    when = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")

    return "\n".join(
        [
            "🎲 **CHAOS SCHEDULING DEMONSTRATION** 🎲",
            "",
            f"⚡ **Random Strike Time:** {when}",
            "",
            "🎯 **How Chaos Scheduling Works:**",
            "• **Check Frequency:** Every 10 minutes",
            "• **Base Chance:** 5% probability each check",
            "• **Time Multiplier:** Increases up to 3x over 3 hours",
            "",
            "📊 **Current Network Snapshot (Last Hour):**",
            f"• Speed tests detected: {count}",
            f"• Peak download speed: {peak:.2f} Mbps",
            "",
            f"🎪 **Chaos Commentary:** {pick(rng, COMMENTARY)}",
            "",
            "*The next chaos strike could be in 20 minutes... or 4 hours.* 🎭",
        ]
    )
