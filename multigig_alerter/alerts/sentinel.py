"""Periodic "still watching" status report."""
from __future__ import annotations

import random

from ..formatting import number
from ..models.alert_unit import Rows
from .base import pick

NAME = "Digital Sentinel Status Report"
SCHEDULE = "3h"
QUERY = (
    'SELECT COUNT(*) AS test_count FROM "speedtest_result" WHERE time > now() - 3h'
)

WATCHING = (
    "🤖 Still here. Still watching. Still judging your network choices silently.",
    "👁️ I've been staring at network metrics for hours. My virtual eyes don't blink.",
    "🔍 Currently conducting advanced surveillance on your internet. It's... adequate.",
    "🌐 Status update: still monitoring the tubes of the internet.",
    "📡 Broadcasting from Network Monitoring Station Alpha: everything is fine. Probably.",
)
CLOSINGS = (
    "Your friendly neighborhood network stalker, keeping watch so you don't have to. 🫡",
    "Standing by for the next network crisis, minor hiccup, or Tuesday. ⚡",
    "This message will self-destruct in 3 hours when I send the next one. 🔄",
)


def recent_test_count(rows: Rows | None) -> int:
    """COUNT(*) columns come back as ``count_<field>``; take the largest."""
    if not rows:
        return 0
    row = rows[0]
    counts = [number(row, key) for key in row if key.startswith(("test_count", "count"))]
    return int(max(counts, default=0))


def condition(rows: Rows | None) -> bool:
    return True


def message(rows: Rows | None, rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    count = recent_test_count(rows)
    options = list(WATCHING)
    if count:
        options.append(
            f"📈 Observed {count} speed tests in the last 3 hours. "
            "You have a problem. I'm here for it."
        )
    else:
        options.append(
            "📭 No recent tests detected. Either everything's perfect or "
            "something is broken."
        )

    lines = ["🔍 **DIGITAL SENTINEL STATUS REPORT** 🔍", "", pick(rng, options), ""]
    lines.append("📊 **Surveillance Summary (Last 3 Hours):**")
    if count:
        lines.append(f"• Speed tests monitored: {count}")
        lines.append("• Suspicious activity: None (disappointingly)")
    else:
        lines.append("• Speed tests monitored: 0 (concerning or peaceful?)")
        lines.append("• Network silence level: Deafening")
    lines += ["", f"*{pick(rng, CLOSINGS)}*"]
    return "\n".join(lines)
