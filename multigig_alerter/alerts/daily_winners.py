"""Once-a-day performance leaderboard."""
from __future__ import annotations

import random

from ..formatting import bytes_per_s_to_mbps, medal, number, site_name
from ..models.alert_unit import Rows
from .base import pick

NAME = "Daily Performance Winners"
SCHEDULE = "daily"
QUERY = (
    'SELECT MAX(download_bandwidth) AS "max_download", '
    'MAX(upload_bandwidth) AS "max_upload", MIN(ping_latency) AS "min_latency" '
    'FROM "speedtest_result" WHERE time > now() - 24h GROUP BY "test_site"'
)

CLOSINGS = (
    "May your pings be low and your bandwidth high. Always. 🙏",
    "Another day, another gigabit conquered. Keep it up, champs. 💪",
    "These numbers are so good, your ISP is crying tears of joy. 😭",
    "If speed was a crime, you'd all be serving life sentences. 🚔",
    "Your routers are the real MVPs. Give them a pat. ❤️",
)


def condition(rows: Rows | None) -> bool:
    return bool(rows)


def _leaderboard(title: str, entries: list[tuple[str, str]]) -> list[str]:
    lines = [title]
    for index, (site, value) in enumerate(entries):
        lines.append(f"{medal(index)} **{site.upper()}**: {value}")
    return lines + [""]


def message(rows: Rows | None, rng: random.Random | None = None) -> str:
    if not rows:
        return (
            "🏆 **Daily Performance Awards** 🏆\n\n"
            "No performance data available for today's ceremony! 📊❌"
        )
    rng = rng or random.Random()

    downloads = sorted(
        ((site_name(r), bytes_per_s_to_mbps(number(r, "max_download"))) for r in rows),
        key=lambda e: e[1],
        reverse=True,
    )
    uploads = sorted(
        ((site_name(r), bytes_per_s_to_mbps(number(r, "max_upload"))) for r in rows),
        key=lambda e: e[1],
        reverse=True,
    )
    latencies = sorted(
        (
            (site_name(r), number(r, "min_latency"))
            for r in rows
            if number(r, "min_latency") > 0
        ),
        key=lambda e: e[1],
    )

    lines = ["🏆 **DAILY PERFORMANCE AWARDS** 🏆", ""]
    lines.append(
        f"🚀 **Download Champion:** {downloads[0][0].upper()} "
        f"({downloads[0][1]:.0f} Mbps)"
    )
    lines.append(
        f"📤 **Upload Champion:** {uploads[0][0].upper()} ({uploads[0][1]:.0f} Mbps)"
    )
    if latencies:
        lines.append(
            f"⚡ **Latency Champion:** {latencies[0][0].upper()} "
            f"({latencies[0][1]:.1f}ms)"
        )
    lines.append("")

    lines += _leaderboard(
        "📊 **Download Leaderboard:**", [(s, f"{v:.0f} Mbps") for s, v in downloads]
    )
    lines += _leaderboard(
        "📊 **Upload Leaderboard:**", [(s, f"{v:.0f} Mbps") for s, v in uploads]
    )
    if latencies:
        lines += _leaderboard(
            "📊 **Latency Leaderboard:**", [(s, f"{v:.1f}ms") for s, v in latencies]
        )
    lines.append(f"🎊 *{pick(rng, CLOSINGS)}*")
    return "\n".join(lines)
