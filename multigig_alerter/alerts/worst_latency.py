"""Twice-daily "award" for the laggiest test sites."""
from __future__ import annotations

from ..formatting import number, site_name
from ..models.alert_unit import Rows

NAME = "Worst Latency Award"
SCHEDULE = "12h"
QUERY = (
    'SELECT MAX("ping_latency") AS "max_ping_latency", '
    'MAX("download_latency_iqm") AS "max_download_latency", '
    'MAX("upload_latency_iqm") AS "max_upload_latency", '
    'MAX("ping_jitter") AS "max_ping_jitter" '
    'FROM "speedtest_result" WHERE time > now() - 1d GROUP BY "test_site"'
)

# (row key, metric label, category line)
_CATEGORIES = (
    ("max_ping_latency", "Ping Latency", "🐌 **The 'Did it Freeze?' Ping Award:**"),
    (
        "max_download_latency",
        "Download Latency",
        "📉 **The 'Buffering...' Download Latency Trophy:**",
    ),
    (
        "max_upload_latency",
        "Upload Latency",
        "📈 **The 'Is This Thing On?' Upload Latency Medal:**",
    ),
    ("max_ping_jitter", "Ping Jitter", "🎢 **The 'Rollercoaster' Jitter Prize:**"),
)


def condition(rows: Rows | None) -> bool:
    return bool(rows)


def message(rows: Rows | None) -> str:
    if not rows:
        return (
            "🏆 **The Lag Awards** 🏆\n\n"
            "No data available for this ceremony! Everyone was too fast, apparently."
        )

    lines = [
        "🐢 **THE LAG AWARDS** 🐢",
        "*Let's celebrate our most patient network connections!*",
        "",
    ]

    overall: tuple[float, str, str] | None = None
    category_lines: list[str] = []
    for key, label, heading in _CATEGORIES:
        worst = max(rows, key=lambda r: number(r, key))
        value = number(worst, key)
        site = site_name(worst, "The Void")
        if overall is None or value > overall[0]:
            overall = (value, site, label)
        category_lines += [heading, f"• **{site.upper()}** with **{value:.1f}ms**", ""]

    if overall is not None:
        value, site, label = overall
        lines += [
            "🥇 **GRAND CHAMPION OF LAG** 🥇",
            f"A huge round of applause for **{site.upper()}**, who achieved "
            f"**{value:.1f}ms {label}**!",
            "",
        ]
    lines += ["📊 **Category Winners (Losers?):**", ""] + category_lines

    lines.append("📋 **The Wall of Shame (Worst Ping):**")
    ranked = sorted(rows, key=lambda r: number(r, "max_ping_latency"), reverse=True)
    for index, row in enumerate(ranked):
        icon = ("🥇", "🥈", "🥉")[index] if index < 3 else "💩"
        lines.append(
            f"{icon} **{site_name(row).upper()}**: "
            f"{number(row, 'max_ping_latency'):.1f}ms"
        )
    return "\n".join(lines)
