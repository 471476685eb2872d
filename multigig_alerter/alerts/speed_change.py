"""Detect download speeds swinging wildly between consecutive tests."""
from __future__ import annotations

import random
from dataclasses import dataclass

from ..formatting import bytes_per_s_to_mbps, number, site_name
from ..models.alert_unit import Row, Rows
from .base import pick

NAME = "Dramatic Speed Change Alert"
SCHEDULE = "2m"
QUERY = (
    'SELECT download_bandwidth FROM "speedtest_result" WHERE time > now() - 1h '
    'GROUP BY "test_site" ORDER BY time DESC LIMIT 3'
)

CHANGE_THRESHOLD_PCT = 40.0
# 50 Mbps expressed in bytes per second
MIN_BANDWIDTH = 50 * 1_000_000 / 8

CLOSINGS = (
    "This has been your regularly scheduled internet drama update.",
    "Your bandwidth just pulled a plot twist worthy of a streaming series.",
    "Breaking news: local internet connection refuses to behave predictably.",
    "Physics called. They want to study your connection as a case of chaos theory.",
)


@dataclass(frozen=True)
class SpeedChange:
    site: str
    previous: float
    current: float

    @property
    def percent(self) -> float:
        return (self.current - self.previous) / self.previous * 100

    @property
    def severity(self) -> str:
        magnitude = abs(self.percent)
        if magnitude > 80:
            return "🔥 NUCLEAR"
        if magnitude > 60:
            return "💥 EXPLOSIVE"
        return "⚡ DRAMATIC"


def _group_by_site(rows: Rows) -> dict[str, list[Row]]:
    groups: dict[str, list[Row]] = {}
    for row in rows:
        groups.setdefault(site_name(row), []).append(row)
    return groups


def find_changes(rows: Rows | None) -> list[SpeedChange]:
    """Compare each site's two most recent tests."""
    if not rows:
        return []
    changes: list[SpeedChange] = []
    for site, site_rows in _group_by_site(rows).items():
        if len(site_rows) < 2:
            continue
        latest, previous = sorted(
            site_rows, key=lambda r: number(r, "time"), reverse=True
        )[:2]
        current_bw = number(latest, "download_bandwidth")
        previous_bw = number(previous, "download_bandwidth")
        if current_bw < MIN_BANDWIDTH or previous_bw < MIN_BANDWIDTH:
            continue
        change = SpeedChange(site, previous_bw, current_bw)
        if abs(change.percent) > CHANGE_THRESHOLD_PCT:
            changes.append(change)
    return changes


def condition(rows: Rows | None) -> bool:
    return bool(find_changes(rows))


def message(rows: Rows | None, rng: random.Random | None = None) -> str:
    changes = find_changes(rows)
    if not changes:
        return (
            "🤔 A dramatic speed change was detected, but it seems to have "
            "vanished into the ethernet. Spooky."
        )
    rng = rng or random.Random()

    lines = ["🚨 **SPEED SHOCK ALERT** 🚨", ""]
    for change in changes:
        before = bytes_per_s_to_mbps(change.previous)
        after = bytes_per_s_to_mbps(change.current)
        magnitude = abs(change.percent)
        lines.append(f"{change.severity} **{change.site.upper()}**")
        if change.percent > 0:
            lines.append(
                f"📈 **SPEED SURGE:** {before:.0f} Mbps → **{after:.0f} Mbps** "
                f"(+{magnitude:.1f}%)"
            )
        else:
            lines.append(
                f"📉 **SPEED CRASH:** {before:.0f} Mbps → **{after:.0f} Mbps** "
                f"(-{magnitude:.1f}%)"
            )
        lines.append("")
    lines.append(f"*{pick(rng, CLOSINGS)}* 🎪")
    return "\n".join(lines)
