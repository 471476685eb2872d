"""Celebrate every whole terabyte transferred across all sites."""
from __future__ import annotations

import math

from ..cadence import MINUTE_MS
from ..formatting import TIB, number
from ..models.alert_unit import Rows
from ..models.milestone import Milestone
from .base import MilestoneAlert, pick

NAME = "Cumulative Data Milestone Alert"
SCHEDULE = "5m"
QUERY = (
    "SELECT SUM(download_bytes) AS total_download_bytes, "
    'SUM(upload_bytes) AS total_upload_bytes FROM "speedtest_result"'
)

FUN_FACTS = (
    "That's enough data to stream 4K video for over 150 hours straight.",
    "We've used more bandwidth than a small, developing nation.",
    "If this data were floppy disks, it would reach the moon.",
    "That's enough bandwidth to make ISP CEOs sweat during meetings.",
    "This milestone is brought to you by caffeine and progress bar addiction.",
)


def totals(rows: Rows) -> tuple[float, float]:
    row = rows[0]
    return number(row, "total_download_bytes"), number(row, "total_upload_bytes")


class CumulativeDataAlert(MilestoneAlert):
    """One milestone per whole TiB; only the highest crossed level is marked."""

    name = NAME
    schedule = SCHEDULE
    query = QUERY
    min_spacing_ms = 10 * MINUTE_MS

    def check(self, rows: Rows):
        download, upload = totals(rows)
        level = math.floor((download + upload) / TIB)
        if level < 1:
            return []
        milestone = Milestone(id=f"{level}TB", threshold=level * TIB, label=f"{level}TB")
        crossed = self.tracker.check_and_mark(download + upload, [milestone])
        return [(None, m) for m in crossed]

    def message(self, rows: Rows | None) -> str:
        if not rows or not self.pending:
            return "📦 A data milestone was detected, but the bytes wandered off."
        download, upload = totals(rows)
        milestone = self.pending[-1][1]
        return "\n".join(
            [
                f"🎉 **{milestone.label} CUMULATIVE DATA MILESTONE!** 🎉",
                "",
                f"📥 Downloaded: **{download / TIB:.2f}TB**",
                f"📤 Uploaded: **{upload / TIB:.2f}TB**",
                f"📊 Total: **{(download + upload) / TIB:.2f}TB**",
                "",
                f"💡 *{pick(self.ctx.rng, FUN_FACTS)}*",
            ]
        )
