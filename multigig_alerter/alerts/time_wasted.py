"""How much collective time has gone into running speed tests."""
from __future__ import annotations

from ..cadence import HOUR_MS, MINUTE_MS
from ..formatting import number
from ..models.alert_unit import Rows
from ..models.milestone import Milestone
from .base import MilestoneAlert, pick

NAME = "Collective Time Wasted Alert"
CHAOS_NAME = "Collective Time Wasted Chaos Alert"
QUERY = (
    "SELECT SUM(download_elapsed) AS total_download_time, "
    'SUM(upload_elapsed) AS total_upload_time FROM "speedtest_result"'
)

MILESTONES = (
    Milestone("8h", 8, "8 hours", "⏰", "The 'Just One More Test' Award"),
    Milestone("16h", 16, "16 hours", "🕰️", "The 'I Can Stop Anytime' Trophy"),
    Milestone("24h", 24, "24 hours", "📅", "The 'Lost Day' Commemorative Plate"),
    Milestone("48h", 48, "48 hours", "🗓️", "The 'Weekend Obliterator' Medal"),
    Milestone("72h", 72, "72 hours", "⏳", "The 'Three-Day Bender' Ribbon"),
    Milestone("168h", 168, "1 week", "🗓️", "The 'One Week Gone' Trophy"),
    Milestone("336h", 336, "2 weeks", "📆", "The 'Fortnight of Fiber' Award"),
    Milestone("720h", 720, "1 month", "🏆", "The 'Monthly Madness' Championship Belt"),
)

CLOSINGS = (
    "Time you enjoy wasting is not wasted time. Right?",
    "This is for science. And glory. Mostly glory.",
    "They say time is money. We say time is bandwidth.",
    "This will look great on your resume under 'Hobbies.'",
)


def elapsed_hours(rows: Rows) -> tuple[float, float]:
    """Download and upload test time in hours; elapsed fields are milliseconds."""
    row = rows[0]
    return (
        number(row, "total_download_time") / HOUR_MS,
        number(row, "total_upload_time") / HOUR_MS,
    )


class TimeWastedAlert(MilestoneAlert):
    """Celebrates one milestone per run, lowest first."""

    name = NAME
    schedule = "15m"
    query = QUERY
    milestones = MILESTONES
    min_spacing_ms = 15 * MINUTE_MS

    def check(self, rows: Rows):
        download, upload = elapsed_hours(rows)
        crossed = self.tracker.check_and_mark(
            download + upload, self.milestones, limit=1
        )
        return [(None, m) for m in crossed]

    def comparisons(self, total_hours: float) -> list[str]:
        return [
            f"That's {int(total_hours // 8)} full workdays. Don't tell the boss.",
            f"That's {int(total_hours * 60)} minutes you'll never get back.",
            f"You could have flown NYC to London {int(total_hours // 7)} times.",
        ]

    def message(self, rows: Rows | None) -> str:
        if not rows or not self.pending:
            return (
                "A time milestone was reached, but it escaped into the temporal vortex."
            )
        download, upload = elapsed_hours(rows)
        total = download + upload
        milestone = self.pending[-1][1]
        rng = self.ctx.rng

        lines = [
            f"{milestone.emoji} **{milestone.title}** {milestone.emoji}",
            f"*{milestone.label} of collective speed testing*",
            "",
            f"📥 Download tests: **{download:.1f}h**",
            f"📤 Upload tests: **{upload:.1f}h**",
            f"⏱️ Total: **{total:.1f}h** ({total / 24:.1f} days)",
            "",
            f"💡 *{pick(rng, self.comparisons(total))}*",
        ]
        upcoming = next((m for m in self.milestones if m.threshold > total), None)
        if upcoming is not None:
            lines.append(
                f"🎯 Next up: **{upcoming.label}** "
                f"({upcoming.threshold - total:.1f}h to go)"
            )
        lines.append(f"🎊 *{pick(rng, CLOSINGS)}*")
        return "\n".join(lines)


class TimeWastedChaosAlert(TimeWastedAlert):
    """Same milestones and own state, on an unpredictable schedule."""

    name = CHAOS_NAME
    schedule = "chaos:20m"

    def message(self, rows: Rows | None) -> str:
        text = super().message(rows)
        if not self.pending:
            return text
        return f"🎲 **Chaos Edition** 🎲\n{text}"
