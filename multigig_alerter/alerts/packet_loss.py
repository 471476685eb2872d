"""Real-time packet loss alert."""
from __future__ import annotations

from ..formatting import number, site_name
from ..models.alert_unit import Rows

NAME = "Real-time Packet Loss Alert"
SCHEDULE = "1m"
QUERY = (
    'SELECT last("packet_loss") AS "packet_loss" FROM "speedtest_result" '
    'WHERE time > now() - 2m GROUP BY "test_site"'
)
THRESHOLD_PCT = 5.0


def _severity(loss: float) -> str:
    if loss > 15:
        return "🔥 (This is fine.)"
    if loss > 10:
        return "😨 (Getting a bit sweaty)"
    return "⚠️ (Above acceptable threshold)"


def condition(rows: Rows | None) -> bool:
    if not rows:
        return False
    return any(number(row, "packet_loss") > THRESHOLD_PCT for row in rows)


def message(rows: Rows | None) -> str:
    rows = rows or []
    affected = [r for r in rows if number(r, "packet_loss") > THRESHOLD_PCT]
    healthy = [r for r in rows if number(r, "packet_loss") <= THRESHOLD_PCT]
    if not affected:
        return (
            "Detected a disturbance in the force, but all packets seem to be "
            "accounted for. Carry on."
        )

    lines = [
        "🚨 **ALERT: PACKETS ARE GOING MISSING!** 🚨",
        "",
        "**Sites with Wandering Packets:**",
    ]
    for row in affected:
        loss = number(row, "packet_loss")
        site = site_name(row, "The Bermuda Triangle").upper()
        lines.append(f"🔴 **{site}**: **{loss:.2f}%** packet loss {_severity(loss)}")

    if healthy:
        lines += ["", f"✅ **Sites Within Acceptable Range (≤{THRESHOLD_PCT:.0f}%):**"]
        for row in healthy:
            site = site_name(row).upper()
            lines.append(f"🟢 **{site}**: {number(row, 'packet_loss'):.2f}% packet loss")

    lines += [
        "",
        "⚠️ **ACTION REQUIRED:** Someone please check the network cables!",
    ]
    return "\n".join(lines)
