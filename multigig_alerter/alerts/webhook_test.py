"""Manual delivery check, enabled with TEST_WEBHOOK."""
from __future__ import annotations

from datetime import datetime

from ..models.alert_unit import Rows
from .base import AlertContext
from .sentinel import recent_test_count

NAME = "Manual Webhook Test Alert"
SCHEDULE = "1m"
QUERY = 'SELECT COUNT(*) FROM "speedtest_result" WHERE time > now() - 1h'


class WebhookTestAlert:
    def __init__(self, ctx: AlertContext) -> None:
        self.ctx = ctx

    def condition(self, rows: Rows | None) -> bool:
        # fires even without database rows so delivery can be checked alone
        return self.ctx.test_webhook

    def message(self, rows: Rows | None) -> str:
        connected = bool(rows)
        when = datetime.fromtimestamp(self.ctx.clock() / 1000).strftime(
            "%Y-%m-%d %H:%M:%S"
        )
        if connected:
            db_status = f"Connected ({recent_test_count(rows)} records in last hour)"
        else:
            db_status = "Not connected (check InfluxDB settings)"
        return "\n".join(
            [
                "🧪 **MANUAL WEBHOOK TEST ALERT** 🧪",
                "",
                "✅ **Status:** Manual test triggered successfully!",
                f"⏰ **Time:** {when}",
                f"📊 **Database Status:** {db_status}",
                "",
                "🚀 **Your MultiGig Bot webhook is working!**",
                "*To test again, restart with TEST_WEBHOOK=true*",
            ]
        )
