"""Per-site download and upload volume milestones."""
from __future__ import annotations

from ..formatting import GIB, TIB, medal, number, site_name
from ..models.alert_unit import Rows
from ..models.milestone import Milestone
from .base import MilestoneAlert, pick

DOWNLOAD_NAME = "Site Download Milestones Alert"
UPLOAD_NAME = "Site Upload Milestone Achievements"
SCHEDULE = "10m"

DOWNLOAD_QUERY = (
    "SELECT SUM(download_bytes) AS total_download_bytes "
    'FROM "speedtest_result" GROUP BY "test_site"'
)
UPLOAD_QUERY = (
    "SELECT SUM(upload_bytes) AS total_upload_bytes "
    'FROM "speedtest_result" GROUP BY "test_site"'
)

DOWNLOAD_MILESTONES = (
    Milestone("100GB", 100 * GIB, "100GB", "🥉", "Bronze Data Hoarder"),
    Milestone("300GB", 300 * GIB, "300GB", "🥈", "Silver Packet Pilferer"),
    Milestone("500GB", 500 * GIB, "500GB", "🥇", "Gold Gigabit Glutton"),
    Milestone("1TB", TIB, "1TB", "💎", "Diamond Download Deity"),
)
UPLOAD_MILESTONES = (
    Milestone("50GB", 50 * GIB, "50GB", "🥉", "Bronze Contributor"),
    Milestone("200GB", 200 * GIB, "200GB", "🥈", "Silver Broadcaster"),
    Milestone("500GB", 500 * GIB, "500GB", "🥇", "Gold Data Donor"),
    Milestone("1TB", TIB, "1TB", "💎", "Diamond Upload Deity"),
)

FUN_FACTS = (
    "Your hard drive is probably crying for mercy right now. Ignore it.",
    "That's enough bandwidth to make your ISP question its 'unlimited' plans.",
    "This achievement is sponsored by insomnia and progress bars.",
    "You could fill a modern smartphone with that. Several times.",
)


class SiteVolumeAlert(MilestoneAlert):
    field = ""
    heading = ""
    verb = ""

    def check(self, rows: Rows):
        crossed = []
        for row in rows:
            site = site_name(row)
            for milestone in self.tracker.check_and_mark(
                number(row, self.field), self.milestones, entity=site
            ):
                crossed.append((site, milestone))
        return crossed

    def message(self, rows: Rows | None) -> str:
        if not rows or not self.pending:
            return "A milestone was detected, but it seems to have vanished. Spooky."
        volumes = {site_name(r): number(r, self.field) / GIB for r in rows}

        lines = [self.heading, ""]
        for site, milestone in self.pending:
            lines.append(
                f"{milestone.emoji} **{str(site).upper()}** unlocked the "
                f'**"{milestone.title}"** title!'
            )
            lines.append(
                f"**Total {self.verb}:** **{volumes.get(str(site), 0):.2f}GB** "
                f"(past the {milestone.label} mark)"
            )
            lines.append("")
        lines.append(f"💡 *Fun Fact: {pick(self.ctx.rng, FUN_FACTS)}*")
        lines.append("")
        lines.append(f"📊 **Current {self.verb} Leaderboard (Total GB):**")
        ranked = sorted(volumes.items(), key=lambda e: e[1], reverse=True)
        for index, (site, gb) in enumerate(ranked):
            lines.append(f"{medal(index)} **{site.upper()}**: {gb:.2f}GB")
        return "\n".join(lines)


class SiteDownloadMilestonesAlert(SiteVolumeAlert):
    name = DOWNLOAD_NAME
    schedule = SCHEDULE
    query = DOWNLOAD_QUERY
    milestones = DOWNLOAD_MILESTONES
    field = "total_download_bytes"
    heading = "📥 **DOWNLOAD MILESTONE ACHIEVED!** 📥"
    verb = "Downloaded"


class SiteUploadMilestonesAlert(SiteVolumeAlert):
    name = UPLOAD_NAME
    schedule = SCHEDULE
    query = UPLOAD_QUERY
    milestones = UPLOAD_MILESTONES
    field = "total_upload_bytes"
    heading = "📤 **UPLOAD MILESTONE ACHIEVED!** 📤"
    verb = "Uploaded"
