"""Per-tick summary of the alert loop."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class TickReport:
    ran: list[str] = field(default_factory=list)
    notified: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def any_ran(self) -> bool:
        return bool(self.ran)
