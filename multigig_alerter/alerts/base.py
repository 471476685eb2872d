"""Shared plumbing for the concrete alert definitions."""
from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from ..cadence import now_ms
from ..milestones import MilestoneTracker
from ..models.alert_unit import Rows
from ..models.milestone import Milestone

logger = logging.getLogger(__name__)


@dataclass
class AlertContext:
    state_dir: Path
    test_mode: bool = False
    test_webhook: bool = False
    clock: Callable[[], int] = now_ms
    rng: random.Random = field(default_factory=random.Random)


def state_file(state_dir: Path, name: str) -> Path:
    slug = re.sub(r"[^a-z0-9]+", "_", name.lower()).strip("_")
    return Path(state_dir) / f"{slug}.json"


def pick(rng: random.Random, options: Sequence[str]) -> str:
    return rng.choice(list(options)) if options else ""


class MilestoneAlert:
    """Base for alerts that celebrate thresholds exactly once.

    ``condition`` marks newly crossed milestones through the tracker and keeps
    them for the following ``message`` call on the same rows.
    """

    name = ""
    schedule = ""
    query = ""
    milestones: Sequence[Milestone] = ()
    min_spacing_ms = 0

    def __init__(self, ctx: AlertContext) -> None:
        self.ctx = ctx
        self.tracker = MilestoneTracker(
            state_file(ctx.state_dir, self.name),
            min_spacing_ms=self.min_spacing_ms,
            clock=ctx.clock,
        )
        self.pending: list[tuple[str | None, Milestone]] = []

    def check(self, rows: Rows) -> list[tuple[str | None, Milestone]]:
        raise NotImplementedError

    def condition(self, rows: Rows | None) -> bool:
        self.pending = []
        if not rows:
            return False
        self.pending = self.check(rows)
        return bool(self.pending)

    def message(self, rows: Rows | None) -> str:
        raise NotImplementedError
