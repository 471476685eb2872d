"""Persisted "already celebrated" milestone sets.

Each stateful alert owns one tracker (one JSON file). A milestone is
reported the first time ``value >= threshold`` is observed for an entity and
is marked before the caller sends anything, so a crash between marking and
sending loses a celebration instead of repeating it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable

from .cadence import now_ms
from .models.milestone import Milestone
from .state_store import load_json, save_json

logger = logging.getLogger(__name__)

GLOBAL_ENTITY = "__global__"

_CELEBRATED_KEY = "celebrated"
_LAST_CELEBRATION_KEY = "lastCelebrationTime"


class MilestoneTracker:
    def __init__(
        self,
        state_path: str | Path,
        *,
        min_spacing_ms: int = 0,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.state_path = Path(state_path)
        self.min_spacing_ms = min_spacing_ms
        self._clock = clock
        self._celebrated: dict[str, set[str]] = {}
        self._last_celebration = 0
        self._load()

    def _load(self) -> None:
        state = load_json(self.state_path, {})
        raw = state.get(_CELEBRATED_KEY)
        if isinstance(raw, dict):
            for entity, ids in raw.items():
                if isinstance(ids, list):
                    self._celebrated[str(entity)] = {str(i) for i in ids}
        last = state.get(_LAST_CELEBRATION_KEY)
        if isinstance(last, (int, float)) and not isinstance(last, bool):
            self._last_celebration = int(last)

    def _save(self) -> None:
        ok = save_json(
            self.state_path,
            {
                _CELEBRATED_KEY: {
                    entity: sorted(ids) for entity, ids in self._celebrated.items()
                },
                _LAST_CELEBRATION_KEY: self._last_celebration,
            },
        )
        if not ok:
            logger.error(
                "Milestone state for %s not persisted; celebrations may repeat "
                "after a restart",
                self.state_path.name,
            )

    @property
    def last_celebration(self) -> int:
        return self._last_celebration

    def celebrated(self, entity: str | None = None) -> set[str]:
        return set(self._celebrated.get(entity or GLOBAL_ENTITY, set()))

    def entities(self) -> list[str]:
        return sorted(self._celebrated)

    def cooling_down(self, now: int | None = None) -> bool:
        if self.min_spacing_ms <= 0 or not self._last_celebration:
            return False
        current = self._clock() if now is None else now
        return current - self._last_celebration < self.min_spacing_ms

    def check_and_mark(
        self,
        current_value: float | None,
        milestones: Iterable[Milestone],
        entity: str | None = None,
        *,
        limit: int | None = None,
        now: int | None = None,
    ) -> list[Milestone]:
        """Return milestones newly crossed by ``current_value`` and mark them.

        ``entity`` scopes the celebrated set (e.g. a test site); ``None`` uses
        one global set. While the cooldown since the last celebration (for any
        entity) is running nothing is reported. ``limit`` caps how many are
        marked in one call; the rest stay eligible.
        """
        if current_value is None:
            return []
        current = self._clock() if now is None else now
        if self.cooling_down(current):
            logger.debug(
                "Milestone rate limit for %s: last celebration %ds ago",
                self.state_path.name,
                (current - self._last_celebration) // 1000,
            )
            return []

        key = entity or GLOBAL_ENTITY
        done = self._celebrated.get(key, set())
        crossed = [
            m
            for m in sorted(milestones, key=lambda m: m.threshold)
            if current_value >= m.threshold and m.id not in done
        ]
        if limit is not None:
            crossed = crossed[: max(0, limit)]
        if not crossed:
            return []

        self._celebrated.setdefault(key, set()).update(m.id for m in crossed)
        self._last_celebration = current
        self._save()
        logger.info(
            "New milestone(s) for %s: %s (value %s)",
            key,
            ", ".join(m.id for m in crossed),
            current_value,
        )
        return crossed

    def reset(self, entity: str | None = None) -> None:
        if entity is None:
            self._celebrated.clear()
            self._last_celebration = 0
        else:
            self._celebrated.pop(entity, None)
        self._save()
