"""Probability-based ("chaos") scheduling.

A chaos unit is checked on its own cadence, and each check fires with a
probability that grows with the time since it last fired:

    multiplier = min(elapsed / max_multiplier_window, max_multiplier)
    chance     = base_chance * max(1, multiplier)

A unit that never fired sits at the ceiling, ``base_chance * max_multiplier``.
Fire times are persisted so a restart does not reset the escalation.
"""

from __future__ import annotations

import logging
import math
import random
from pathlib import Path
from typing import Callable

from .cadence import HOUR_MS, now_ms
from .models.chaos_stats import ChaosUnitStats
from .state_store import load_json, save_json

logger = logging.getLogger(__name__)

DEFAULT_BASE_CHANCE = 0.05
DEFAULT_MAX_MULTIPLIER = 3.0
DEFAULT_MAX_MULTIPLIER_WINDOW_MS = 3 * HOUR_MS

_EXECUTIONS_KEY = "lastExecutions"


class ChaosScheduler:
    def __init__(
        self,
        state_path: str | Path,
        *,
        base_chance: float = DEFAULT_BASE_CHANCE,
        max_multiplier: float = DEFAULT_MAX_MULTIPLIER,
        max_multiplier_window_ms: int = DEFAULT_MAX_MULTIPLIER_WINDOW_MS,
        rng: random.Random | None = None,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.state_path = Path(state_path)
        self.base_chance = base_chance
        self.max_multiplier = max_multiplier
        self.max_multiplier_window_ms = max_multiplier_window_ms
        self._rng = rng or random.Random()
        self._clock = clock
        self._last_fires = self._load()

    def _load(self) -> dict[str, int]:
        state = load_json(self.state_path, {_EXECUTIONS_KEY: {}})
        raw = state.get(_EXECUTIONS_KEY)
        if not isinstance(raw, dict):
            return {}
        fires: dict[str, int] = {}
        for name, ts in raw.items():
            if isinstance(ts, bool) or not isinstance(ts, (int, float)):
                logger.debug("Ignoring malformed chaos state for %r: %r", name, ts)
                continue
            fires[str(name)] = int(ts)
        logger.debug("Loaded chaos scheduler state: %d alerts tracked", len(fires))
        return fires

    def _save(self) -> None:
        save_json(self.state_path, {_EXECUTIONS_KEY: dict(self._last_fires)})

    @property
    def max_chance(self) -> float:
        return self.base_chance * max(1.0, self.max_multiplier)

    def last_fire(self, name: str) -> int | None:
        return self._last_fires.get(name)

    def elapsed_ms(self, name: str, now: int | None = None) -> float:
        last = self._last_fires.get(name)
        if last is None:
            return math.inf
        current = self._clock() if now is None else now
        return max(0, current - last)

    def chance_for_elapsed(self, elapsed_ms: float) -> float:
        if self.max_multiplier_window_ms <= 0:
            multiplier = self.max_multiplier
        else:
            multiplier = min(
                elapsed_ms / self.max_multiplier_window_ms, self.max_multiplier
            )
        return self.base_chance * max(1.0, multiplier)

    def chance(self, name: str, now: int | None = None) -> float:
        return self.chance_for_elapsed(self.elapsed_ms(name, now))

    def should_fire(self, name: str, now: int | None = None) -> bool:
        """Draw once against the unit's current chance. Does not change state."""
        elapsed = self.elapsed_ms(name, now)
        chance = self.chance_for_elapsed(elapsed)
        fire = self._rng.random() < chance
        hours = "never" if math.isinf(elapsed) else f"{elapsed / HOUR_MS:.2f}h"
        logger.debug(
            "Chaos check for %r: %s elapsed, %.1f%% chance, %s",
            name,
            hours,
            chance * 100,
            "FIRE" if fire else "skip",
        )
        return fire

    def record_fire(self, name: str, now: int | None = None) -> None:
        self._last_fires[name] = self._clock() if now is None else now
        self._save()
        logger.info("Recorded chaos execution for %r", name)

    def stats(self, now: int | None = None) -> list[ChaosUnitStats]:
        current = self._clock() if now is None else now
        out = [
            ChaosUnitStats(
                name=name,
                last_fire=ts,
                hours_ago=max(0, current - ts) / HOUR_MS,
                chance=self.chance(name, current),
            )
            for name, ts in self._last_fires.items()
        ]
        out.sort(key=lambda s: s.last_fire, reverse=True)
        return out

    def reset(self, name: str | None = None) -> None:
        if name is None:
            self._last_fires.clear()
            logger.info("Reset all chaos scheduling state")
        else:
            self._last_fires.pop(name, None)
            logger.info("Reset chaos state for %r", name)
        self._save()
