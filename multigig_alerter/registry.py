"""Explicit registry of alert units."""

from __future__ import annotations

import logging
from typing import Callable, Iterator

from .cadence import (
    DEFAULT_DAILY_HOUR,
    DEFAULT_TIMEZONE,
    describe,
    parse_cadence,
)
from .models.alert_unit import AlertUnit, Rows

logger = logging.getLogger(__name__)


class AlertRegistry:
    """Ordered set of alert units keyed by name.

    Units run in registration order. Names are the state keys, so they must
    be unique.
    """

    def __init__(
        self,
        *,
        daily_hour: int = DEFAULT_DAILY_HOUR,
        timezone: str = DEFAULT_TIMEZONE,
    ) -> None:
        self.daily_hour = daily_hour
        self.timezone = timezone
        self._units: dict[str, AlertUnit] = {}

    def add(self, unit: AlertUnit) -> AlertUnit:
        if not unit.name:
            raise ValueError("Alert unit needs a name")
        if unit.name in self._units:
            raise ValueError(f"Duplicate alert name: {unit.name!r}")
        self._units[unit.name] = unit
        logger.info("Loaded alert: %s (%s)", unit.name, describe(unit.cadence))
        return unit

    def register(
        self,
        name: str,
        schedule: str | None,
        query: str,
        condition: Callable[[Rows | None], bool],
        message: Callable[[Rows | None], str],
    ) -> AlertUnit:
        cadence = parse_cadence(
            schedule, daily_hour=self.daily_hour, timezone=self.timezone
        )
        return self.add(
            AlertUnit(
                name=name,
                cadence=cadence,
                query=query,
                condition=condition,
                message=message,
                schedule=schedule or "",
            )
        )

    def get(self, name: str) -> AlertUnit | None:
        return self._units.get(name)

    def names(self) -> list[str]:
        return list(self._units)

    def __iter__(self) -> Iterator[AlertUnit]:
        return iter(list(self._units.values()))

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, name: object) -> bool:
        return name in self._units
