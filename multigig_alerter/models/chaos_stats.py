"""Chaos scheduler snapshot dataclass."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ChaosUnitStats:
    name: str
    last_fire: int
    hours_ago: float
    chance: float
