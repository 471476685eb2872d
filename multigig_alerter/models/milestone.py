"""Milestone threshold dataclass."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Milestone:
    id: str
    threshold: float
    label: str = ""
    emoji: str = ""
    title: str = ""
