"""Alert unit definition."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from ..cadence import Cadence

Row = Mapping[str, Any]
Rows = Sequence[Row]


@dataclass(frozen=True)
class AlertUnit:
    name: str
    cadence: Cadence
    query: str
    condition: Callable[[Rows | None], bool]
    message: Callable[[Rows | None], str]
    schedule: str = ""
