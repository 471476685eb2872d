"""Query performance counters."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class QueryStats:
    count: int = 0
    failures: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0
    last_result_count: int = 0
    last_run_ts: float | None = None

    @property
    def average_ms(self) -> float:
        return self.total_ms / self.count if self.count else 0.0


@dataclass
class QuerySummary:
    alerts: int = 0
    queries: int = 0
    failures: int = 0
    average_ms: float = 0.0
    # (label, average ms, max ms), slowest first
    slow: list[tuple[str, float, float]] = field(default_factory=list)
