from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    groups: int
    average_speed: float
    neighbor_checks: int
    perceived_neighbors: int
    cursor_affected: int
    flow_policy: str
    puzzle_moves: int
    solved: bool
    tick_duration_ms: float = 0.0
