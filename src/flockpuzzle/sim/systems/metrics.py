from __future__ import annotations

from typing import TYPE_CHECKING

from ..types.metrics import TickMetrics

if TYPE_CHECKING:
    from ..core.flock import Flock, FlockStepStats
    from ..core.puzzle import PuzzleState


def average_speed(flock: Flock) -> float:
    population = len(flock)
    if population == 0:
        return 0.0
    return sum(boid.velocity.length() for boid in flock) / population


def create_metrics(
    tick: int,
    flock: Flock,
    stats: FlockStepStats,
    puzzle: PuzzleState,
    puzzle_moves: int,
    duration_ms: float,
) -> TickMetrics:
    return TickMetrics(
        tick=tick,
        population=len(flock),
        groups=len(flock.groups),
        average_speed=average_speed(flock),
        neighbor_checks=stats.neighbor_checks,
        perceived_neighbors=stats.perceived_neighbors,
        cursor_affected=stats.cursor_affected,
        flow_policy=flock.flow_policy.value,
        puzzle_moves=puzzle_moves,
        solved=puzzle.is_solved(),
        tick_duration_ms=duration_ms,
    )
