from __future__ import annotations

import logging
from dataclasses import dataclass
from time import perf_counter
from typing import Callable, Dict, List, Optional, Tuple

from pygame.math import Vector2

from ..systems import metrics as metrics_system
from ..systems.viewport import TileBoid, TileLayout, visible_boids
from ..types.bounds import WorldBounds
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotLayout, SnapshotMetadata, SnapshotPuzzle
from .config import FlowPolicy, SimulationConfig
from .flock import Flock, FlockStepStats
from .puzzle import Cell, PuzzleState
from .rng import DeterministicRng

logger = logging.getLogger(__name__)

_PUZZLE_RNG_SALT = 0x5A1D1E7B0A2D5EED


def _derive_stream_seed(seed: int, salt: int) -> int:
    return (int(seed) ^ int(salt)) & 0xFFFFFFFFFFFFFFFF


SolvedListener = Callable[["World"], None]


@dataclass(frozen=True, slots=True)
class MoveResult:
    moved: bool
    tile_id: Optional[int]
    source: Cell
    target: Optional[Cell]
    solved: bool


class World:
    def __init__(self, config: SimulationConfig):
        self._config = config
        self._bounds = WorldBounds(config.world_width, config.world_height)
        self._rng = DeterministicRng(config.seed)
        self._puzzle_rng = DeterministicRng(_derive_stream_seed(config.seed, _PUZZLE_RNG_SALT))
        self._flock = Flock(self._bounds, config.flock, config.cursor, self._rng)
        self._puzzle = PuzzleState(config.puzzle.rows, config.puzzle.cols, rng=self._puzzle_rng)
        self._layout = TileLayout.from_bounds(self._bounds, config.puzzle.rows, config.puzzle.cols, config.layout.gap)
        self._solved_listeners: List[SolvedListener] = []
        self._moves = 0
        self._metrics: TickMetrics | None = None
        self._bootstrap()

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def bounds(self) -> WorldBounds:
        return self._bounds

    @property
    def flock(self) -> Flock:
        return self._flock

    @property
    def puzzle(self) -> PuzzleState:
        return self._puzzle

    @property
    def layout(self) -> TileLayout:
        return self._layout

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def moves(self) -> int:
        return self._moves

    def _bootstrap(self) -> None:
        self._flock.populate()
        if self._config.puzzle.shuffle_on_start:
            self._puzzle.shuffle(self._config.puzzle.shuffle_moves)

    def reset(self) -> None:
        self._rng.reset()
        self._puzzle_rng.reset()
        self._flock.clear()
        self._flock.set_cursor(None)
        self._flock.flow_policy = self._config.cursor.policy
        self._puzzle.reset()
        self._moves = 0
        self._metrics = None
        self._bootstrap()

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        stats: FlockStepStats = self._flock.step()
        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            tick, self._flock, stats, self._puzzle, self._moves, duration_ms
        )
        logger.debug(
            "tick=%d boids=%d cursor_affected=%d %.2fms",
            tick,
            self._metrics.population,
            stats.cursor_affected,
            duration_ms,
        )
        return self._metrics

    def set_cursor(self, point: Vector2 | Tuple[float, float] | None) -> None:
        self._flock.set_cursor(point)

    def toggle_flow_policy(self) -> FlowPolicy:
        return self._flock.toggle_flow_policy()

    def on_solved(self, listener: SolvedListener) -> None:
        self._solved_listeners.append(listener)

    def select_tile(self, row: int, col: int) -> MoveResult:
        was_solved = self._puzzle.is_solved()
        target = self._puzzle.find_empty_slot()
        tile_id = self._puzzle.tile_at(row, col)
        moved = self._puzzle.move_tile(row, col)
        if not moved:
            return MoveResult(False, tile_id, (row, col), None, was_solved)
        self._moves += 1
        solved = self._puzzle.is_solved()
        if solved and not was_solved:
            logger.info("Puzzle solved after %d moves", self._moves)
            for listener in list(self._solved_listeners):
                listener(self)
        return MoveResult(True, tile_id, (row, col), target, solved)

    def shuffle_puzzle(self, times: int | None = None) -> int:
        count = self._config.puzzle.shuffle_moves if times is None else times
        moves = self._puzzle.shuffle(count)
        self._moves = 0
        return moves

    def tile_view(self, tile_id: int) -> List[TileBoid]:
        return visible_boids(self._flock, self._layout.viewport(tile_id), self._bounds)

    def tile_views(self) -> Dict[int, List[TileBoid]]:
        boids = self._flock.boids
        return {
            tile_id: visible_boids(boids, viewport, self._bounds)
            for tile_id, viewport in self._layout.viewports().items()
        }

    def snapshot(self, tick: int) -> Snapshot:
        boids = [
            {
                "id": boid.id,
                "x": boid.position.x,
                "y": boid.position.y,
                "vx": boid.velocity.x,
                "vy": boid.velocity.y,
                "rotation": boid.rotation,
                "group": boid.group.value,
                "color": boid.color,
            }
            for boid in self._flock
        ]
        puzzle = SnapshotPuzzle(
            rows=self._puzzle.rows,
            cols=self._puzzle.cols,
            grid=self._puzzle.grid,
            tiles={str(tile): [row, col] for tile, (row, col) in self._puzzle.tile_positions().items()},
            solved=self._puzzle.is_solved(),
            moves=self._moves,
        )
        layout = SnapshotLayout(
            tile_width=self._layout.tile_width,
            tile_height=self._layout.tile_height,
            gap=self._layout.gap,
            origin_x=self._layout.origin_x,
            origin_y=self._layout.origin_y,
        )
        cursor = self._flock.cursor
        metadata = SnapshotMetadata(
            world_width=self._bounds.width,
            world_height=self._bounds.height,
            sim_dt=self._config.time_step,
            tick_rate=1.0 / self._config.time_step if self._config.time_step > 0 else 0.0,
            seed=self._config.seed,
            config_version=self._config.config_version,
            flow_policy=self._flock.flow_policy.value,
            cursor=None if cursor is None else [cursor.x, cursor.y],
        )
        return Snapshot(tick=tick, metrics=self._metrics, boids=boids, puzzle=puzzle, layout=layout, metadata=metadata)
