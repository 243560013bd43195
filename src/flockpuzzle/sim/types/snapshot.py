from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: Optional[TickMetrics]
    boids: List[Dict[str, Any]]
    puzzle: "SnapshotPuzzle"
    layout: "SnapshotLayout"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotPuzzle:
    rows: int
    cols: int
    grid: List[List[Optional[int]]]
    tiles: Dict[str, List[int]]
    solved: bool
    moves: int


@dataclass(slots=True)
class SnapshotLayout:
    tile_width: int
    tile_height: int
    gap: float
    origin_x: float
    origin_y: float


@dataclass(slots=True)
class SnapshotMetadata:
    world_width: float
    world_height: float
    sim_dt: float
    tick_rate: float
    seed: int
    config_version: str
    flow_policy: str
    cursor: Optional[List[float]]
