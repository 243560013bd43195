from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

from ..core.boid import Boid
from ..core.config import BoidColor
from ..core.errors import InvalidInput
from ..types.bounds import WorldBounds


@dataclass(frozen=True, slots=True)
class Viewport:
    x: float
    y: float
    width: float
    height: float

    def contains(self, x: float, y: float) -> bool:
        return self.x <= x < self.x + self.width and self.y <= y < self.y + self.height


@dataclass(frozen=True, slots=True)
class TileBoid:
    id: int
    x: float
    y: float
    rotation: float
    group: BoidColor


def calculate_tile_dimensions(bounds: WorldBounds, rows: int, cols: int, gap: float) -> Tuple[int, int]:
    width = math.floor((bounds.width - gap * (cols + 1)) / cols)
    height = math.floor((bounds.height - gap * (rows + 1)) / rows)
    if width <= 0 or height <= 0:
        raise InvalidInput(
            f"world {bounds.width}x{bounds.height} is too small for {rows}x{cols} tiles with gap {gap}"
        )
    return width, height


@dataclass(frozen=True, slots=True)
class TileLayout:
    """Geometry of the puzzle grid laid over the world.

    Every tile shows the part of the flock under its home slot, wherever the
    tile currently sits in the grid.
    """

    rows: int
    cols: int
    gap: float
    tile_width: int
    tile_height: int
    origin_x: float
    origin_y: float

    @classmethod
    def from_bounds(cls, bounds: WorldBounds, rows: int = 3, cols: int = 3, gap: float = 8.0) -> "TileLayout":
        tile_width, tile_height = calculate_tile_dimensions(bounds, rows, cols, gap)
        grid_width = cols * (tile_width + gap) - gap
        grid_height = rows * (tile_height + gap) - gap
        return cls(
            rows=rows,
            cols=cols,
            gap=gap,
            tile_width=tile_width,
            tile_height=tile_height,
            origin_x=(bounds.width - grid_width) / 2,
            origin_y=(bounds.height - grid_height) / 2,
        )

    @property
    def tile_count(self) -> int:
        return self.rows * self.cols

    def home_of(self, tile_id: int) -> Tuple[int, int]:
        if isinstance(tile_id, bool) or not isinstance(tile_id, int) or not 0 <= tile_id < self.tile_count:
            raise InvalidInput(f"tile id must be in 0..{self.tile_count - 1}, got {tile_id!r}")
        return tile_id // self.cols, tile_id % self.cols

    def slot_offset(self, row: int, col: int) -> Tuple[float, float]:
        return col * (self.tile_width + self.gap), row * (self.tile_height + self.gap)

    def viewport(self, tile_id: int) -> Viewport:
        row, col = self.home_of(tile_id)
        offset_x, offset_y = self.slot_offset(row, col)
        return Viewport(self.origin_x + offset_x, self.origin_y + offset_y, self.tile_width, self.tile_height)

    def viewports(self) -> Dict[int, Viewport]:
        return {tile_id: self.viewport(tile_id) for tile_id in range(self.tile_count)}


def visible_boids(boids: Iterable[Boid], viewport: Viewport, bounds: WorldBounds) -> List[TileBoid]:
    visible = []
    for boid in boids:
        x = boid.position.x % bounds.width
        y = boid.position.y % bounds.height
        if not viewport.contains(x, y):
            continue
        visible.append(TileBoid(boid.id, x - viewport.x, y - viewport.y, boid.rotation, boid.group))
    return visible
