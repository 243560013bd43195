from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import InvalidInput, InvariantViolation
from .rng import DeterministicRng

logger = logging.getLogger(__name__)

# None marks the empty slot.
TileId = Optional[int]
Cell = Tuple[int, int]

_ORTHOGONAL = ((-1, 0), (1, 0), (0, -1), (0, 1))


def _require_int(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInput(f"{name} must be an integer, got {value!r}")
    return value


class PuzzleState:
    """Sliding-tile puzzle grid with exactly one empty slot.

    Tiles are numbered ``0 .. rows * cols - 2`` in row-major order; the solved
    grid holds each tile at its own index with the empty slot last.
    """

    def __init__(self, rows: int = 3, cols: int = 3, rng: DeterministicRng | None = None) -> None:
        self._rows = _require_int(rows, "rows")
        self._cols = _require_int(cols, "cols")
        if self._rows < 2 or self._cols < 2:
            raise InvalidInput(f"puzzle needs at least 2x2 cells, got {rows}x{cols}")
        self._rng = rng or DeterministicRng(None)
        self._grid: List[List[TileId]] = self._solved_grid()

    @classmethod
    def from_grid(cls, grid: Sequence[Sequence[TileId]], rng: DeterministicRng | None = None) -> "PuzzleState":
        rows = len(grid)
        cols = len(grid[0]) if rows else 0
        state = cls(rows, cols, rng=rng)
        if any(len(row) != cols for row in grid):
            raise InvalidInput("puzzle rows must all have the same length")
        cells = [cell for row in grid for cell in row]
        expected = sorted(range(rows * cols - 1))
        tiles = sorted(cell for cell in cells if cell is not None)
        if cells.count(None) != 1 or tiles != expected:
            raise InvalidInput(f"grid must hold tiles 0..{rows * cols - 2} exactly once plus one empty slot")
        state._grid = [list(row) for row in grid]
        return state

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    def _solved_grid(self) -> List[List[TileId]]:
        grid: List[List[TileId]] = [
            [self.pos_to_index(row, col) for col in range(self._cols)] for row in range(self._rows)
        ]
        grid[-1][-1] = None
        return grid

    def reset(self) -> None:
        self._grid = self._solved_grid()

    def index_to_pos(self, index: int) -> Cell:
        return index // self._cols, index % self._cols

    def pos_to_index(self, row: int, col: int) -> int:
        return row * self._cols + col

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self._rows and 0 <= col < self._cols

    @property
    def grid(self) -> List[List[TileId]]:
        return [list(row) for row in self._grid]

    @property
    def flat_grid(self) -> List[TileId]:
        return [cell for row in self._grid for cell in row]

    def tile_at(self, row: int, col: int) -> TileId:
        row = _require_int(row, "row")
        col = _require_int(col, "col")
        if not self.in_bounds(row, col):
            raise InvalidInput(f"cell ({row}, {col}) is outside the {self._rows}x{self._cols} grid")
        return self._grid[row][col]

    def find_tile_position(self, tile_id: TileId) -> Optional[Cell]:
        for row in range(self._rows):
            for col in range(self._cols):
                if self._grid[row][col] == tile_id:
                    return row, col
        return None

    def find_empty_slot(self) -> Cell:
        position = self.find_tile_position(None)
        if position is None:
            raise InvariantViolation("Empty slot not found")
        return position

    def tile_positions(self) -> Dict[int, Cell]:
        return {
            tile: (row, col)
            for row, cells in enumerate(self._grid)
            for col, tile in enumerate(cells)
            if tile is not None
        }

    def can_move(self, row: int, col: int) -> bool:
        row = _require_int(row, "row")
        col = _require_int(col, "col")
        if not self.in_bounds(row, col):
            return False
        empty_row, empty_col = self.find_empty_slot()
        return abs(row - empty_row) + abs(col - empty_col) == 1

    def movable_cells(self) -> List[Cell]:
        empty_row, empty_col = self.find_empty_slot()
        cells = []
        for d_row, d_col in _ORTHOGONAL:
            row, col = empty_row + d_row, empty_col + d_col
            if self.in_bounds(row, col) and self._grid[row][col] is not None:
                cells.append((row, col))
        return cells

    def move_tile(self, row: int, col: int) -> bool:
        """Slide the tile at (row, col) into the empty slot. Returns False when it is not adjacent."""
        if not self.can_move(row, col):
            return False
        empty_row, empty_col = self.find_empty_slot()
        self._grid[empty_row][empty_col] = self._grid[row][col]
        self._grid[row][col] = None
        return True

    def is_solved(self) -> bool:
        last = self._rows * self._cols - 1
        for index, tile in enumerate(self.flat_grid):
            if index == last:
                return tile is None
            if tile != index:
                return False
        return True

    def count_inversions(self) -> int:
        tiles = [tile for tile in self.flat_grid if tile is not None]
        inversions = 0
        for i, tile in enumerate(tiles):
            for other in tiles[i + 1:]:
                if tile > other:
                    inversions += 1
        return inversions

    def is_solvable(self) -> bool:
        inversions = self.count_inversions()
        if self._cols % 2 == 1:
            return inversions % 2 == 0
        empty_row, _ = self.find_empty_slot()
        rows_from_bottom = self._rows - empty_row
        return (inversions + rows_from_bottom) % 2 == 1

    def shuffle(self, times: int = 50) -> int:
        """Make ``times`` random valid moves, then one more if the inversion count came out odd.

        The parity fix-up is the 3x3 convention; on an odd-width grid random
        slides never change inversion parity, so it does not fire there.
        Returns the number of moves made.
        """
        times = _require_int(times, "times")
        if times < 0:
            raise InvalidInput(f"shuffle count must be >= 0, got {times}")
        moves = 0
        for _ in range(times):
            moves += self._random_move()
        if self.count_inversions() % 2 == 1:
            moves += self._random_move()
        logger.info("Shuffled puzzle with %d moves", moves)
        return moves

    def _random_move(self) -> int:
        target = self._rng.sample_choice(self.movable_cells())
        if target is None:
            return 0
        return int(self.move_tile(*target))
