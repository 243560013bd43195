from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional

from pygame.math import Vector2

from ..systems import flow
from ..types.bounds import WorldBounds
from ..utils.math2d import coerce_vector
from .boid import Boid
from .config import BoidColor, CursorConfig, FlockConfig, FlowPolicy
from .rng import DeterministicRng

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FlockStepStats:
    neighbor_checks: int = 0
    perceived_neighbors: int = 0
    cursor_affected: int = 0


class Flock:
    """Owns every boid, grouped by color, and advances them one tick at a time.

    Boids only flock with their own group. The cursor flow field, when a cursor
    is set, acts on every group alike.
    """

    def __init__(
        self,
        bounds: WorldBounds,
        config: FlockConfig | None = None,
        cursor_config: CursorConfig | None = None,
        rng: DeterministicRng | None = None,
    ) -> None:
        self._bounds = bounds
        self._config = config or FlockConfig()
        self._cursor_config = cursor_config or CursorConfig()
        self._rng = rng or DeterministicRng(None)
        self._groups: Dict[BoidColor, List[Boid]] = {}
        self._cursor: Vector2 | None = None
        self._flow_policy = FlowPolicy(self._cursor_config.policy)
        self._next_id = 0

    @property
    def bounds(self) -> WorldBounds:
        return self._bounds

    @property
    def config(self) -> FlockConfig:
        return self._config

    @property
    def boids(self) -> List[Boid]:
        return [boid for members in self._groups.values() for boid in members]

    @property
    def groups(self) -> Dict[BoidColor, List[Boid]]:
        return {color: list(members) for color, members in self._groups.items()}

    def group(self, color: BoidColor) -> List[Boid]:
        return list(self._groups.get(BoidColor(color), []))

    def __len__(self) -> int:
        return sum(len(members) for members in self._groups.values())

    def __iter__(self) -> Iterator[Boid]:
        for members in self._groups.values():
            yield from members

    def populate(self, groups: Optional[Iterable[BoidColor]] = None, per_group: Optional[int] = None) -> None:
        colors = list(self._config.groups if groups is None else groups)
        count = self._config.boids_per_group if per_group is None else per_group
        for color in colors:
            for _ in range(count):
                self._insert(
                    Boid.spawn(
                        self._take_id(),
                        BoidColor(color),
                        self._bounds,
                        self._rng,
                        max_speed=self._config.max_speed,
                        max_force=self._config.max_force,
                    )
                )
        logger.debug("Populated flock with %d boids across %d groups", len(self), len(self._groups))

    def add_boid(self, x: float, y: float, group: BoidColor = BoidColor.PINK) -> Boid:
        position = coerce_vector((x, y), "position")
        boid = Boid.spawn(
            self._take_id(),
            BoidColor(group),
            self._bounds,
            self._rng,
            max_speed=self._config.max_speed,
            max_force=self._config.max_force,
            position=Vector2(position),
        )
        self._insert(boid)
        return boid

    def remove_boid(self, boid: Boid) -> bool:
        members = self._groups.get(boid.group)
        if not members:
            return False
        for index, member in enumerate(members):
            if member is boid:
                del members[index]
                if not members:
                    del self._groups[boid.group]
                return True
        return False

    def clear(self) -> None:
        self._groups.clear()
        self._next_id = 0

    @property
    def cursor(self) -> Vector2 | None:
        return None if self._cursor is None else Vector2(self._cursor)

    def set_cursor(self, point: Vector2 | tuple[float, float] | None) -> None:
        self._cursor = None if point is None else Vector2(coerce_vector(point, "cursor"))

    @property
    def flow_policy(self) -> FlowPolicy:
        return self._flow_policy

    @flow_policy.setter
    def flow_policy(self, policy: FlowPolicy) -> None:
        self._flow_policy = FlowPolicy(policy)

    def toggle_flow_policy(self) -> FlowPolicy:
        self._flow_policy = self._flow_policy.toggled()
        logger.info("Switched to %s flow", self._flow_policy.value)
        return self._flow_policy

    def step(self) -> FlockStepStats:
        stats = FlockStepStats()
        bounds = self._bounds
        config = self._config
        cursor = self._cursor

        # Forces first, from positions nobody has moved yet this tick.
        for members in self._groups.values():
            for boid in members:
                stats.neighbor_checks += len(members) - 1
                stats.perceived_neighbors += boid.flock(members, bounds, config)
                if cursor is None:
                    continue
                force = flow.flow_force(self._flow_policy, boid, cursor, self._cursor_config)
                if force is not None:
                    boid.apply_force(force)
                    stats.cursor_affected += 1

        for members in self._groups.values():
            for boid in members:
                boid.integrate(bounds)
        return stats

    def _take_id(self) -> int:
        boid_id = self._next_id
        self._next_id += 1
        return boid_id

    def _insert(self, boid: Boid) -> None:
        self._groups.setdefault(boid.group, []).append(boid)
