from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass, field

from pygame.math import Vector2

from ..systems import steering
from ..types.bounds import WorldBounds
from ..utils.math2d import coerce_vector, heading_from_velocity, limit, wrap_position, wrapped_offset
from .config import BoidColor, FlockConfig
from .errors import InvalidInput
from .rng import DeterministicRng

logger = logging.getLogger(__name__)

DEFAULT_FLOCK = FlockConfig()


@dataclass(slots=True)
class Boid:
    id: int
    group: BoidColor
    position: Vector2
    velocity: Vector2
    acceleration: Vector2 = field(default_factory=Vector2)
    max_speed: float = DEFAULT_FLOCK.max_speed
    max_force: float = DEFAULT_FLOCK.max_force
    rotation: float = 0.0

    @classmethod
    def spawn(
        cls,
        boid_id: int,
        group: BoidColor,
        bounds: WorldBounds,
        rng: DeterministicRng,
        max_speed: float = DEFAULT_FLOCK.max_speed,
        max_force: float = DEFAULT_FLOCK.max_force,
        position: Vector2 | None = None,
    ) -> "Boid":
        if position is None:
            position = Vector2(rng.next_range(0.0, bounds.width), rng.next_range(0.0, bounds.height))
        else:
            position = Vector2(position)
        wrap_position(position, bounds)
        velocity = rng.next_unit_circle() * max_speed
        return cls(
            id=boid_id,
            group=group,
            position=position,
            velocity=velocity,
            max_speed=max_speed,
            max_force=max_force,
            rotation=heading_from_velocity(velocity),
        )

    @property
    def color(self) -> int:
        return self.group.rgb

    def apply_force(self, force: Vector2) -> None:
        vector = coerce_vector(force, "force")
        self.acceleration.x += vector.x
        self.acceleration.y += vector.y

    def flock(self, neighbors: Iterable["Boid"], bounds: WorldBounds, config: FlockConfig | None = None) -> int:
        """Accumulate alignment, cohesion and separation from same-group neighbors.

        Distances are measured on the torus described by ``bounds``; neighbors
        are seen at their nearest image. Returns how many neighbors were
        perceived. Nothing is applied when that count is zero.
        """
        if neighbors is None:
            raise InvalidInput("neighbors are required")
        if isinstance(neighbors, (str, bytes, Boid)) or not isinstance(neighbors, Iterable):
            raise InvalidInput(f"neighbors must be a collection of boids, got {type(neighbors).__name__}")
        config = DEFAULT_FLOCK if config is None else config

        perception_sq = config.perception_radius * config.perception_radius
        velocity_sum = Vector2()
        offset_sum = Vector2()
        push_sum = Vector2()
        total = 0

        for other in neighbors:
            if not isinstance(other, Boid):
                logger.warning("Skipping invalid flock member %r", other)
                continue
            if other is self or other.group != self.group:
                continue
            offset = wrapped_offset(self.position, other.position, bounds)
            dist_sq = offset.x * offset.x + offset.y * offset.y
            if dist_sq >= perception_sq:
                continue
            velocity_sum.x += other.velocity.x
            velocity_sum.y += other.velocity.y
            offset_sum.x += offset.x
            offset_sum.y += offset.y
            d = math.sqrt(dist_sq)
            if d < config.separation_radius:
                factor = 1.0 / max(d, config.min_separation_distance)
                push_sum.x -= offset.x * factor
                push_sum.y -= offset.y * factor
            total += 1

        if total == 0:
            return 0

        align = steering.alignment(velocity_sum, total, self.velocity, self.max_speed, self.max_force)
        cohere = steering.cohesion(offset_sum, total, self.max_force)
        separate = steering.separation(push_sum, total, self.max_force)
        self.apply_force(align * config.alignment_weight)
        self.apply_force(cohere * config.cohesion_weight)
        self.apply_force(separate * config.separation_weight)
        return total

    def attract_to(self, point: Vector2, strength: float = 0.05) -> None:
        target = coerce_vector(point, "point")
        self.apply_force(steering.seek(self.position, target, strength))

    def repel_from(self, point: Vector2, strength: float = 0.1, radius: float = 100.0) -> None:
        threat = coerce_vector(point, "point")
        force = steering.flee(self.position, threat, strength, radius)
        if force is not None:
            self.apply_force(force)

    def integrate(self, bounds: WorldBounds) -> None:
        self.velocity.x += self.acceleration.x
        self.velocity.y += self.acceleration.y
        limit(self.velocity, self.max_speed)
        self.position.x += self.velocity.x
        self.position.y += self.velocity.y
        self.rotation = heading_from_velocity(self.velocity, self.rotation)
        self.acceleration.update(0.0, 0.0)
        wrap_position(self.position, bounds)

    def update(self, neighbors: Iterable["Boid"], bounds: WorldBounds, config: FlockConfig | None = None) -> None:
        self.flock(neighbors, bounds, config)
        self.integrate(bounds)
