from __future__ import annotations

import math
from typing import TYPE_CHECKING, Callable, Dict, Optional

from pygame.math import Vector2

from ..core.config import CursorConfig, FlowPolicy
from ..utils.math2d import angle_between, mag, mult, normalize

if TYPE_CHECKING:
    from ..core.boid import Boid

FlowFn = Callable[["Boid", Vector2, CursorConfig], Optional[Vector2]]


def _to_cursor(boid: Boid, cursor: Vector2, config: CursorConfig) -> tuple[Vector2, float] | None:
    to_cursor = Vector2(cursor.x - boid.position.x, cursor.y - boid.position.y)
    distance = mag(to_cursor)
    if distance >= config.interaction_radius:
        return None
    return to_cursor, distance


def circular_flow(boid: Boid, cursor: Vector2, config: CursorConfig) -> Vector2 | None:
    """Swirl agents around the cursor, each turning the way it already leans."""
    found = _to_cursor(boid, cursor, config)
    if found is None:
        return None
    to_cursor, distance = found
    tangent = normalize(Vector2(-to_cursor.y, to_cursor.x))
    if angle_between(to_cursor, boid.velocity) < 0:
        mult(tangent, -1.0)
    return mult(tangent, math.exp(-distance / config.circular_decay) * config.strength)


def directional_flow(boid: Boid, cursor: Vector2, config: CursorConfig) -> Vector2 | None:
    """Scatter agents heading away from the cursor, draw in the ones heading toward it."""
    found = _to_cursor(boid, cursor, config)
    if found is None:
        return None
    to_cursor, distance = found
    magnitude = math.exp(-distance / config.directional_decay) * config.strength
    if abs(angle_between(to_cursor, boid.velocity)) > math.pi / 2:
        force = normalize(Vector2(boid.velocity))
    else:
        force = normalize(to_cursor)
    return mult(force, magnitude)


_POLICIES: Dict[FlowPolicy, FlowFn] = {
    FlowPolicy.CIRCULAR: circular_flow,
    FlowPolicy.DIRECTIONAL: directional_flow,
}


def flow_force(policy: FlowPolicy, boid: Boid, cursor: Vector2, config: CursorConfig) -> Vector2 | None:
    return _POLICIES[FlowPolicy(policy)](boid, cursor, config)
