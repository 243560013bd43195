from __future__ import annotations

import math
import random
from collections.abc import Sequence
from typing import TYPE_CHECKING

from pygame.math import Vector2

from ..core.errors import InvalidInput

if TYPE_CHECKING:
    from ..core.rng import DeterministicRng
    from ..types.bounds import WorldBounds

ZERO = Vector2()

# In-place helpers mutate and return their first argument so calls can chain.
# Pure helpers (mag, dist, angle_between, copy) never touch their inputs.


def add(vector: Vector2, other: Vector2) -> Vector2:
    vector.x += other.x
    vector.y += other.y
    return vector


def sub(vector: Vector2, other: Vector2) -> Vector2:
    vector.x -= other.x
    vector.y -= other.y
    return vector


def mult(vector: Vector2, scalar: float) -> Vector2:
    vector.x *= scalar
    vector.y *= scalar
    return vector


def div(vector: Vector2, scalar: float) -> Vector2:
    if scalar == 0:
        return vector
    vector.x /= scalar
    vector.y /= scalar
    return vector


def mag(vector: Vector2) -> float:
    return math.sqrt(vector.x * vector.x + vector.y * vector.y)


def normalize(vector: Vector2) -> Vector2:
    m = mag(vector)
    if m != 0:
        div(vector, m)
    return vector


def set_mag(vector: Vector2, length: float) -> Vector2:
    return mult(normalize(vector), length)


def limit(vector: Vector2, max_length: float) -> Vector2:
    magnitude_sq = vector.x * vector.x + vector.y * vector.y
    if magnitude_sq > max_length * max_length:
        mult(normalize(vector), max_length)
    return vector


def copy(vector: Vector2) -> Vector2:
    return Vector2(vector.x, vector.y)


def dist(a: Vector2, b: Vector2) -> float:
    dx = a.x - b.x
    dy = a.y - b.y
    return math.sqrt(dx * dx + dy * dy)


def angle_between(a: Vector2, b: Vector2) -> float:
    """Signed angle in radians that rotates ``a`` onto ``b``.

    Positive when the 2D cross product ``a x b`` is positive (``b`` lies
    clockwise of ``a`` in screen coordinates, where y points down). Returns 0
    when either vector has zero length.
    """
    if (a.x == 0 and a.y == 0) or (b.x == 0 and b.y == 0):
        return 0.0
    cross = a.x * b.y - a.y * b.x
    dot = a.x * b.x + a.y * b.y
    return math.atan2(cross, dot)


def random_2d(rng: DeterministicRng | None = None) -> Vector2:
    if rng is not None:
        return rng.next_unit_circle()
    angle = random.uniform(0.0, 2.0 * math.pi)
    return Vector2(math.cos(angle), math.sin(angle))


def heading_from_velocity(vector: Vector2, previous: float = 0.0) -> float:
    if vector.x == 0 and vector.y == 0:
        return previous
    return math.atan2(vector.y, vector.x)


def coerce_vector(value: object, name: str = "vector") -> Vector2:
    """Return ``value`` as a Vector2, raising InvalidInput when it is absent or malformed."""
    if value is None:
        raise InvalidInput(f"{name} is required")
    if isinstance(value, Vector2):
        x, y = value.x, value.y
    elif isinstance(value, Sequence) and not isinstance(value, (str, bytes)) and len(value) == 2:
        x, y = value[0], value[1]
        if not all(isinstance(c, (int, float)) and not isinstance(c, bool) for c in (x, y)):
            raise InvalidInput(f"{name} must hold two numbers, got {value!r}")
    else:
        raise InvalidInput(f"{name} must be a Vector2 or an (x, y) pair, got {type(value).__name__}")
    if not (math.isfinite(x) and math.isfinite(y)):
        raise InvalidInput(f"{name} must be finite, got ({x}, {y})")
    if isinstance(value, Vector2):
        return value
    return Vector2(float(x), float(y))


def wrapped_delta(a: float, b: float, extent: float) -> float:
    """Absolute distance between two coordinates on an axis whose ends connect."""
    delta = abs(a - b)
    if delta > extent * 0.5:
        delta = extent - delta
    return delta


def _signed_wrapped(delta: float, extent: float) -> float:
    half = extent * 0.5
    if delta > half:
        return delta - extent
    if delta < -half:
        return delta + extent
    return delta


def wrapped_offset(origin: Vector2, target: Vector2, bounds: WorldBounds) -> Vector2:
    """Offset from ``origin`` to the nearest torus image of ``target``."""
    return Vector2(
        _signed_wrapped(target.x - origin.x, bounds.width),
        _signed_wrapped(target.y - origin.y, bounds.height),
    )


def wrapped_distance(a: Vector2, b: Vector2, bounds: WorldBounds) -> float:
    dx = wrapped_delta(a.x, b.x, bounds.width)
    dy = wrapped_delta(a.y, b.y, bounds.height)
    return math.sqrt(dx * dx + dy * dy)


def _wrap_coordinate(value: float, extent: float) -> float:
    wrapped = value % extent
    # -1e-17 % 100.0 == 100.0 in floating point
    if wrapped >= extent:
        return 0.0
    return wrapped


def wrap_position(position: Vector2, bounds: WorldBounds) -> Vector2:
    position.x = _wrap_coordinate(position.x, bounds.width)
    position.y = _wrap_coordinate(position.y, bounds.height)
    return position
