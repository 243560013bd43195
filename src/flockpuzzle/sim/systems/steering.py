from __future__ import annotations

from pygame.math import Vector2

from ..utils.math2d import dist, div, limit, set_mag, sub


def alignment(velocity_sum: Vector2, total: int, velocity: Vector2, max_speed: float, max_force: float) -> Vector2:
    """Steer toward the mean heading of the neighborhood at full speed."""
    steer = Vector2(velocity_sum)
    div(steer, total)
    set_mag(steer, max_speed)
    sub(steer, velocity)
    return limit(steer, max_force)


def cohesion(offset_sum: Vector2, total: int, max_force: float) -> Vector2:
    """Steer toward the neighborhood centroid.

    ``offset_sum`` holds neighbor positions relative to the agent, so the mean
    offset is already "centroid minus own position".
    """
    steer = Vector2(offset_sum)
    div(steer, total)
    return limit(steer, max_force)


def separation(push_sum: Vector2, total: int, max_force: float) -> Vector2:
    # Averaged over every perceived neighbor, not only the crowding ones.
    steer = Vector2(push_sum)
    div(steer, total)
    return limit(steer, max_force)


def seek(position: Vector2, target: Vector2, strength: float) -> Vector2:
    steer = Vector2(target.x - position.x, target.y - position.y)
    return limit(steer, strength)


def flee(position: Vector2, threat: Vector2, strength: float, radius: float) -> Vector2 | None:
    """Linear falloff push away from ``threat``; None when outside ``radius``."""
    if radius <= 0:
        return None
    d = dist(position, threat)
    if d >= radius:
        return None
    factor = (1.0 - d / radius) * strength
    return Vector2((position.x - threat.x) * factor, (position.y - threat.y) * factor)
