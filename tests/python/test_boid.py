from __future__ import annotations

import logging

import pytest
from pygame.math import Vector2
from pytest import approx

from flockpuzzle.sim.core.boid import Boid
from flockpuzzle.sim.core.config import BoidColor, FlockConfig
from flockpuzzle.sim.core.errors import InvalidInput
from flockpuzzle.sim.core.rng import DeterministicRng
from flockpuzzle.sim.types.bounds import WorldBounds

BOUNDS = WorldBounds(800.0, 600.0)


def _make_boid(boid_id: int, x: float, y: float, vx: float = 0.0, vy: float = 1.0, group=BoidColor.PINK) -> Boid:
    return Boid(id=boid_id, group=group, position=Vector2(x, y), velocity=Vector2(vx, vy))


def test_boid_uses_slots_and_isolates_defaults():
    a = _make_boid(1, 0.0, 0.0)
    b = _make_boid(2, 0.0, 0.0)
    assert not hasattr(a, "__dict__")
    assert a.acceleration is not b.acceleration
    a.acceleration.x = 1.0
    assert b.acceleration.x == 0.0


def test_single_update_without_neighbors_moves_by_velocity():
    boid = Boid(id=0, group=BoidColor.PINK, position=Vector2(0.0, 0.0), velocity=Vector2(1.0, 0.0), max_speed=3.0)

    boid.update([], BOUNDS)

    assert boid.position.x == approx(1.0)
    assert boid.position.y == approx(0.0)
    assert boid.rotation == approx(0.0)
    assert boid.acceleration == Vector2()


def test_velocity_is_clamped_to_max_speed():
    boid = _make_boid(0, 100.0, 100.0, vx=2.5, vy=0.0)
    boid.apply_force(Vector2(40.0, 30.0))
    boid.integrate(BOUNDS)
    assert boid.velocity.length() <= boid.max_speed + 1e-9
    assert boid.acceleration == Vector2()


def test_apply_force_accumulates_and_rejects_missing_force():
    boid = _make_boid(0, 10.0, 10.0)
    boid.apply_force(Vector2(0.5, 0.0))
    boid.apply_force((0.25, -1.0))
    assert boid.acceleration == Vector2(0.75, -1.0)
    with pytest.raises(InvalidInput):
        boid.apply_force(None)
    with pytest.raises(ValueError):
        boid.apply_force("left")


def test_flock_rejects_missing_or_non_collection_neighbors():
    boid = _make_boid(0, 10.0, 10.0)
    with pytest.raises(InvalidInput):
        boid.flock(None, BOUNDS)
    with pytest.raises(InvalidInput):
        boid.flock(_make_boid(1, 12.0, 10.0), BOUNDS)
    with pytest.raises(InvalidInput):
        boid.flock(42, BOUNDS)


def test_flock_skips_malformed_members_with_warning(caplog):
    boid = _make_boid(0, 100.0, 100.0)
    other = _make_boid(1, 110.0, 100.0)
    with caplog.at_level(logging.WARNING):
        perceived = boid.flock([other, "junk", None], BOUNDS)
    assert perceived == 1
    assert "Skipping invalid flock member" in caplog.text


def test_flock_ignores_self_other_groups_and_distant_boids():
    boid = _make_boid(0, 100.0, 100.0)
    stranger = _make_boid(1, 105.0, 100.0, group=BoidColor.BLUE)
    far = _make_boid(2, 300.0, 100.0)
    assert boid.flock([boid, stranger, far], BOUNDS) == 0
    assert boid.acceleration == Vector2()


def test_flock_sees_neighbors_across_the_wrapped_edge():
    boid = _make_boid(0, 1.0, 300.0)
    other = _make_boid(1, 799.0, 300.0)

    assert boid.flock([boid, other], BOUNDS) == 1

    # alignment (0, 0.05) * 0.3, cohesion (-0.05, 0) * 0.5, separation (0.05, 0) * 1.0
    assert boid.acceleration.x == approx(0.025)
    assert boid.acceleration.y == approx(0.015)


def test_flock_weights_follow_config():
    config = FlockConfig(alignment_weight=0.0, cohesion_weight=0.0, separation_weight=2.0)
    boid = _make_boid(0, 100.0, 100.0)
    other = _make_boid(1, 110.0, 100.0)
    boid.flock([other], BOUNDS, config)
    assert boid.acceleration.x == approx(-0.1)
    assert boid.acceleration.y == approx(0.0)


def test_separation_is_averaged_over_all_perceived_neighbors():
    boid = _make_boid(0, 100.0, 100.0)
    close = _make_boid(1, 110.0, 100.0)
    distant = _make_boid(2, 100.0, 180.0)
    config = FlockConfig(alignment_weight=0.0, cohesion_weight=0.0, separation_weight=1.0, max_force=10.0)
    boid.max_force = 10.0
    boid.flock([close, distant], BOUNDS, config)
    # only the close boid pushes: (-10 / 10) / 2 neighbors
    assert boid.acceleration.x == approx(-0.5)
    assert boid.acceleration.y == approx(0.0)


def test_attract_to_is_limited_by_strength():
    boid = _make_boid(0, 0.0, 0.0)
    boid.attract_to(Vector2(10.0, 0.0), strength=0.05)
    assert boid.acceleration.x == approx(0.05)
    assert boid.acceleration.y == approx(0.0)
    with pytest.raises(InvalidInput):
        boid.attract_to(None)


def test_repel_from_scales_linearly_inside_radius():
    boid = _make_boid(0, 0.0, 0.0)
    boid.repel_from(Vector2(50.0, 0.0), strength=0.1, radius=100.0)
    assert boid.acceleration.x == approx(-2.5)

    outside = _make_boid(1, 0.0, 0.0)
    outside.repel_from(Vector2(150.0, 0.0), strength=0.1, radius=100.0)
    assert outside.acceleration == Vector2()


def test_rotation_holds_when_stationary():
    boid = _make_boid(0, 10.0, 10.0, vx=0.0, vy=0.0)
    boid.rotation = 1.0
    boid.integrate(BOUNDS)
    assert boid.rotation == approx(1.0)


def test_position_wraps_instead_of_clamping():
    boid = _make_boid(0, 799.5, 599.5, vx=1.0, vy=1.0)
    boid.integrate(BOUNDS)
    assert boid.position.x == approx(0.5)
    assert boid.position.y == approx(0.5)


def test_spawn_gives_full_speed_velocity_inside_bounds():
    rng = DeterministicRng(11)
    boids = [Boid.spawn(i, BoidColor.TEAL, BOUNDS, rng, max_speed=3.0) for i in range(20)]
    for boid in boids:
        assert boid.velocity.length() == approx(3.0)
        assert 0.0 <= boid.position.x < BOUNDS.width
        assert 0.0 <= boid.position.y < BOUNDS.height
    assert boids[0].color == 0x008080


def test_spawn_copies_the_given_position():
    start = Vector2(-10.0, 650.0)
    boid = Boid.spawn(0, BoidColor.PINK, BOUNDS, DeterministicRng(2), position=start)
    assert start == Vector2(-10.0, 650.0)
    assert boid.position is not start
    assert boid.position.x == approx(790.0)
    assert boid.position.y == approx(50.0)


def test_speed_stays_bounded_over_many_updates():
    rng = DeterministicRng(5)
    boids = [
        Boid.spawn(i, BoidColor.PINK, BOUNDS, rng, position=Vector2(400 + i, 300 + (i % 3)))
        for i in range(12)
    ]
    for _ in range(30):
        for boid in boids:
            boid.attract_to(Vector2(400.0, 300.0), strength=1.0)
            boid.update(boids, BOUNDS)
            assert boid.velocity.length() <= boid.max_speed + 1e-9
