from __future__ import annotations

import json
from dataclasses import asdict

from pygame.math import Vector2

from flockpuzzle.sim.core.config import FlockConfig, FlowPolicy, PuzzleConfig, SimulationConfig
from flockpuzzle.sim.core.world import World


def _config(**overrides) -> SimulationConfig:
    values = {"seed": 1234, "flock": FlockConfig(boids_per_group=5)}
    values.update(overrides)
    return SimulationConfig(**values)


def run_steps(config: SimulationConfig, steps: int):
    world = World(config)
    for tick in range(steps):
        world.step(tick)
    return [(round(b.position.x, 6), round(b.position.y, 6)) for b in world.flock]


def test_deterministic_steps():
    assert run_steps(_config(), 30) == run_steps(_config(), 30)


def test_world_populates_every_group():
    world = World(_config())
    assert len(world.flock) == 50
    assert world.puzzle.is_solved()


def test_select_tile_moves_and_reports():
    world = World(_config())
    result = world.select_tile(1, 2)
    assert result.moved
    assert result.tile_id == 5
    assert result.source == (1, 2)
    assert result.target == (2, 2)
    assert not result.solved
    assert world.moves == 1

    blocked = world.select_tile(0, 0)
    assert not blocked.moved
    assert blocked.target is None
    assert world.moves == 1


def test_solved_listener_fires_when_grid_is_restored():
    world = World(_config())
    calls = []
    world.on_solved(lambda w: calls.append(w.moves))

    world.select_tile(1, 2)
    assert calls == []
    result = world.select_tile(2, 2)
    assert result.solved
    assert calls == [2]


def test_step_reports_metrics():
    world = World(_config())
    world.set_cursor((640.0, 360.0))
    metrics = world.step(0)
    assert metrics.tick == 0
    assert metrics.population == 50
    assert metrics.groups == 10
    assert metrics.flow_policy == "directional"
    assert metrics.solved
    assert metrics.average_speed <= world.config.flock.max_speed + 1e-9
    assert world.metrics is metrics


def test_toggle_flow_policy_reaches_the_flock():
    world = World(_config())
    assert world.toggle_flow_policy() is FlowPolicy.CIRCULAR
    assert world.flock.flow_policy is FlowPolicy.CIRCULAR


def test_tile_views_cover_every_tile_and_stay_inside():
    world = World(_config(flock=FlockConfig(boids_per_group=30)))
    views = world.tile_views()
    assert set(views) == set(range(9))
    layout = world.layout
    for tile_boids in views.values():
        for tile_boid in tile_boids:
            assert 0.0 <= tile_boid.x < layout.tile_width
            assert 0.0 <= tile_boid.y < layout.tile_height
    assert world.tile_view(0) == views[0]


def test_snapshot_is_json_ready():
    world = World(_config())
    world.set_cursor(Vector2(10.0, 20.0))
    world.step(0)
    world.select_tile(2, 1)
    snapshot = world.snapshot(1)

    assert snapshot.metadata.world_width == 1280.0
    assert snapshot.metadata.cursor == [10.0, 20.0]
    assert snapshot.puzzle.tiles["7"] == [2, 2]
    assert snapshot.puzzle.grid[2] == [6, None, 7]
    assert not snapshot.puzzle.solved
    payload = snapshot.boids[0]
    for key in ["id", "x", "y", "vx", "vy", "rotation", "group", "color"]:
        assert key in payload
    json.dumps({"puzzle": asdict(snapshot.puzzle), "metrics": asdict(snapshot.metrics), "boids": snapshot.boids})


def test_shuffle_on_start_and_reset():
    config = _config(puzzle=PuzzleConfig(shuffle_on_start=True, shuffle_moves=30))
    world = World(config)
    initial_grid = world.puzzle.grid
    initial_positions = [(b.position.x, b.position.y) for b in world.flock]

    world.select_tile(*world.puzzle.movable_cells()[0])
    world.step(0)
    world.reset()

    assert world.puzzle.grid == initial_grid
    assert [(b.position.x, b.position.y) for b in world.flock] == initial_positions
    assert world.moves == 0
    assert world.metrics is None
