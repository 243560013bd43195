from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List

import yaml


class FlowPolicy(str, Enum):
    CIRCULAR = "circular"
    DIRECTIONAL = "directional"

    def toggled(self) -> "FlowPolicy":
        return FlowPolicy.DIRECTIONAL if self is FlowPolicy.CIRCULAR else FlowPolicy.CIRCULAR


class BoidColor(str, Enum):
    PINK = "pink"
    BLUE = "blue"
    GREEN = "green"
    PURPLE = "purple"
    ORANGE = "orange"
    CYAN = "cyan"
    RED = "red"
    YELLOW = "yellow"
    MAGENTA = "magenta"
    TEAL = "teal"

    @property
    def rgb(self) -> int:
        return _COLOR_RGB[self]


_COLOR_RGB = {
    BoidColor.PINK: 0xFF69B4,
    BoidColor.BLUE: 0x4169E1,
    BoidColor.GREEN: 0x32CD32,
    BoidColor.PURPLE: 0x9370DB,
    BoidColor.ORANGE: 0xFFA500,
    BoidColor.CYAN: 0x00CED1,
    BoidColor.RED: 0xDC143C,
    BoidColor.YELLOW: 0xFFD700,
    BoidColor.MAGENTA: 0xFF00FF,
    BoidColor.TEAL: 0x008080,
}


@dataclass
class FlockConfig:
    max_speed: float = 3.0
    max_force: float = 0.05
    perception_radius: float = 100.0
    separation_radius: float = 50.0
    alignment_weight: float = 0.3
    cohesion_weight: float = 0.5
    separation_weight: float = 1.0
    min_separation_distance: float = 0.1
    boids_per_group: int = 50
    groups: List[BoidColor] = field(default_factory=lambda: list(BoidColor))


@dataclass
class CursorConfig:
    interaction_radius: float = 150.0
    strength: float = 0.3
    circular_decay: float = 100.0
    directional_decay: float = 50.0
    policy: FlowPolicy = FlowPolicy.DIRECTIONAL


@dataclass
class PuzzleConfig:
    rows: int = 3
    cols: int = 3
    shuffle_moves: int = 50
    shuffle_on_start: bool = False


@dataclass
class LayoutConfig:
    gap: float = 8.0


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    world_width: float = 1280.0
    world_height: float = 720.0
    seed: int = 42
    config_version: str = "v1"
    flock: FlockConfig = field(default_factory=FlockConfig)
    cursor: CursorConfig = field(default_factory=CursorConfig)
    puzzle: PuzzleConfig = field(default_factory=PuzzleConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 2

    @staticmethod
    def from_yaml(path: Path) -> "AppConfig":
        """Load an app config; ``simulation`` may be a mapping or a YAML path relative to this file."""
        path = Path(path)
        data = yaml.safe_load(path.read_text()) or {}
        simulation = data.get("simulation")
        if isinstance(simulation, str):
            data["simulation"] = yaml.safe_load((path.parent / simulation).read_text()) or {}
        return load_app_config(data)


def load_config(raw: dict) -> SimulationConfig:
    flock_raw = dict(raw.get("flock", {}))
    if "groups" in flock_raw:
        flock_raw["groups"] = [BoidColor(name) for name in flock_raw["groups"]]
    flock = FlockConfig(**flock_raw)

    cursor_raw = dict(raw.get("cursor", {}))
    if "policy" in cursor_raw:
        cursor_raw["policy"] = FlowPolicy(cursor_raw["policy"])
    cursor = CursorConfig(**cursor_raw)

    puzzle = PuzzleConfig(**raw.get("puzzle", {}))
    layout = LayoutConfig(**raw.get("layout", {}))
    sim_values = {k: v for k, v in raw.items() if k not in {"flock", "cursor", "puzzle", "layout"}}
    return SimulationConfig(flock=flock, cursor=cursor, puzzle=puzzle, layout=layout, **sim_values)


def load_app_config(raw: dict) -> AppConfig:
    simulation = load_config(raw.get("simulation", {}))
    return AppConfig(simulation=simulation, broadcast_interval=int(raw.get("broadcast_interval", 2)))
