from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional, Sequence

from ..sim.core.config import FlowPolicy, SimulationConfig
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)


_BASIC_HEADER = [
    "tick",
    "population",
    "groups",
    "avg_speed",
    "neighbor_checks",
    "cursor_affected",
    "flow_policy",
    "tick_ms",
]

_DETAILED_HEADER = [
    *_BASIC_HEADER,
    "perceived_neighbors",
    "perceived_per_agent",
    "cursor_affected_ratio",
    "max_speed",
    "speed_headroom",
    "tick_ms_per_agent",
    "puzzle_moves",
    "puzzle_solved",
    "puzzle_inversions",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.groups,
        f"{metrics.average_speed:.4f}",
        metrics.neighbor_checks,
        metrics.cursor_affected,
        metrics.flow_policy,
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(world: World, metrics: TickMetrics, tick_ms: float) -> list[object]:
    population = metrics.population
    max_speed = max((boid.velocity.length() for boid in world.flock), default=0.0)
    if population <= 0:
        perceived_per_agent = 0.0
        cursor_affected_ratio = 0.0
        tick_ms_per_agent = 0.0
    else:
        perceived_per_agent = metrics.perceived_neighbors / population
        cursor_affected_ratio = metrics.cursor_affected / population
        tick_ms_per_agent = tick_ms / population
    speed_headroom = world.config.flock.max_speed - max_speed
    return [
        *_format_basic_row(metrics, tick_ms),
        metrics.perceived_neighbors,
        f"{perceived_per_agent:.4f}",
        f"{cursor_affected_ratio:.4f}",
        f"{max_speed:.4f}",
        f"{speed_headroom:.4f}",
        f"{tick_ms_per_agent:.4f}",
        metrics.puzzle_moves,
        int(metrics.solved),
        world.puzzle.count_inversions(),
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def build_config(
    seed: Optional[int] = None,
    config_path: Optional[Path] = None,
    flow_policy: Optional[str] = None,
) -> SimulationConfig:
    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    if flow_policy is not None:
        config.cursor.policy = FlowPolicy(flow_policy)
    return config


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    config_path: Optional[Path] = None,
    cursor: Optional[Sequence[float]] = None,
    flow_policy: Optional[str] = None,
    shuffle: Optional[int] = None,
) -> World:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = build_config(seed, config_path, flow_policy)
    world = World(config)
    if cursor is not None:
        world.set_cursor(tuple(cursor))
    if shuffle is not None:
        world.shuffle_puzzle(shuffle)
    logger.info(
        "Running %d steps with %d boids (seed=%s, flow=%s)",
        steps,
        len(world.flock),
        config.seed,
        world.flock.flow_policy.value,
    )

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    affected_series: list[float] = []

    try:
        for tick in range(steps):
            metrics = world.step(tick)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            tick_ms_series.append(tick_ms)
            speed_series.append(metrics.average_speed)
            affected_series.append(float(metrics.cursor_affected))
            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        summary = {
            "steps": steps,
            "seed": config.seed,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "population": len(world.flock),
            "flow_policy": world.flock.flow_policy.value,
            "tick_ms": _summary_stats(tick_ms_series),
            "average_speed": _summary_stats(speed_series),
            "cursor_affected": _summary_stats(affected_series),
            "puzzle": {
                "solved": world.puzzle.is_solved(),
                "inversions": world.puzzle.count_inversions(),
                "grid": world.puzzle.grid,
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Headless flock puzzle simulation")
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument("--log-format", choices=["basic", "detailed"], default="detailed")
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file to write summary stats")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--cursor", type=float, nargs=2, metavar=("X", "Y"), default=None)
    parser.add_argument("--flow", choices=[policy.value for policy in FlowPolicy], default=None)
    parser.add_argument("--shuffle", type=int, default=None, help="Shuffle the puzzle with this many moves first")
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        config_path=args.config,
        cursor=args.cursor,
        flow_policy=args.flow,
        shuffle=args.shuffle,
    )


if __name__ == "__main__":
    main()
