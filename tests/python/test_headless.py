import csv
import json

import pytest

from flockpuzzle.app.headless import main, run_headless


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def _small_config(tmp_path):
    path = tmp_path / "small.yaml"
    path.write_text("flock:\n  boids_per_group: 4\n")
    return path


def test_headless_basic_log_header(tmp_path):
    log_path = tmp_path / "basic.csv"
    run_headless(
        steps=2,
        seed=1,
        log_path=log_path,
        deterministic_log=True,
        log_format="basic",
        config_path=_small_config(tmp_path),
    )
    rows = _read_csv(log_path)
    assert len(rows) == 3
    assert rows[0] == [
        "tick",
        "population",
        "groups",
        "avg_speed",
        "neighbor_checks",
        "cursor_affected",
        "flow_policy",
        "tick_ms",
    ]
    assert rows[1][1] == "40"
    assert rows[1][-1] == "0.000"


def test_headless_detailed_log_is_deterministic(tmp_path):
    config_path = _small_config(tmp_path)
    first = tmp_path / "a.csv"
    second = tmp_path / "b.csv"
    for path in (first, second):
        run_headless(
            steps=5,
            seed=3,
            log_path=path,
            deterministic_log=True,
            config_path=config_path,
            cursor=(640.0, 360.0),
            flow_policy="circular",
        )
    rows = _read_csv(first)
    assert rows == _read_csv(second)
    header = rows[0]
    idx = {name: i for i, name in enumerate(header)}
    assert rows[1][idx["flow_policy"]] == "circular"
    assert rows[1][idx["puzzle_solved"]] == "1"
    assert float(rows[1][idx["speed_headroom"]]) >= -1e-6


def test_headless_summary_output(tmp_path):
    summary_path = tmp_path / "summary.json"
    world = run_headless(
        steps=4,
        seed=3,
        log_path=None,
        deterministic_log=True,
        summary_path=summary_path,
        config_path=_small_config(tmp_path),
        shuffle=20,
    )
    payload = json.loads(summary_path.read_text())
    assert payload["steps"] == 4
    assert payload["seed"] == 3
    assert payload["population"] == 40
    assert payload["tick_ms"]["max"] == 0.0
    assert payload["puzzle"]["grid"] == world.puzzle.grid
    assert payload["puzzle"]["inversions"] % 2 == 0


def test_headless_rejects_unknown_format(tmp_path):
    with pytest.raises(ValueError):
        run_headless(steps=1, seed=1, log_path=None, log_format="fancy", config_path=_small_config(tmp_path))


def test_cli_entry_point(tmp_path):
    log_path = tmp_path / "cli.csv"
    main(
        [
            "--steps",
            "2",
            "--seed",
            "4",
            "--config",
            str(_small_config(tmp_path)),
            "--log",
            str(log_path),
            "--log-format",
            "basic",
            "--deterministic-log",
            "--cursor",
            "100",
            "200",
            "--flow",
            "directional",
        ]
    )
    assert len(_read_csv(log_path)) == 3
