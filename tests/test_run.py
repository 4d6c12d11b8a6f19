import csv
import json

import numpy as np
import yaml

from uq_diffusion.logging import CSVExperimentTracker, JSONLRunLogger, JSONLStageObserver
from uq_diffusion.paths import RunPaths
from uq_diffusion.run import main
from uq_diffusion.solvers import solve


def _write_config(tmp_path, **overrides):
    cfg = {
        "run": {"root_dir": str(tmp_path / "runs"), "experiment_name": "unit"},
        "seed": {"seed": 3},
        "problem": {"preset": "ellip", "num_grid_points": 17},
        "sampling": {"num_samples": 5, "num_uncertainties": 2},
    }
    for key, value in overrides.items():
        cfg[key] = {**cfg.get(key, {}), **value}
    path = tmp_path / "cfg.yaml"
    path.write_text(yaml.safe_dump(cfg))
    return path


def _rows(root):
    with open(root / "experiments.csv", newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


def test_run_completes_and_writes_outputs(tmp_path, capsys):
    path = _write_config(tmp_path, study={"enabled": True, "grid_sizes": [9, 17], "reference_grid_points": 129})
    assert main(["--config", str(path)]) == 0
    assert "[DONE]" in capsys.readouterr().out

    root = tmp_path / "runs"
    rows = _rows(root)
    assert len(rows) == 1
    assert rows[0]["status"] == "COMPLETED"
    assert rows[0]["primary_metric_name"] == "integral_average_mean"
    assert rows[0]["num_samples"] == "5"

    run_dir = root / rows[0]["run_id"]
    summary = json.loads((run_dir / "summary.json").read_text())
    assert summary["monte_carlo"]["num_samples"] == 5
    assert len(summary["refinement_study"]["errors"]) == 2

    samples = np.load(run_dir / "artifacts" / "samples.npz")
    assert samples["uncertainties"].shape == (5, 2)
    expected = solve(
        17, 2, samples["uncertainties"][0], forcing=-1.0,
        normalization="control_volume", reduction_mode="integral_average",
    )
    assert samples["qoi"][0] == expected

    events = [json.loads(line)["event"] for line in (run_dir / "events.jsonl").read_text().splitlines()]
    assert events[0] == "run_start"
    assert "batch_progress" in events
    assert "monte_carlo" in events


def test_completed_run_is_skipped(tmp_path, capsys):
    path = _write_config(tmp_path)
    assert main(["--config", str(path)]) == 0
    capsys.readouterr()
    assert main(["--config", str(path)]) == 0
    assert "[SKIP]" in capsys.readouterr().out


def test_failed_run_is_tracked(tmp_path, capsys):
    path = _write_config(tmp_path, problem={"pivot_tol": 1e9})
    assert main(["--config", str(path)]) == 1
    assert "SingularSystem" in capsys.readouterr().out

    rows = _rows(tmp_path / "runs")
    assert rows[0]["status"] == "FAILED"
    assert rows[0]["notes"].startswith("SingularSystem")
    run_dir = tmp_path / "runs" / rows[0]["run_id"]
    events = [json.loads(line) for line in (run_dir / "events.jsonl").read_text().splitlines()]
    assert events[-1]["event"] == "exception"
    assert events[-1]["error_type"] == "SingularSystem"


def test_root_dir_override(tmp_path):
    path = _write_config(tmp_path)
    other = tmp_path / "elsewhere"
    assert main(["--config", str(path), "--root_dir", str(other)]) == 0
    assert (other / "experiments.csv").exists()


def test_stage_observer_logs_summaries(tmp_path):
    logger = JSONLRunLogger(RunPaths(root_dir=tmp_path, run_id="abc"))
    observer = JSONLStageObserver(logger)
    solve(5, 1, [0.5], observer=observer)
    solve(5, 1, [0.5], observer=observer)

    events = logger.read_events()
    assert len(events) == 10
    assert {e["event"] for e in events} == {"stage"}
    assert events[0]["stage"] == "grid"
    assert events[0]["x"] == {"len": 5, "min": 0.0, "max": 1.0}
    assert events[-1]["solve"] == 2
    assert events[-1]["mode"] == "midpoint"


def test_stage_observer_full_arrays(tmp_path):
    logger = JSONLRunLogger(RunPaths(root_dir=tmp_path, run_id="abc"))
    solve(3, 0, [], observer=JSONLStageObserver(logger, full_arrays=True))
    solution = [e for e in logger.read_events() if e["stage"] == "solution"][0]
    assert solution["u"] == [0.0, 1.25, 0.0]


def test_tracker_status_transitions(tmp_path):
    tracker = CSVExperimentTracker(tmp_path)
    assert tracker.get_status("r1") is None
    tracker.start_run("r1", "exp", "N=3", 10)
    assert tracker.get_status("r1") == "STARTED"
    tracker.complete_run("r1", "midpoint_mean", 1.25)
    assert tracker.get_status("r1") == "COMPLETED"
    tracker.fail_run("r2", RuntimeError("boom"))
    assert tracker.get_status("r2") == "FAILED"


def test_resume_flag_reruns_same_run_id(tmp_path, capsys):
    path = _write_config(tmp_path)
    assert main(["--config", str(path)]) == 0
    first = _rows(tmp_path / "runs")

    path = _write_config(tmp_path, run={"resume_if_completed": False, "notes": "again", "save_samples": False})
    assert main(["--config", str(path)]) == 0
    assert "[DONE]" in capsys.readouterr().out.splitlines()[-1]

    rows = _rows(tmp_path / "runs")
    assert [r["run_id"] for r in rows] == [first[0]["run_id"]]
    assert rows[0]["status"] == "COMPLETED"


def test_run_identity_ignores_bookkeeping_keys():
    from uq_diffusion.config import build_experiment_config
    from uq_diffusion.hashing import config_hash
    from uq_diffusion.run import run_identity

    base = build_experiment_config({}).to_dict()
    flipped = build_experiment_config(
        {"run": {"resume_if_completed": False, "overwrite_run_dir": True, "notes": "x", "log_stages": True}}
    ).to_dict()
    renamed = build_experiment_config({"run": {"experiment_name": "other"}}).to_dict()
    assert config_hash(run_identity(base)) == config_hash(run_identity(flipped))
    assert config_hash(run_identity(base)) != config_hash(run_identity(renamed))
