"""
CLI runner: `python -m uq_diffusion.run --config path/to/config.yaml`

This is the orchestrator: it composes
- config -> run_id + filesystem layout
- Monte Carlo batch over the diffusion solver
- optional grid-refinement study
- experiment logging
"""

from __future__ import annotations

import argparse
import platform
import shutil
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import numpy as np

from .config import build_experiment_config, load_yaml_config
from .convergence import refinement_study
from .hashing import config_hash
from .logging import CSVExperimentTracker, JSONLRunLogger, JSONLStageObserver, save_config_copy, save_summary
from .montecarlo import RunningStats, run_monte_carlo
from .paths import RunPaths, ensure_run_dirs
from .seed import set_global_seed


def run_identity(cfg_dict: Dict[str, Any]) -> Dict[str, Any]:
    """The part of a config that determines results.

    Of the `run` section only `experiment_name` counts; resume / overwrite flags,
    notes, output switches and root_dir leave the numbers unchanged.
    """
    return {
        "experiment_name": cfg_dict["run"]["experiment_name"],
        **{k: cfg_dict[k] for k in ("seed", "problem", "sampling", "study")},
    }


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="uq_diffusion Monte Carlo runner")
    p.add_argument("--config", type=str, required=True, help="Path to YAML config")
    p.add_argument("--root_dir", type=str, default=None, help="Override run.root_dir")
    return p.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    args = _parse_args(argv)

    raw = load_yaml_config(args.config)
    if args.root_dir is not None:
        raw = {**raw, "run": {**(raw.get("run", {}) or {}), "root_dir": args.root_dir}}
    cfg = build_experiment_config(raw)

    cfg_dict = cfg.to_dict()
    run_id = config_hash(run_identity(cfg_dict), n_chars=12)

    root_dir = Path(cfg.run.root_dir)
    paths = RunPaths(root_dir=root_dir, run_id=run_id)

    tracker = CSVExperimentTracker(root_dir=root_dir)

    status = tracker.get_status(run_id)
    if status == "COMPLETED" and cfg.run.resume_if_completed:
        print(f"[SKIP] run_id={run_id} already COMPLETED (resume_if_completed=True).")
        return 0

    if cfg.run.overwrite_run_dir and paths.run_dir.exists():
        shutil.rmtree(paths.run_dir)

    ensure_run_dirs(paths)
    save_config_copy(paths, cfg_dict)
    logger = JSONLRunLogger(paths)

    set_global_seed(cfg.seed)

    problem_label = (
        f"N={cfg.problem.num_grid_points} f={cfg.problem.forcing:g} "
        f"{cfg.problem.precision}/{cfg.problem.normalization}/{cfg.problem.reduction}"
    )
    tracker.start_run(
        run_id=run_id,
        experiment_name=cfg.run.experiment_name,
        problem=problem_label,
        num_samples=cfg.sampling.num_samples,
        notes=str(cfg.run.notes),
    )
    logger.log_event(
        "run_start",
        {
            "run_id": run_id,
            "experiment_name": cfg.run.experiment_name,
            "python": sys.version,
            "platform": platform.platform(),
            "numpy_version": np.__version__,
        },
    )

    try:
        observer = JSONLStageObserver(logger) if cfg.run.log_stages else None
        running = RunningStats()
        total = int(cfg.sampling.num_samples)
        every = max(1, total // 10)

        def on_sample(index: int, xi: np.ndarray, qoi: float) -> None:
            running.update(qoi)
            if (index + 1) % every == 0 or index + 1 == total:
                logger.log_batch_progress(index + 1, total, {"mean": running.mean, "std": running.std})

        result = run_monte_carlo(cfg.problem, cfg.sampling, cfg.seed, observer=observer, on_sample=on_sample)
        logger.log_event("monte_carlo", {"stats": result.stats})

        if cfg.run.save_samples:
            np.savez(paths.samples_path, uncertainties=result.uncertainties, qoi=result.qoi)

        summary: Dict[str, Any] = {
            "run_id": run_id,
            "experiment_name": cfg.run.experiment_name,
            "problem": cfg_dict["problem"],
            "sampling": cfg_dict["sampling"],
            "monte_carlo": result.to_dict(),
        }

        if cfg.study.enabled:
            study = refinement_study(
                cfg.problem,
                cfg.study.grid_sizes,
                uncertainties=cfg.study.nominal_uncertainties or [0.0] * cfg.sampling.num_uncertainties,
                reference_grid_points=cfg.study.reference_grid_points,
            )
            logger.log_event("refinement_study", study.to_dict())
            summary["refinement_study"] = study.to_dict()

        save_summary(paths, summary)

        qoi_name = f"{cfg.problem.reduction}_mean"
        tracker.complete_run(run_id, primary_metric_name=qoi_name, primary_metric_value=result.mean)

        print(
            f"[DONE] run_id={run_id} {qoi_name}={result.mean:.6g} "
            f"(std={result.std:.3g}, n={total})"
        )
        return 0

    except Exception as e:
        logger.log_exception(e)
        tracker.fail_run(run_id, e)
        print(f"[FAILED] run_id={run_id} error={type(e).__name__}: {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
