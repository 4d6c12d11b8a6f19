"""
Experiment logging utilities.

Two complementary streams:

1) A **global** CSV index: `runs/experiments.csv`
   - one row per run_id
   - status transitions: STARTED -> COMPLETED/FAILED
   - the QoI mean of each completed study

2) A **per-run** JSONL event log: `runs/<run_id>/events.jsonl`
   - append-only stream of structured events (run start, batch progress,
     solver stages when enabled, final summary, exceptions)

`JSONLStageObserver` plugs the JSONL stream into the solver's observer hook,
so intermediate arrays end up in the event log rather than on stdout.
"""

from __future__ import annotations

import csv
import json
import time
import traceback
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, List, Optional

import numpy as np
import yaml

from .hashing import to_jsonable
from .paths import RunPaths

STATUS_STARTED = "STARTED"
STATUS_COMPLETED = "COMPLETED"
STATUS_FAILED = "FAILED"


def _utc_timestamp() -> str:
    """UTC timestamp in ISO-like format (seconds resolution)."""
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


@dataclass
class ExperimentRow:
    """A single row in experiments.csv."""
    run_id: str
    status: str
    started_at: str
    completed_at: str = ""
    failed_at: str = ""
    experiment_name: str = ""
    problem: str = ""
    num_samples: str = ""
    primary_metric_name: str = ""
    primary_metric_value: str = ""
    notes: str = ""


_CSV_FIELDS: List[str] = [f.name for f in fields(ExperimentRow)]


class CSVExperimentTracker:
    """Global CSV index of studies.

    Every call re-reads and rewrites the whole file; the index stays small
    (one row per configuration), and a crash never leaves it half-updated
    for longer than one write.
    """

    def __init__(self, root_dir: Path):
        self.root_dir = Path(root_dir)
        self.root_dir.mkdir(parents=True, exist_ok=True)
        self.csv_path = self.root_dir / "experiments.csv"
        if not self.csv_path.exists():
            self._write_all({})

    def _read_all(self) -> Dict[str, ExperimentRow]:
        rows: Dict[str, ExperimentRow] = {}
        if not self.csv_path.exists():
            return rows
        with open(self.csv_path, "r", newline="", encoding="utf-8") as f:
            for r in csv.DictReader(f):
                if r.get("run_id"):
                    rows[r["run_id"]] = ExperimentRow(**{k: r.get(k, "") or "" for k in _CSV_FIELDS})
        return rows

    def _write_all(self, rows: Dict[str, ExperimentRow]) -> None:
        with open(self.csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=_CSV_FIELDS)
            writer.writeheader()
            for run_id in sorted(rows):
                writer.writerow(asdict(rows[run_id]))

    def _row(self, rows: Dict[str, ExperimentRow], run_id: str, status: str) -> ExperimentRow:
        row = rows.get(run_id)
        if row is None:
            row = ExperimentRow(run_id=run_id, status=status, started_at=_utc_timestamp())
        return row

    def get_status(self, run_id: str) -> Optional[str]:
        row = self._read_all().get(run_id)
        return None if row is None else row.status

    def start_run(
        self,
        run_id: str,
        experiment_name: str,
        problem: str,
        num_samples: int,
        notes: str = "",
    ) -> None:
        rows = self._read_all()
        row = self._row(rows, run_id, STATUS_STARTED)
        # A restarted run keeps its first start time.
        row.status = STATUS_STARTED
        row.completed_at = ""
        row.failed_at = ""
        row.experiment_name = experiment_name or row.experiment_name
        row.problem = problem or row.problem
        row.num_samples = str(int(num_samples))
        row.notes = notes or row.notes
        rows[run_id] = row
        self._write_all(rows)

    def complete_run(self, run_id: str, primary_metric_name: str, primary_metric_value: float) -> None:
        rows = self._read_all()
        row = self._row(rows, run_id, STATUS_COMPLETED)
        row.status = STATUS_COMPLETED
        row.completed_at = _utc_timestamp()
        row.primary_metric_name = primary_metric_name
        row.primary_metric_value = f"{primary_metric_value:.6g}"
        rows[run_id] = row
        self._write_all(rows)

    def fail_run(self, run_id: str, error: BaseException) -> None:
        rows = self._read_all()
        row = self._row(rows, run_id, STATUS_FAILED)
        row.status = STATUS_FAILED
        row.failed_at = _utc_timestamp()
        row.notes = f"{type(error).__name__}: {error}"
        rows[run_id] = row
        self._write_all(rows)


class JSONLRunLogger:
    """Append-only event logger for a single run."""

    def __init__(self, paths: RunPaths):
        self.paths = paths
        self.paths.run_dir.mkdir(parents=True, exist_ok=True)

    def log_event(self, event_type: str, payload: Dict[str, Any]) -> None:
        event = {"ts": _utc_timestamp(), "event": event_type, **to_jsonable(payload)}
        with open(self.paths.logs_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(event, ensure_ascii=False) + "\n")

    def log_batch_progress(self, done: int, total: int, stats: Dict[str, float]) -> None:
        self.log_event("batch_progress", {"done": done, "total": total, "stats": stats})

    def log_message(self, message: str, **extra: Any) -> None:
        self.log_event("message", {"message": message, **extra})

    def log_exception(self, error: BaseException) -> None:
        self.log_event(
            "exception",
            {"error_type": type(error).__name__, "error": str(error), "traceback": traceback.format_exc()},
        )

    def read_events(self) -> List[Dict[str, Any]]:
        if not self.paths.logs_path.exists():
            return []
        with open(self.paths.logs_path, "r", encoding="utf-8") as f:
            return [json.loads(line) for line in f if line.strip()]


class JSONLStageObserver:
    """Solver observer writing one `stage` event per pipeline stage.

    Arrays are summarised (length, min, max) unless `full_arrays` is set, so
    large Monte Carlo batches do not blow up the event log.
    """

    def __init__(self, logger: JSONLRunLogger, full_arrays: bool = False):
        self.logger = logger
        self.full_arrays = full_arrays
        self.num_solves = 0

    def _summarise(self, value: Any) -> Any:
        if isinstance(value, np.ndarray) and not self.full_arrays:
            if value.size == 0:
                return {"len": 0}
            return {"len": int(value.size), "min": float(value.min()), "max": float(value.max())}
        return value

    def __call__(self, stage: str, payload: Dict[str, Any]) -> None:
        # "grid" opens every solve.
        if stage == "grid":
            self.num_solves += 1
        body = {k: self._summarise(v) for k, v in payload.items()}
        self.logger.log_event("stage", {"stage": stage, "solve": self.num_solves, **body})


def save_config_copy(paths: RunPaths, config_dict: Dict[str, Any]) -> None:
    """Save the config as YAML inside the run directory."""
    with open(paths.config_copy_path, "w", encoding="utf-8") as f:
        yaml.safe_dump(to_jsonable(config_dict), f, sort_keys=False)


def save_summary(paths: RunPaths, summary: Dict[str, Any]) -> None:
    """Save final summary as JSON."""
    with open(paths.summary_path, "w", encoding="utf-8") as f:
        json.dump(to_jsonable(summary), f, indent=2, ensure_ascii=False)
