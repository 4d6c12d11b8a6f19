"""
Configuration system for uq_diffusion.

Design goals:
- Human-editable study specs (YAML)
- Deterministic run identification (hash of config)
- Strong defaults + explicit parameters (research reproducibility)

YAML + frozen dataclasses; no config framework.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml

from .seed import SeedConfig
from .solvers import Normalization, Precision, ReductionMode


# =============================================================================
# RUN CONFIG
# =============================================================================

@dataclass(frozen=True)
class RunConfig:
    """Run-level configuration (filesystem + resume semantics)."""
    root_dir: str = "runs"
    experiment_name: str = "experiment"
    notes: str = ""
    resume_if_completed: bool = True
    overwrite_run_dir: bool = False  # if True, delete/overwrite run_dir (dangerous)
    save_samples: bool = True        # write artifacts/samples.npz
    log_stages: bool = False         # stream per-solve stage events to events.jsonl


# =============================================================================
# PROBLEM / SAMPLING / STUDY CONFIGS
# =============================================================================

@dataclass(frozen=True)
class ProblemConfig:
    """d/dx(k du/dx) = f on [0, L] with Dirichlet data and a random k."""
    num_grid_points: int = 101
    domain_length: float = 1.0
    forcing: float = -10.0
    variability: float = 1.0       # sigma
    boundary_left: float = 0.0
    boundary_right: float = 0.0
    normalization: Literal["flux", "control_volume"] = "flux"
    precision: Literal["float32", "float64"] = "float64"
    reduction: Literal["midpoint", "integral_average"] = "midpoint"
    pivot_tol: float = 0.0

    def __post_init__(self) -> None:
        # Raise early on typos instead of deep inside a Monte Carlo loop.
        Normalization(self.normalization)
        Precision(self.precision)
        ReductionMode(self.reduction)
        if int(self.num_grid_points) < 3:
            raise ValueError(f"num_grid_points must be >= 3, got {self.num_grid_points}")
        if not float(self.domain_length) > 0:
            raise ValueError(f"domain_length must be > 0, got {self.domain_length}")
        if float(self.pivot_tol) < 0:
            raise ValueError(f"pivot_tol must be >= 0, got {self.pivot_tol}")

    def solver_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for `solvers.solve` (everything but xi)."""
        return {
            "num_grid_points": int(self.num_grid_points),
            "domain_length": float(self.domain_length),
            "forcing": float(self.forcing),
            "variability": float(self.variability),
            "boundary_left": float(self.boundary_left),
            "boundary_right": float(self.boundary_right),
            "reduction_mode": ReductionMode(self.reduction),
            "normalization": Normalization(self.normalization),
            "precision": Precision(self.precision),
            "pivot_tol": float(self.pivot_tol),
        }


# The two historical solver variants, kept as named presets.
PROBLEM_PRESETS: Dict[str, Dict[str, Any]] = {
    # single precision, f = -10, flux-scaled rows, midpoint value
    "diffusion": {
        "forcing": -10.0,
        "precision": "float32",
        "normalization": "flux",
        "reduction": "midpoint",
    },
    # double precision, f = -1, control-volume-scaled rows, domain integral
    "ellip": {
        "forcing": -1.0,
        "precision": "float64",
        "normalization": "control_volume",
        "reduction": "integral_average",
    },
}


@dataclass(frozen=True)
class SamplingConfig:
    """How the Monte Carlo driver draws uncertainty vectors."""
    num_samples: int = 100
    num_uncertainties: int = 4
    distribution: Literal["normal", "uniform", "lhs"] = "normal"
    low: float = -1.0    # uniform / lhs only
    high: float = 1.0
    stream: int = 0      # generator stream derived from the seed

    def __post_init__(self) -> None:
        if self.distribution not in ("normal", "uniform", "lhs"):
            raise ValueError(f"Unknown distribution '{self.distribution}'. Known: ['lhs', 'normal', 'uniform']")
        if int(self.num_samples) < 1:
            raise ValueError(f"num_samples must be >= 1, got {self.num_samples}")
        if int(self.num_uncertainties) < 0:
            raise ValueError(f"num_uncertainties must be >= 0, got {self.num_uncertainties}")
        if not self.low < self.high:
            raise ValueError(f"low ({self.low}) must be < high ({self.high})")


@dataclass(frozen=True)
class StudyConfig:
    """Optional grid-refinement study run alongside the Monte Carlo batch.

    The study solves the nominal problem (xi = `nominal_uncertainties`, or
    all zeros) on every size in `grid_sizes` and compares against a solve on
    `reference_grid_points`.
    """
    enabled: bool = False
    grid_sizes: List[int] = field(default_factory=lambda: [17, 33, 65, 129])
    reference_grid_points: int = 2049
    nominal_uncertainties: Optional[List[float]] = None

    def __post_init__(self) -> None:
        if len(self.grid_sizes) < 2:
            raise ValueError(f"study.grid_sizes needs at least two levels, got {list(self.grid_sizes)}")
        too_small = [n for n in self.grid_sizes if int(n) < 3]
        if too_small:
            raise ValueError(f"study.grid_sizes must all be >= 3, got {too_small}")
        if int(self.reference_grid_points) < 3:
            raise ValueError(f"study.reference_grid_points must be >= 3, got {self.reference_grid_points}")


# =============================================================================
# TOP-LEVEL EXPERIMENT CONFIG
# =============================================================================

@dataclass(frozen=True)
class ExperimentConfig:
    run: RunConfig = field(default_factory=RunConfig)
    seed: SeedConfig = field(default_factory=SeedConfig)
    problem: ProblemConfig = field(default_factory=ProblemConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    study: StudyConfig = field(default_factory=StudyConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a nested dict suitable for hashing and saving."""
        def dc_to_dict(x: Any) -> Dict[str, Any]:
            return {k: (list(v) if isinstance(v, (list, tuple)) else v) for k, v in x.__dict__.items()}

        return {
            "run": dc_to_dict(self.run),
            "seed": dc_to_dict(self.seed),
            "problem": dc_to_dict(self.problem),
            "sampling": dc_to_dict(self.sampling),
            "study": dc_to_dict(self.study),
        }


# =============================================================================
# dict -> dataclass
# =============================================================================

def build_problem_config(d: Optional[Dict[str, Any]]) -> ProblemConfig:
    """Build a ProblemConfig, expanding an optional `preset` key first.

    Explicit keys win over preset values.
    """
    d = dict(d or {})
    preset = d.pop("preset", None)
    if preset is not None:
        if preset not in PROBLEM_PRESETS:
            raise KeyError(f"Unknown problem preset '{preset}'. Known: {sorted(PROBLEM_PRESETS.keys())}")
        d = {**PROBLEM_PRESETS[preset], **d}
    return ProblemConfig(**d)


def load_yaml_config(path: str | Path) -> Dict[str, Any]:
    """Load a YAML file into a Python dict."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a mapping at top level: {path}")
    return data


def build_experiment_config(data: Dict[str, Any]) -> ExperimentConfig:
    """Build ExperimentConfig from a nested dict.

    Expected top-level keys (all optional):
    - run, seed, problem, sampling, study
    """
    unknown = set(data) - {"run", "seed", "problem", "sampling", "study"}
    if unknown:
        raise KeyError(f"Unknown top-level config keys: {sorted(unknown)}")

    run = RunConfig(**(data.get("run", {}) or {}))
    seed = SeedConfig(**(data.get("seed", {}) or {}))
    problem = build_problem_config(data.get("problem", None))
    sampling = SamplingConfig(**(data.get("sampling", {}) or {}))
    study = StudyConfig(**(data.get("study", {}) or {}))

    if study.nominal_uncertainties is not None:
        if len(study.nominal_uncertainties) != sampling.num_uncertainties:
            raise ValueError(
                f"study.nominal_uncertainties has length {len(study.nominal_uncertainties)}, "
                f"expected sampling.num_uncertainties={sampling.num_uncertainties}"
            )

    if study.enabled and study.reference_grid_points <= max(study.grid_sizes, default=0):
        # Reference must be finer than every level it judges.
        study = replace(study, reference_grid_points=2 * max(study.grid_sizes) - 1)

    return ExperimentConfig(run=run, seed=seed, problem=problem, sampling=sampling, study=study)
