"""
Monte Carlo propagation of diffusivity uncertainty.

The outer loop the solver was written for: draw uncertainty vectors, solve
each realisation, collect the scalar quantity of interest. Sequential by
construction; callers that want parallelism can split the sample array and
call `run_monte_carlo_on` per chunk, since every solve is independent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

import numpy as np

from .config import ProblemConfig, SamplingConfig
from .metrics import sample_statistics
from .sampling import sample_uncertainties
from .seed import SeedConfig, make_rng
from .solvers import StageObserver, solve

# Called after every sample with (index, xi, qoi).
SampleCallback = Callable[[int, np.ndarray, float], None]


@dataclass
class RunningStats:
    """Welford running mean / variance; lets callers monitor a long batch."""
    n: int = 0
    mean: float = 0.0
    _m2: float = 0.0

    def update(self, value: float) -> None:
        self.n += 1
        delta = value - self.mean
        self.mean += delta / self.n
        self._m2 += delta * (value - self.mean)

    @property
    def variance(self) -> float:
        return self._m2 / (self.n - 1) if self.n > 1 else 0.0

    @property
    def std(self) -> float:
        return float(np.sqrt(self.variance))


@dataclass
class MonteCarloResult:
    """Samples and statistics of one Monte Carlo batch.

    Attributes:
        uncertainties: xi samples, shape (num_samples, num_uncertainties)
        qoi: quantity of interest per sample, shape (num_samples,)
        stats: mean / std / stderr / min / max of qoi
    """
    uncertainties: np.ndarray
    qoi: np.ndarray
    stats: Dict[str, float] = field(default_factory=dict)

    @property
    def mean(self) -> float:
        return self.stats["mean"]

    @property
    def std(self) -> float:
        return self.stats["std"]

    def to_dict(self) -> Dict[str, Any]:
        return {"num_samples": int(self.qoi.size), **self.stats}


def run_monte_carlo_on(
    problem: ProblemConfig,
    uncertainties: np.ndarray,
    observer: Optional[StageObserver] = None,
    on_sample: Optional[SampleCallback] = None,
) -> MonteCarloResult:
    """Solve every row of a pre-drawn (num_samples, M) uncertainty array."""
    xi_all = np.asarray(uncertainties, dtype=np.float64)
    if xi_all.ndim != 2 or xi_all.shape[0] == 0:
        raise ValueError(f"expected a non-empty (num_samples, M) array, got shape {xi_all.shape}")
    num_samples, m = xi_all.shape

    kwargs = problem.solver_kwargs()
    qoi = np.empty(num_samples, dtype=np.float64)
    for s in range(num_samples):
        xi = xi_all[s]
        qoi[s] = solve(num_uncertainties=m, uncertainties=xi, observer=observer, **kwargs)
        if on_sample is not None:
            on_sample(s, xi, float(qoi[s]))

    return MonteCarloResult(uncertainties=xi_all, qoi=qoi, stats=sample_statistics(qoi))


def run_monte_carlo(
    problem: ProblemConfig,
    sampling: SamplingConfig,
    seed: SeedConfig = SeedConfig(),
    observer: Optional[StageObserver] = None,
    on_sample: Optional[SampleCallback] = None,
) -> MonteCarloResult:
    """Draw `sampling.num_samples` vectors and solve each one.

    The same (seed, sampling) pair always reproduces the same result.
    """
    rng = make_rng(seed, stream=sampling.stream)
    xi = sample_uncertainties(
        rng,
        sampling.num_samples,
        sampling.num_uncertainties,
        method=sampling.distribution,
        low=sampling.low,
        high=sampling.high,
    )
    return run_monte_carlo_on(problem, xi, observer=observer, on_sample=on_sample)
