"""
Grid-refinement studies.

Solves one realisation of the problem on a sequence of grids and measures the
error of the reduced quantity of interest against either a known exact value
or a solve on a much finer reference grid. Odd grid sizes keep the midpoint
sample at x = L/2 on every level.

With a reference grid the whole solution is compared too: the reference field
is linearly interpolated onto each coarse grid and relative L2 / L-infinity
errors are reported per level.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from .config import ProblemConfig
from .metrics import l2_relative_error, linf_error, observed_order
from .solvers import DiffusionSolution, ReductionMode, solve_field


@dataclass(frozen=True)
class RefinementStudy:
    grid_sizes: List[int]
    spacings: List[float]
    values: List[float]
    reference: float
    errors: List[float]
    orders: List[float]
    # Empty when the study ran against an exact scalar.
    field_rel_l2: List[float] = field(default_factory=list)
    field_linf: List[float] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grid_sizes": list(self.grid_sizes),
            "spacings": list(self.spacings),
            "values": list(self.values),
            "reference": self.reference,
            "errors": list(self.errors),
            "orders": list(self.orders),
            "field_rel_l2": list(self.field_rel_l2),
            "field_linf": list(self.field_linf),
        }


def refinement_study(
    problem: ProblemConfig,
    grid_sizes: Sequence[int],
    uncertainties: Optional[Sequence[float]] = None,
    exact: Optional[float] = None,
    reference_grid_points: Optional[int] = None,
) -> RefinementStudy:
    """Errors and observed orders of the QoI over `grid_sizes`.

    Exactly one of `exact` / `reference_grid_points` must be given.
    """
    if (exact is None) == (reference_grid_points is None):
        raise ValueError("pass exactly one of exact= or reference_grid_points=")
    sizes = sorted(int(n) for n in grid_sizes)
    if len(sizes) < 2:
        raise ValueError("a refinement study needs at least two grid sizes")

    xi = list(uncertainties or [])
    kwargs = problem.solver_kwargs()
    kwargs.pop("num_grid_points")
    mode = ReductionMode(kwargs.pop("reduction_mode"))

    def run(n: int) -> DiffusionSolution:
        return solve_field(n, len(xi), xi, **kwargs)

    levels = [run(n) for n in sizes]
    values = [sol.reduce(mode) for sol in levels]
    spacings = [problem.domain_length / (n - 1) for n in sizes]

    field_rel_l2: List[float] = []
    field_linf: List[float] = []
    if exact is not None:
        reference = float(exact)
    else:
        ref = run(int(reference_grid_points))
        reference = ref.reduce(mode)
        for sol in levels:
            u_ref = np.interp(sol.x.astype(np.float64), ref.x.astype(np.float64), ref.u.astype(np.float64))
            field_rel_l2.append(l2_relative_error(sol.u, u_ref))
            field_linf.append(linf_error(sol.u, u_ref))

    errors = [abs(v - reference) for v in values]

    return RefinementStudy(
        grid_sizes=sizes,
        spacings=spacings,
        values=values,
        reference=reference,
        errors=errors,
        orders=observed_order(errors, spacings),
        field_rel_l2=field_rel_l2,
        field_linf=field_linf,
    )
