"""
Steady 1D diffusion with a random diffusivity field.

Solve:
    d/dx( k(x; xi) du/dx ) = f,   x in (0, L)
    u(0) = u_left,  u(L) = u_right

Pipeline (no state survives between calls):
    grid + fields  ->  tridiagonal assembly  ->  Thomas solve  ->  reduction

`solve` is the scalar entry point used inside Monte Carlo loops; it is a pure
function of its arguments, so it is safe to call from several threads with
independent inputs. `solve_field` returns the full discrete solution.

Diagnostics go through an optional `observer(stage, payload)` callable rather
than being printed.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence

import numpy as np

from ..fields import check_uncertainties, forcing_field, grid_spacing, kl_diffusivity, uniform_grid
from .discretization import Normalization, TridiagonalSystem, assemble_tridiagonal
from .thomas import thomas_solve

StageObserver = Callable[[str, Dict[str, Any]], None]

DEFAULT_FORCING = -10.0


class ReductionMode(str, enum.Enum):
    MIDPOINT = "midpoint"
    INTEGRAL_AVERAGE = "integral_average"


class Precision(str, enum.Enum):
    FLOAT32 = "float32"
    FLOAT64 = "float64"

    @property
    def dtype(self) -> np.dtype:
        return np.dtype(self.value)


@dataclass(frozen=True)
class DiffusionSolution:
    """Everything one solve produced.

    Attributes:
        x: grid points, shape (N,)
        k: diffusivity at the grid points, shape (N,)
        f: forcing at the grid points, shape (N,)
        system: assembled tridiagonal system
        u: discrete solution, shape (N,)
        h: uniform grid spacing L/(N-1)
    """
    x: np.ndarray
    k: np.ndarray
    f: np.ndarray
    system: TridiagonalSystem
    u: np.ndarray
    h: float

    def reduce(self, mode: ReductionMode | str = ReductionMode.MIDPOINT) -> float:
        return reduce_solution(self.u, self.h, mode)


def reduce_solution(u: np.ndarray, h: float, mode: ReductionMode | str) -> float:
    """Collapse a solution vector into a scalar quantity of interest.

    MIDPOINT returns u[N // 2]. INTEGRAL_AVERAGE returns sum_i u[i] * h, which
    equals the trapezoidal integral when both boundary values are zero.
    """
    mode = ReductionMode(mode)
    if mode is ReductionMode.MIDPOINT:
        return float(u[len(u) // 2])
    dtype = u.dtype.type
    total = dtype(0.0)
    for ui in u:
        total += ui * dtype(h)
    return float(total)


def _read_only(value: Any) -> Any:
    if isinstance(value, np.ndarray):
        view = value.view()
        view.flags.writeable = False
        return view
    return value


def _notify(observer: Optional[StageObserver], stage: str, **payload: Any) -> None:
    # Observers see read-only views; the pipeline keeps computing from these buffers.
    if observer is not None:
        observer(stage, {k: _read_only(v) for k, v in payload.items()})


def solve_field(
    num_grid_points: int,
    num_uncertainties: int,
    uncertainties: Optional[Sequence[float]],
    domain_length: float = 1.0,
    forcing: float = DEFAULT_FORCING,
    variability: float = 1.0,
    boundary_left: float = 0.0,
    boundary_right: float = 0.0,
    *,
    normalization: Normalization | str = Normalization.FLUX,
    precision: Precision | str = Precision.FLOAT64,
    pivot_tol: float = 0.0,
    observer: Optional[StageObserver] = None,
) -> DiffusionSolution:
    """Run grid generation, assembly and the Thomas solve; keep every array."""
    xi = check_uncertainties(num_uncertainties, uncertainties)
    dtype = Precision(precision).dtype

    x = uniform_grid(domain_length, num_grid_points, dtype=dtype)
    h = grid_spacing(x)
    _notify(observer, "grid", x=x, h=h)

    f = forcing_field(x, forcing)
    k = kl_diffusivity(x, xi, variability)
    _notify(observer, "fields", k=k, f=f, uncertainties=xi)

    system = assemble_tridiagonal(x, k, f, boundary_left, boundary_right, normalization)
    _notify(observer, "system", a=system.a, b=system.b, c=system.c, d=system.d)

    u = thomas_solve(system.a, system.b, system.c, system.d, pivot_tol=pivot_tol)
    _notify(observer, "solution", u=u)

    return DiffusionSolution(x=x, k=k, f=f, system=system, u=u, h=h)


def solve(
    num_grid_points: int,
    num_uncertainties: int,
    uncertainties: Optional[Sequence[float]],
    domain_length: float = 1.0,
    forcing: float = DEFAULT_FORCING,
    variability: float = 1.0,
    boundary_left: float = 0.0,
    boundary_right: float = 0.0,
    reduction_mode: ReductionMode | str = ReductionMode.MIDPOINT,
    *,
    normalization: Normalization | str = Normalization.FLUX,
    precision: Precision | str = Precision.FLOAT64,
    pivot_tol: float = 0.0,
    observer: Optional[StageObserver] = None,
) -> float:
    """Solve one realisation and return its scalar quantity of interest.

    Args:
        num_grid_points: N >= 3, boundaries included
        num_uncertainties: M >= 0, must equal len(uncertainties)
        uncertainties: xi_1..xi_M (read only)
        domain_length: L > 0
        forcing: constant right-hand side f
        variability: sigma, amplitude of the diffusivity perturbation
        boundary_left: u(0)
        boundary_right: u(L)
        reduction_mode: MIDPOINT -> u[N // 2]; INTEGRAL_AVERAGE -> sum u_i h
        normalization: row scaling convention of the assembly
        precision: float32 or float64 working precision
        pivot_tol: forward-sweep pivots with |p| <= pivot_tol raise SingularSystem
        observer: optional stage callback, see module docstring

    Returns:
        The reduced scalar as a Python float.
    """
    sol = solve_field(
        num_grid_points,
        num_uncertainties,
        uncertainties,
        domain_length=domain_length,
        forcing=forcing,
        variability=variability,
        boundary_left=boundary_left,
        boundary_right=boundary_right,
        normalization=normalization,
        precision=precision,
        pivot_tol=pivot_tol,
        observer=observer,
    )
    mode = ReductionMode(reduction_mode)
    value = sol.reduce(mode)
    _notify(observer, "reduction", mode=mode.value, value=value)
    return value
