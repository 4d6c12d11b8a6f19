"""Finite-volume + Thomas-algorithm solvers for the stochastic diffusion problem."""

from .diffusion1d import (
    DiffusionSolution,
    Precision,
    ReductionMode,
    StageObserver,
    reduce_solution,
    solve,
    solve_field,
)
from .discretization import Normalization, TridiagonalSystem, assemble_tridiagonal
from .thomas import thomas_solve

__all__ = [
    "DiffusionSolution",
    "Normalization",
    "Precision",
    "ReductionMode",
    "StageObserver",
    "TridiagonalSystem",
    "assemble_tridiagonal",
    "reduce_solution",
    "solve",
    "solve_field",
    "thomas_solve",
]
