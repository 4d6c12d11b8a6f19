"""
Error taxonomy for the diffusion solver.

All errors derive from `DiffusionError`, itself a `ValueError`, so callers
that already guard numerical code with `except ValueError` keep working.
A malformed input is a programming error: nothing here is retried.
"""

from __future__ import annotations

from typing import Optional


class DiffusionError(ValueError):
    """Base class for all solver input / numerical failures."""


class InvalidGridSize(DiffusionError):
    """Fewer grid points than needed for one interior equation."""

    def __init__(self, num_grid_points: int, minimum: int = 3):
        self.num_grid_points = num_grid_points
        self.minimum = minimum
        super().__init__(f"num_grid_points must be >= {minimum}, got {num_grid_points}")


class InvalidBoundaryIndex(DiffusionError):
    """System too small to hold two boundary rows and an interior row."""

    def __init__(self, size: int):
        self.size = size
        super().__init__(f"cannot assemble boundary rows for a system of size {size} (need >= 3)")


class DimensionMismatch(DiffusionError):
    """Two sequences that must agree in length do not."""

    def __init__(self, what: str, expected: int, actual: int):
        self.what = what
        self.expected = expected
        self.actual = actual
        super().__init__(f"{what}: expected length {expected}, got {actual}")


class SingularSystem(DiffusionError):
    """Zero (or sub-tolerance) pivot in the Thomas forward sweep."""

    def __init__(self, row: int, pivot: float, tol: Optional[float] = None):
        self.row = row
        self.pivot = pivot
        self.tol = tol
        msg = f"singular tridiagonal system: pivot {pivot!r} at row {row}"
        if tol:
            msg += f" (|pivot| <= pivot_tol={tol:g})"
        super().__init__(msg)
