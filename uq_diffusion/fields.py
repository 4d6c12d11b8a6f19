"""
Grid and coefficient fields for the stochastic diffusion problem.

The diffusivity is a truncated cosine expansion

    k(x) = 1 + sum_{j=1}^{M} sigma / (j^2 pi^2) * cos(2 pi j x) * xi_j

driven by a caller-supplied uncertainty vector xi. Nothing here enforces
k > 0: choosing xi / sigma so the field stays positive is up to the caller.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from .errors import DimensionMismatch, InvalidGridSize

MIN_GRID_POINTS = 3


def uniform_grid(domain_length: float = 1.0, num_grid_points: int = 3, dtype=np.float64) -> np.ndarray:
    """Uniform grid on [0, domain_length], both boundaries included.

    Returns:
        x: shape (num_grid_points,), x[0] == 0 and x[-1] == domain_length.
    """
    n = int(num_grid_points)
    if n < MIN_GRID_POINTS:
        raise InvalidGridSize(n, MIN_GRID_POINTS)
    if not domain_length > 0:
        raise ValueError(f"domain_length must be > 0, got {domain_length}")

    dtype = np.dtype(dtype)
    # i * h rather than linspace so float32 grids use a float32 spacing.
    h = dtype.type(domain_length) / dtype.type(n - 1)
    x = np.arange(n, dtype=dtype) * h
    x[-1] = domain_length
    return x


def grid_spacing(x: np.ndarray) -> float:
    """Uniform spacing L/(N-1) of a grid produced by `uniform_grid`."""
    return float(x[-1] - x[0]) / (len(x) - 1)


def forcing_field(x: np.ndarray, forcing: float) -> np.ndarray:
    """Constant forcing f at every point (boundary rows override it later)."""
    return np.full(x.shape, forcing, dtype=x.dtype)


def check_uncertainties(num_uncertainties: int, uncertainties: Optional[Sequence[float]]) -> np.ndarray:
    """Validate the uncertainty vector against its declared size."""
    m = int(num_uncertainties)
    if m < 0:
        raise ValueError(f"num_uncertainties must be >= 0, got {m}")
    xi = np.asarray([] if uncertainties is None else uncertainties, dtype=np.float64).ravel()
    if xi.size != m:
        raise DimensionMismatch("uncertainties", m, int(xi.size))
    return xi


def kl_diffusivity(x: np.ndarray, uncertainties: Sequence[float], variability: float = 1.0) -> np.ndarray:
    """Evaluate the cosine-expansion diffusivity on the grid.

    Args:
        x: grid points, shape (N,)
        uncertainties: xi_1..xi_M, one coefficient per cosine mode
        variability: sigma, overall amplitude of the perturbation

    Returns:
        k: shape (N,), same dtype as x. With M == 0 this is exactly 1.
    """
    dtype = x.dtype
    xi = np.asarray(uncertainties, dtype=dtype).ravel()
    k = np.ones_like(x)
    if xi.size == 0:
        return k

    pi = dtype.type(np.pi)
    sigma = dtype.type(variability)
    # Accumulate mode by mode so the summation order is fixed.
    for j, xi_j in enumerate(xi, start=1):
        weight = sigma / (dtype.type(j * j) * pi * pi)
        k += weight * np.cos(dtype.type(2 * j) * pi * x) * xi_j
    return k
