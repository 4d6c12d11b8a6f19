"""
Sampling of uncertainty vectors for Monte Carlo studies.

Each sample is one xi in R^M fed to the diffusion solver. Three baselines:
- normal: iid N(0, 1) coefficients (the usual Karhunen-Loeve assumption)
- uniform: iid U[low, high]
- lhs: Latin hypercube in [low, high]^M, better stratified for small batches
"""

from __future__ import annotations

import numpy as np


def normal_sample(rng: np.random.Generator, n: int, dim: int) -> np.ndarray:
    """iid standard normal, shape (n, dim)."""
    return rng.standard_normal((int(n), int(dim)))


def uniform_sample(rng: np.random.Generator, n: int, dim: int, low: float = -1.0, high: float = 1.0) -> np.ndarray:
    """Uniform iid sample in [low, high]^dim."""
    return rng.uniform(low, high, size=(int(n), int(dim)))


def latin_hypercube_sample(rng: np.random.Generator, n: int, dim: int, low: float = -1.0, high: float = 1.0) -> np.ndarray:
    """Latin hypercube sampling in [low, high]^dim.

    Each dimension is split into n equal bins; every bin receives exactly one
    point, with bin order permuted independently per dimension.
    """
    n = int(n)
    dim = int(dim)
    u = rng.random((n, dim))
    x = np.empty((n, dim))
    for j in range(dim):
        perm = rng.permutation(n)
        x[:, j] = (perm + u[:, j]) / n
    return (high - low) * x + low


def sample_uncertainties(
    rng: np.random.Generator,
    n: int,
    dim: int,
    method: str = "normal",
    low: float = -1.0,
    high: float = 1.0,
) -> np.ndarray:
    """Draw `n` uncertainty vectors of length `dim` with the chosen method."""
    method = method.lower()
    if method == "normal":
        return normal_sample(rng, n, dim)
    if method == "uniform":
        return uniform_sample(rng, n, dim, low, high)
    if method == "lhs":
        return latin_hypercube_sample(rng, n, dim, low, high)
    raise ValueError(f"Unknown sampling method: {method}")
