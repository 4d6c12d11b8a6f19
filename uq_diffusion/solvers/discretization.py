"""
Finite-volume assembly of the 1D diffusion operator d/dx(k du/dx) = f.

Each interior row i balances the fluxes through the two faces of the control
volume around x_i, with face diffusivities taken as the arithmetic mean of the
neighbouring nodal values:

    a_i = 0.5 (k_i + k_{i-1}) / (x_i - x_{i-1})
    c_i = 0.5 (k_{i+1} + k_i) / (x_{i+1} - x_i)
    b_i = -(a_i + c_i)
    d_i = f_i * w_i,           w_i = 0.5 (x_{i+1} - x_{i-1})

That is the FLUX normalization (the default). CONTROL_VOLUME divides a, b, c
by w_i and keeps d_i = f_i. The two differ by a per-row scale factor only, so
they produce the same solution vector.

Rows 0 and N-1 are identity rows [0, 1, 0, u_boundary] (Dirichlet).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

from ..errors import DimensionMismatch, InvalidBoundaryIndex


class Normalization(str, enum.Enum):
    FLUX = "flux"
    CONTROL_VOLUME = "control_volume"


@dataclass(frozen=True)
class TridiagonalSystem:
    """Row-aligned tridiagonal system; all arrays have shape (N,).

    Attributes:
        a: sub-diagonal (a[0] unused, always 0)
        b: main diagonal
        c: super-diagonal (c[-1] unused, always 0)
        d: right-hand side
    """
    a: np.ndarray
    b: np.ndarray
    c: np.ndarray
    d: np.ndarray

    def __len__(self) -> int:
        return len(self.b)

    def __iter__(self) -> Iterator[np.ndarray]:
        return iter((self.a, self.b, self.c, self.d))

    def row(self, i: int) -> Tuple[float, float, float, float]:
        return (float(self.a[i]), float(self.b[i]), float(self.c[i]), float(self.d[i]))

    def to_dense(self) -> np.ndarray:
        """Dense (N, N) matrix; only meant for tests and debugging."""
        A = np.diag(self.b.astype(np.float64))
        A += np.diag(self.a[1:].astype(np.float64), k=-1)
        A += np.diag(self.c[:-1].astype(np.float64), k=1)
        return A


def assemble_tridiagonal(
    x: np.ndarray,
    k: np.ndarray,
    f: np.ndarray,
    boundary_left: float = 0.0,
    boundary_right: float = 0.0,
    normalization: Normalization | str = Normalization.FLUX,
) -> TridiagonalSystem:
    """Build a, b, c, d for the grid x with nodal diffusivity k and forcing f.

    The grid need not be uniform. Inputs are read, never modified.
    """
    x, k, f = np.asarray(x), np.asarray(k), np.asarray(f)
    n = len(x)
    if n < 3:
        raise InvalidBoundaryIndex(n)
    if len(k) != n:
        raise DimensionMismatch("diffusivity", n, len(k))
    if len(f) != n:
        raise DimensionMismatch("forcing", n, len(f))
    normalization = Normalization(normalization)

    dtype = np.result_type(x, k, f, np.float32)
    x, k, f = (v.astype(dtype, copy=False) for v in (x, k, f))
    half = dtype.type(0.5)

    a = np.zeros(n, dtype=dtype)
    b = np.zeros(n, dtype=dtype)
    c = np.zeros(n, dtype=dtype)
    d = np.zeros(n, dtype=dtype)

    # Interior indices 1..n-2
    dx_left = x[1:-1] - x[:-2]
    dx_right = x[2:] - x[1:-1]
    width = half * (x[2:] - x[:-2])

    a[1:-1] = half * (k[1:-1] + k[:-2]) / dx_left
    c[1:-1] = half * (k[2:] + k[1:-1]) / dx_right
    b[1:-1] = -(a[1:-1] + c[1:-1])

    if normalization is Normalization.FLUX:
        d[1:-1] = f[1:-1] * width
    else:
        a[1:-1] /= width
        b[1:-1] /= width
        c[1:-1] /= width
        d[1:-1] = f[1:-1]

    # Dirichlet identity rows, whatever the fluxes said.
    a[0], b[0], c[0], d[0] = 0.0, 1.0, 0.0, boundary_left
    a[-1], b[-1], c[-1], d[-1] = 0.0, 1.0, 0.0, boundary_right

    return TridiagonalSystem(a=a, b=b, c=c, d=d)
