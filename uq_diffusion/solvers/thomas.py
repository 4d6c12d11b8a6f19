"""
Thomas algorithm (TDMA) for tridiagonal systems.

Row i of the system reads

    a[i] u[i-1] + b[i] u[i] + c[i] u[i+1] = d[i]

with a[0] and c[N-1] ignored. O(N) time, O(N) scratch, no pivoting: the
matrix is expected to be diagonally dominant enough that the forward sweep
never meets a zero denominator. When it does, `SingularSystem` is raised
instead of silently returning inf/nan.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from ..errors import DimensionMismatch, SingularSystem


def thomas_solve(
    a: Sequence[float],
    b: Sequence[float],
    c: Sequence[float],
    d: Sequence[float],
    pivot_tol: float = 0.0,
) -> np.ndarray:
    """Solve a tridiagonal system.

    Args:
        a: sub-diagonal, shape (N,)
        b: main diagonal, shape (N,)
        c: super-diagonal, shape (N,)
        d: right-hand side, shape (N,)
        pivot_tol: a forward-sweep denominator with |denom| <= pivot_tol is
            treated as singular. Exact zeros are always rejected.

    Returns:
        u: solution, shape (N,), dtype promoted from the inputs.
    """
    a, b, c, d = (np.asarray(v) for v in (a, b, c, d))
    n = len(b)
    if n == 0:
        raise DimensionMismatch("main diagonal", 1, 0)
    for name, arr in (("sub-diagonal", a), ("super-diagonal", c), ("right-hand side", d)):
        if len(arr) != n:
            raise DimensionMismatch(name, n, len(arr))

    dtype = np.result_type(a, b, c, d, np.float32)
    a, b, c, d = (v.astype(dtype, copy=False) for v in (a, b, c, d))

    cp = np.zeros(n, dtype=dtype)
    dp = np.zeros(n, dtype=dtype)

    def _check(denom, row: int) -> None:
        if denom == 0 or abs(denom) <= pivot_tol:
            raise SingularSystem(row, float(denom), pivot_tol)

    _check(b[0], 0)
    cp[0] = c[0] / b[0]
    dp[0] = d[0] / b[0]

    for i in range(1, n):
        denom = b[i] - a[i] * cp[i - 1]
        _check(denom, i)
        cp[i] = c[i] / denom
        dp[i] = (d[i] - a[i] * dp[i - 1]) / denom

    u = np.zeros(n, dtype=dtype)
    u[n - 1] = dp[n - 1]
    for i in range(n - 2, -1, -1):
        u[i] = dp[i] - cp[i] * u[i + 1]
    return u
