"""
Metrics utilities.

Field errors for verification against exact or reference solutions, observed
order of accuracy for refinement studies, and sample statistics for Monte
Carlo output.
"""

from __future__ import annotations

import math
from typing import Dict, Sequence

import numpy as np


def l2_relative_error(u_pred: np.ndarray, u_true: np.ndarray, eps: float = 1e-12) -> float:
    """Relative L2 error: ||pred-true||_2 / (||true||_2 + eps)."""
    u_pred = np.asarray(u_pred, dtype=np.float64)
    u_true = np.asarray(u_true, dtype=np.float64)
    num = np.linalg.norm(u_pred - u_true)
    den = np.linalg.norm(u_true)
    return float(num / (den + eps))


def linf_error(u_pred: np.ndarray, u_true: np.ndarray) -> float:
    """L-infinity error: max |pred-true|."""
    diff = np.asarray(u_pred, dtype=np.float64) - np.asarray(u_true, dtype=np.float64)
    return float(np.max(np.abs(diff)))


def observed_order(errors: Sequence[float], spacings: Sequence[float]) -> list[float]:
    """Observed convergence order between successive refinement levels.

    p_i = log(e_i / e_{i+1}) / log(h_i / h_{i+1}). A zero error on either
    level yields nan for that pair.
    """
    if len(errors) != len(spacings):
        raise ValueError(f"errors ({len(errors)}) and spacings ({len(spacings)}) differ in length")
    orders = []
    for (e0, e1), (h0, h1) in zip(zip(errors, errors[1:]), zip(spacings, spacings[1:])):
        if e0 <= 0 or e1 <= 0:
            orders.append(float("nan"))
            continue
        orders.append(math.log(e0 / e1) / math.log(h0 / h1))
    return orders


def sample_statistics(samples: np.ndarray) -> Dict[str, float]:
    """Mean, standard deviation, standard error of the mean, min and max."""
    s = np.asarray(samples, dtype=np.float64).ravel()
    n = s.size
    if n == 0:
        raise ValueError("sample_statistics needs at least one sample")
    std = float(s.std(ddof=1)) if n > 1 else 0.0
    return {
        "n": float(n),
        "mean": float(s.mean()),
        "std": std,
        "stderr": std / math.sqrt(n),
        "min": float(s.min()),
        "max": float(s.max()),
    }
