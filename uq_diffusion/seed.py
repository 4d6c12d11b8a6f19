"""
Reproducibility utilities: seeding Python and NumPy.

The solver itself draws no random numbers; the Monte Carlo driver does, and
this module is the one place that turns a config seed into generators.
"""

from __future__ import annotations

import os
import random
from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class SeedConfig:
    """Seed configuration.

    Attributes:
        seed: The base seed (int).
    """
    seed: int = 0


def set_global_seed(cfg: SeedConfig) -> None:
    """Seed Python's `random` and the legacy NumPy global state."""
    seed = int(cfg.seed)
    random.seed(seed)
    np.random.seed(seed)
    os.environ["PYTHONHASHSEED"] = str(seed)


def make_rng(cfg: SeedConfig, stream: int = 0) -> np.random.Generator:
    """Independent generator for `stream` derived from the base seed.

    Different streams (e.g. the Monte Carlo samples and an LHS permutation)
    never share state, and the same (seed, stream) always replays.
    """
    ss = np.random.SeedSequence([int(cfg.seed), int(stream)])
    return np.random.default_rng(ss)
