"""
uq_diffusion

Steady 1D diffusion with a random, cosine-expanded diffusivity, solved by a
finite-volume discretization and the Thomas algorithm, plus a small Monte
Carlo / refinement-study runner around it.

Public entry points:
- `uq_diffusion.solve(...)` for one realisation
- `python -m uq_diffusion.run --config path/to/config.yaml` for a study
"""

from .errors import DiffusionError, DimensionMismatch, InvalidBoundaryIndex, InvalidGridSize, SingularSystem
from .solvers import Normalization, Precision, ReductionMode, solve, solve_field

__all__ = [
    "__version__",
    "DiffusionError",
    "DimensionMismatch",
    "InvalidBoundaryIndex",
    "InvalidGridSize",
    "Normalization",
    "Precision",
    "ReductionMode",
    "SingularSystem",
    "solve",
    "solve_field",
]
__version__ = "0.1.0"
