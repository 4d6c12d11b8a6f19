"""
Run ID hashing and canonical serialization.

A Monte Carlo study is identified by its configuration: the same problem,
sampling and seed always map to the same run_id, so a rerun is detected and
skipped instead of recomputed.
"""

from __future__ import annotations

import enum
import hashlib
import json
from typing import Any, Dict

import numpy as np


def to_jsonable(obj: Any) -> Any:
    """Convert configs, numpy values and enums into plain JSON types.

    Arrays become lists, so this is also used for event payloads. Anything
    unknown falls back to `str(obj)`.
    """
    if isinstance(obj, enum.Enum):
        return to_jsonable(obj.value)
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return float(obj)
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(x) for x in obj]
    if isinstance(obj, (str, int, float, bool)) or obj is None:
        return obj
    return str(obj)


def canonical_json(data: Dict[str, Any]) -> str:
    """Create a canonical JSON string (stable ordering, no whitespace)."""
    return json.dumps(to_jsonable(data), sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def config_hash(data: Dict[str, Any], n_chars: int = 12) -> str:
    """Stable short SHA-256 prefix of a configuration dictionary."""
    digest = hashlib.sha256(canonical_json(data).encode("utf-8")).hexdigest()
    return digest[: int(n_chars)]
