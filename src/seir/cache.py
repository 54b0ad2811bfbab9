"""Cache for solver estimates.

Windowed estimation over a long series is slow, so estimates are stored as
arrays plus the config that produced them, keyed by a stable config hash."""


from __future__ import annotations

from datetime import date
from pathlib import Path
import hashlib
import json
from typing import Dict, List, Sequence, Tuple

import numpy as np

from .solver import SolverEstimate


def _stable_json(payload: Dict) -> str:
    """Serialize config deterministically for hashing."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str)


def hash_config(payload: Dict, length: int = 12) -> str:
    """Create a short stable hash from a config dict."""
    raw = _stable_json(payload).encode("utf-8")
    digest = hashlib.sha256(raw).hexdigest()
    # Truncate for readable folder names.
    return digest[:length]


def cache_paths(base_dir: Path | str, key: str) -> Tuple[Path, Path, Path]:
    """Return (dir, arrays_path, config_path) for a cache key."""
    base = Path(base_dir) / key
    return base, base / "estimates.npz", base / "config.json"


def save_estimates(
    base_dir: Path | str,
    key: str,
    estimates: Sequence[SolverEstimate],
    config: Dict,
) -> None:
    """Persist estimates and the config that produced them under a cache key."""
    cache_dir, arrays_path, config_path = cache_paths(base_dir, key)
    cache_dir.mkdir(parents=True, exist_ok=True)
    np.savez_compressed(
        arrays_path,
        dates=np.asarray([e.date.isoformat() for e in estimates], dtype=str),
        r0=np.asarray([e.r0 for e in estimates], dtype=float),
        residual=np.asarray([e.residual for e in estimates], dtype=float),
    )
    with config_path.open("w", encoding="utf-8") as f:
        json.dump(config, f, indent=2, sort_keys=True, default=str)


def load_estimates(base_dir: Path | str, key: str) -> Tuple[List[SolverEstimate], Dict]:
    """Load estimates and config for a cache key."""
    _, arrays_path, config_path = cache_paths(base_dir, key)
    with np.load(arrays_path) as arrays:
        estimates = [
            SolverEstimate(date.fromisoformat(str(d)), float(r), float(res))
            for d, r, res in zip(arrays["dates"], arrays["r0"], arrays["residual"])
        ]
    with config_path.open("r", encoding="utf-8") as f:
        config = json.load(f)
    return estimates, config


def cache_exists(base_dir: Path | str, key: str) -> bool:
    """Check if the cache entry exists on disk."""
    _, arrays_path, config_path = cache_paths(base_dir, key)
    return arrays_path.exists() and config_path.exists()
