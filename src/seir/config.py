"""Central defaults for SEIR runs.

Defines the Defaults dataclass with shared settings (disease parameters,
solver grid, look-ahead window, progress granularity, output paths).
Imported by the engine, solver, projector and scripts so that every entry
point agrees on the same numbers.
"""


from dataclasses import dataclass
from pathlib import Path


# Central defaults for reproducible runs.
@dataclass(frozen=True)
class Defaults:
    population: int = 1_000_000
    incubation_period: float = 5.2
    infectious_period: float = 2.9
    r0: float = 3.4
    exposed0: float = 10.0
    grid_min: float = 0.0
    grid_max: float = 10.0
    grid_step: float = 0.1
    window: int = 7
    tie_rel_tol: float = 1e-9
    tie_abs_tol: float = 1e-9
    conservation_tol: float = 1e-6
    incidence_per: int = 100_000
    incidence_days: int = 7
    progress_checkpoints: int = 25
    runs_dir: Path = Path("runs")
    cache_dir: Path = Path("data/processed/estimates")


# Shared defaults instance used across modules and scripts.
DEFAULTS = Defaults()
