"""SEIR projection and R0 estimation.

Provides a small namespace that re-exports the engine, solver and projector
so notebooks and scripts can import from src.seir without deep module paths.
"""


# Re-export core helpers for convenience (avoid heavy imports here).
from .config import DEFAULTS  # noqa: F401
from .exceptions import (  # noqa: F401
    SEIRError,
    ValidationError,
    SequenceError,
    InsufficientDataError,
    ProjectionCancelled,
)
from .transitions import transition_deltas, step  # noqa: F401
from .reproduction import ConstantReproduction, VaryingReproduction, as_schedule  # noqa: F401
from .engine import Parameters, CompartmentState, SEIREngine  # noqa: F401
from .solver import SolverConfig, SolverEstimate, R0Solver, candidate_grid, pick_candidate  # noqa: F401
from .projector import (  # noqa: F401
    SeriesName,
    TimeSeriesPoint,
    Projection,
    TimeSeriesProjector,
    seven_day_incidence,
)
