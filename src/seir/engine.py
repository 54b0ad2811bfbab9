"""Deterministic discrete-time SEIR engine.

The engine owns a compartment state and moves it forward one day per
``advance`` call using the transition functions and a reproduction
schedule (constant or time-varying). Day indices must be strictly
consecutive: the engine is a forward-only generator, not a random-access
function of time.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
import math
from numbers import Real
from typing import Callable, List, Optional, Tuple, Union

from .config import DEFAULTS
from .exceptions import SequenceError, ValidationError
from .reproduction import Schedule, as_schedule
from .transitions import step

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Parameters:
    """Disease and population parameters for one run."""

    population: int = DEFAULTS.population
    incubation_period: float = DEFAULTS.incubation_period
    infectious_period: float = DEFAULTS.infectious_period

    def validate(self) -> None:
        """Raise ValidationError if any parameter is out of range."""
        pop = self.population
        if isinstance(pop, bool) or not isinstance(pop, Real):
            raise ValidationError(f"population must be an integer, got {pop!r}")
        if not math.isfinite(pop) or pop != int(pop):
            raise ValidationError(f"population must be an integer, got {pop!r}")
        if pop <= 0:
            raise ValidationError(f"population must be positive, got {pop}")
        for name in ("incubation_period", "infectious_period"):
            value = getattr(self, name)
            if not math.isfinite(value) or value <= 0:
                raise ValidationError(f"{name} must be positive, got {value}")


@dataclass(frozen=True)
class CompartmentState:
    """Immutable snapshot of the four compartments."""

    S: float
    E: float
    I: float
    R: float
    # Running total of people who ever left S; None means E + I + R.
    cumulative: Optional[float] = field(default=None, compare=False)

    @classmethod
    def seeded(
        cls,
        population: int,
        exposed: float = 0.0,
        infectious: float = 0.0,
        removed: float = 0.0,
    ) -> "CompartmentState":
        """Build a state where everybody not seeded is susceptible."""
        susceptible = float(population) - exposed - infectious - removed
        return cls(susceptible, float(exposed), float(infectious), float(removed))

    @property
    def total(self) -> float:
        return self.S + self.E + self.I + self.R

    @property
    def cases(self) -> float:
        """Cumulative cases, i.e. everybody who ever left S."""
        if self.cumulative is not None:
            return self.cumulative
        return self.E + self.I + self.R

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return self.S, self.E, self.I, self.R

    def clamped(self) -> "CompartmentState":
        """Return a copy with rounding-induced negatives set to zero."""
        return replace(
            self, S=max(self.S, 0.0), E=max(self.E, 0.0), I=max(self.I, 0.0), R=max(self.R, 0.0)
        )


class SEIREngine:
    """Forward-only SEIR stepper.

    The first ``advance`` call must use ``start_day + 1``; ``reproduction`` may
    be a constant, a ``day -> R0`` callable or a schedule.
    """

    def __init__(
        self,
        state: CompartmentState,
        params: Parameters,
        reproduction: Union[float, Callable[[int], float], Schedule],
        start_day: int = 0,
    ) -> None:
        params.validate()
        _validate_state(state, params.population)
        self._params = params
        self._schedule = as_schedule(reproduction)
        self._state = state
        self._day = int(start_day)
        self._r0: Optional[float] = None

    @property
    def params(self) -> Parameters:
        return self._params

    @property
    def schedule(self) -> Schedule:
        return self._schedule

    @property
    def state(self) -> CompartmentState:
        return self._state

    @property
    def day(self) -> int:
        """Index of the last day the engine has reached."""
        return self._day

    @property
    def S(self) -> float:
        return self._state.S

    @property
    def E(self) -> float:
        return self._state.E

    @property
    def I(self) -> float:  # noqa: E743
        return self._state.I

    @property
    def R(self) -> float:
        return self._state.R

    @property
    def cases(self) -> float:
        return self._state.cases

    @property
    def reproduction(self) -> Optional[float]:
        """R0 used for the last advanced day (None before the first step)."""
        return self._r0

    def advance(self, day: int) -> CompartmentState:
        """Apply one day of transitions for ``day`` and return the new state."""
        if day != self._day + 1:
            raise SequenceError(
                f"advance({day}) called on an engine at day {self._day}; "
                f"expected {self._day + 1}"
            )
        r0 = self._schedule(day)
        if not math.isfinite(r0) or r0 < 0:
            raise ValidationError(f"R0 for day {day} must be >= 0, got {r0}")

        p = self._params
        raw = CompartmentState(*step(
            *self._state.as_tuple(),
            p.population,
            r0,
            p.incubation_period,
            p.infectious_period,
        ))
        state = raw.clamped()
        if state != raw:
            logger.debug("Clamped negative compartment on day %d: %s", day, raw)
        # New cases are what S lost; S never grows, so the total never drops.
        self._state = replace(state, cumulative=self._state.cases + (self._state.S - state.S))
        self._day = day
        self._r0 = r0
        return self._state

    def advance_to(self, day: int) -> List[CompartmentState]:
        """Advance day by day up to and including ``day``."""
        if day < self._day:
            raise SequenceError(f"cannot step back from day {self._day} to {day}")
        return [self.advance(d) for d in range(self._day + 1, day + 1)]

    def fork(self, reproduction: Union[float, Callable[[int], float], Schedule]) -> "SEIREngine":
        """Private engine continuing from the current day with another schedule.

        The current state was produced by this engine, so it is not validated
        again (clamping may already have moved it off the exact population).
        """
        other = SEIREngine.__new__(SEIREngine)
        other._params = self._params
        other._schedule = as_schedule(reproduction)
        other._state = self._state
        other._day = self._day
        other._r0 = None
        return other


def _validate_state(state: CompartmentState, population: int) -> None:
    values = state.as_tuple()
    if any(not math.isfinite(v) for v in values):
        raise ValidationError(f"compartment values must be finite, got {state}")
    if min(values) < 0:
        raise ValidationError(f"compartment values must be >= 0, got {state}")
    # Initial state must account for the whole population.
    if abs(state.total - population) > DEFAULTS.conservation_tol * population:
        raise ValidationError(
            f"compartments sum to {state.total}, expected population {population}"
        )
