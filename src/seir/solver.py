"""R0 estimation from observed cumulative cases.

Fits the reproduction number of the SEIR engine to an observed cumulative
case series by minimising the sum of squared errors (SSE) between modelled
cases (E+I+R) and observations. Two modes, selected by ``SolverConfig.mode``:

- ``"windowed"``: one estimate per observed day. Day d is fitted with a
  single trial R0 over day d plus a look-ahead window, starting from the
  state reached with the estimates already found for the earlier days.
- ``"interval"``: one R0 for a whole date interval.

The search is a deterministic grid (0.0 to 10.0 in 0.1 steps by default).
Among candidates whose SSE ties with the minimum, the largest R0 wins: the
higher value is the pessimistic reading of ambiguous evidence. An optional
Levenberg-Marquardt refinement (scipy ``least_squares``) can polish the grid
winner.

Observation i (0-based) is compared against the engine state after day
``reference.day + i + 1``: the reference state describes the day before the
first observation.
"""

from __future__ import annotations

from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, timedelta
import logging
import math
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.optimize import least_squares

from .config import DEFAULTS
from .engine import CompartmentState, Parameters, SEIREngine
from .exceptions import InsufficientDataError, ValidationError
from .metrics import sse
from .reproduction import Schedule, VaryingReproduction, as_schedule

logger = logging.getLogger(__name__)

MODES = ("windowed", "interval")


@dataclass(frozen=True)
class SolverEstimate:
    date: date
    r0: float
    residual: float


@dataclass(frozen=True)
class SolverConfig:
    """Search settings for the R0 solver."""

    mode: str = "windowed"
    window: int = DEFAULTS.window
    grid_min: float = DEFAULTS.grid_min
    grid_max: float = DEFAULTS.grid_max
    grid_step: float = DEFAULTS.grid_step
    refine: bool = False
    workers: int = 1
    rel_tol: float = DEFAULTS.tie_rel_tol
    abs_tol: float = DEFAULTS.tie_abs_tol

    def validate(self) -> None:
        if self.mode not in MODES:
            raise ValidationError(f"mode must be one of {MODES}, got {self.mode!r}")
        if self.window < 0:
            raise ValidationError(f"window must be >= 0, got {self.window}")
        if self.grid_min < 0 or self.grid_max < self.grid_min:
            raise ValidationError(
                f"grid bounds must satisfy 0 <= min <= max, got ({self.grid_min}, {self.grid_max})"
            )
        if self.grid_step <= 0:
            raise ValidationError(f"grid_step must be positive, got {self.grid_step}")
        if self.workers < 1:
            raise ValidationError(f"workers must be >= 1, got {self.workers}")


def candidate_grid(
    grid_min: float = DEFAULTS.grid_min,
    grid_max: float = DEFAULTS.grid_max,
    grid_step: float = DEFAULTS.grid_step,
) -> np.ndarray:
    """Return the R0 candidates, inclusive of both bounds."""
    n_steps = int(math.floor((grid_max - grid_min) / grid_step + 1e-9))
    # Round so that e.g. 0.1 * 3 lands on 0.3 exactly.
    return np.round(grid_min + grid_step * np.arange(n_steps + 1), 10)


def pick_candidate(
    candidates: Sequence[float],
    errors: Sequence[float],
    rel_tol: float = DEFAULTS.tie_rel_tol,
    abs_tol: float = DEFAULTS.tie_abs_tol,
) -> Tuple[float, float]:
    """Return (r0, sse) of the best candidate, largest R0 on ties."""
    if len(candidates) == 0 or len(candidates) != len(errors):
        raise ValidationError("candidates and errors must be non-empty and aligned")
    best = min(errors)
    tied = [
        (float(c), float(e))
        for c, e in zip(candidates, errors)
        if math.isclose(e, best, rel_tol=rel_tol, abs_tol=abs_tol)
    ]
    return max(tied, key=lambda item: item[0])


def prepare_observations(observed: Iterable[Tuple[date, float]]) -> Tuple[List[date], np.ndarray]:
    """Split (date, cumulative cases) pairs into dates and a value array.

    Needs at least 2 points on consecutive days with finite, non-negative values.
    """
    pairs = list(observed)
    if len(pairs) < 2:
        raise InsufficientDataError(f"need at least 2 observed points, got {len(pairs)}")
    dates = [d for d, _ in pairs]
    values = np.asarray([v for _, v in pairs], dtype=float)
    for prev, cur in zip(dates, dates[1:]):
        if (cur - prev).days != 1:
            raise ValidationError(f"observed dates must be consecutive days: {prev} -> {cur}")
    if not np.all(np.isfinite(values)) or np.any(values < 0):
        raise ValidationError("observed case counts must be finite and >= 0")
    return dates, values


def _range_indices(
    dates: Sequence[date],
    start: Optional[date],
    end: Optional[date],
) -> Tuple[int, int]:
    """Indices of the inclusive [start, end] range within consecutive ``dates``."""
    start = dates[0] if start is None else start
    end = dates[-1] if end is None else end
    if end < start:
        raise ValidationError(f"range end {end} is before start {start}")
    if start < dates[0] or end > dates[-1]:
        raise ValidationError(
            f"range {start}..{end} is outside the observed range {dates[0]}..{dates[-1]}"
        )
    return (start - dates[0]).days, (end - dates[0]).days


def _trial_cases(base: SEIREngine, r0: float, last_day: int) -> np.ndarray:
    """Cumulative cases for days base.day+1 .. last_day under a constant R0."""
    engine = base.fork(r0)
    return np.asarray([s.cases for s in engine.advance_to(last_day)], dtype=float)


class R0Solver:
    """Grid-search R0 estimator working on private copies of a reference engine.

    The reference engine describes the day before the first observation and is
    never advanced by the solver.
    """

    def __init__(self, reference: SEIREngine, config: Optional[SolverConfig] = None) -> None:
        self.config = config or SolverConfig()
        self.config.validate()
        self._reference = reference
        self._candidates = candidate_grid(
            self.config.grid_min, self.config.grid_max, self.config.grid_step
        )

    @classmethod
    def from_state(
        cls,
        state: CompartmentState,
        params: Parameters,
        config: Optional[SolverConfig] = None,
    ) -> "R0Solver":
        """Build the reference engine from an initial state and parameters."""
        # The R0 of the reference engine is never used; trials supply their own.
        return cls(SEIREngine(state, params, 0.0), config)

    @property
    def candidates(self) -> np.ndarray:
        return self._candidates

    def estimate(
        self,
        observed: Iterable[Tuple[date, float]],
        start: Optional[date] = None,
        end: Optional[date] = None,
        base: Optional[Schedule] = None,
    ) -> List[SolverEstimate]:
        """Run the configured mode; interval mode returns a single estimate."""
        if self.config.mode == "interval":
            return [self.estimate_interval(observed, start=start, end=end, base=base)]
        return self.estimate_windowed(observed, start=start, end=end)

    def estimate_windowed(
        self,
        observed: Iterable[Tuple[date, float]],
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> List[SolverEstimate]:
        """One estimate per observed day in [start, end], fitted over a look-ahead window.

        Stepping always starts at the reference day, and look-ahead windows may
        use observations after ``end``.
        """
        dates, values = prepare_observations(observed)
        first, stop = _range_indices(dates, start, end)
        ref_day = self._reference.day
        window = int(self.config.window)
        found: List[float] = []

        # History engine replays the estimates found so far.
        history = self._reference.fork(
            VaryingReproduction(lambda day: found[day - ref_day - 1], label="windowed history")
        )
        logger.info(
            "Windowed R0 estimation: %d days from %s (window=%d, %d candidates)",
            len(dates), dates[0], window, len(self._candidates),
        )

        estimates: List[SolverEstimate] = []
        with self._executor() as executor:
            for i, when in enumerate(dates[:stop + 1]):
                last = min(i + window, len(dates) - 1)
                target = values[i:last + 1]
                r0, err = self._search(history, ref_day + 1 + last, target, executor)
                found.append(r0)
                history.advance(ref_day + 1 + i)
                estimates.append(SolverEstimate(when, r0, err))
                logger.debug("%s: R0=%.3f sse=%.4g", when, r0, err)
        return estimates[first:]

    def estimate_interval(
        self,
        observed: Iterable[Tuple[date, float]],
        start: Optional[date] = None,
        end: Optional[date] = None,
        base: Optional[Schedule] = None,
    ) -> SolverEstimate:
        """One R0 minimising SSE over the inclusive [start, end] interval."""
        # Without a base schedule the trial R0 also covers the days before start.
        dates, values = prepare_observations(observed)
        first, last = _range_indices(dates, start, end)
        start, end = dates[first], dates[last]
        if last - first + 1 < 2:
            raise InsufficientDataError("need at least 2 observed points inside the interval")

        ref_day = self._reference.day
        history = self._reference
        if base is not None:
            history = self._reference.fork(as_schedule(base))
            history.advance_to(ref_day + first)
        logger.info(
            "Interval R0 estimation: %s..%s (%d points, %d candidates)",
            start, end, last - first + 1, len(self._candidates),
        )
        with self._executor() as executor:
            r0, err = self._search(history, ref_day + 1 + last, values[first:last + 1], executor)
        return SolverEstimate(end, r0, err)

    def replay(
        self,
        observed: Iterable[Tuple[date, float]],
        estimates: Sequence[SolverEstimate],
    ) -> np.ndarray:
        """Modelled cumulative cases on the observed days under the estimated R0."""
        dates, _ = prepare_observations(observed)
        ref_day = self._reference.day
        # Engine day 0 falls ref_day + 1 days before the first observation.
        origin = dates[0] - timedelta(days=ref_day + 1)
        engine = self._reference.fork(VaryingReproduction.from_estimates(estimates, origin))
        return np.asarray([s.cases for s in engine.advance_to(ref_day + len(dates))], dtype=float)

    def _executor(self) -> Executor:
        return ThreadPoolExecutor(max_workers=self.config.workers)

    def _search(
        self,
        base: SEIREngine,
        last_day: int,
        target: np.ndarray,
        executor: Executor,
    ) -> Tuple[float, float]:
        """Grid search (plus optional refinement) for one fitting window."""
        n = target.size

        def evaluate(r0: float) -> float:
            # Only the trailing n days are observed in this window.
            return sse(target, _trial_cases(base, float(r0), last_day)[-n:])

        if self.config.workers > 1:
            errors = list(executor.map(evaluate, self._candidates))
        else:
            errors = [evaluate(c) for c in self._candidates]
        r0, err = pick_candidate(
            self._candidates, errors, rel_tol=self.config.rel_tol, abs_tol=self.config.abs_tol
        )
        if self.config.refine:
            r0, err = self._refine(base, last_day, target, r0, err)
        return r0, err

    def _refine(
        self,
        base: SEIREngine,
        last_day: int,
        target: np.ndarray,
        r0: float,
        err: float,
    ) -> Tuple[float, float]:
        """Levenberg-Marquardt polish of the grid winner, kept only if it helps."""
        lo, hi = self.config.grid_min, self.config.grid_max
        n = target.size

        def residuals(x: np.ndarray) -> np.ndarray:
            trial = float(np.clip(x[0], lo, hi))
            return _trial_cases(base, trial, last_day)[-n:] - target

        res = least_squares(residuals, x0=np.array([r0], dtype=float), method="lm")
        refined = float(np.clip(res.x[0], lo, hi))
        refined_err = float(np.sum(residuals(np.array([refined])) ** 2))
        tied = math.isclose(refined_err, err, rel_tol=self.config.rel_tol, abs_tol=self.config.abs_tol)
        if refined_err < err and not tied:
            logger.debug("Refined R0 %.3f -> %.5f (sse %.4g -> %.4g)", r0, refined, err, refined_err)
            return refined, refined_err
        return r0, err
