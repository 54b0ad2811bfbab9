"""Dated output series from an SEIR engine.

The projector steps an engine one day at a time from ``start`` (exclusive)
to ``end`` (inclusive) and records, per day:

- Susceptible, Exposed, Infectious, Removed (raw compartments)
- Cases: cumulative cases E+I+R
- DailyCases: max(Cases(t) - Cases(t-1), 0)
- SevenDayIncidence: last <= 7 daily values per 100,000, rounded to 2 places
- Reproduction: R0 in effect for the day

Cases, DailyCases and the 7-day window total carry doubling markers. Each
tracks an anchor that starts at zero; a day is marked when the anchor is
non-zero and the value reaches twice the anchor, which then drops back to
zero. On the ``today`` date every anchor is re-armed with the current value,
so doublings are measured from the present into the projection.
"""

from __future__ import annotations

from collections import deque
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
import logging
from typing import Callable, Dict, Iterable, List, Optional

from .config import DEFAULTS
from .engine import SEIREngine
from .exceptions import ProjectionCancelled, ValidationError

logger = logging.getLogger(__name__)


class SeriesName(str, Enum):
    SUSCEPTIBLE = "Susceptible"
    EXPOSED = "Exposed"
    INFECTIOUS = "Infectious"
    REMOVED = "Removed"
    CASES = "Cases"
    DAILY_CASES = "DailyCases"
    SEVEN_DAY_INCIDENCE = "SevenDayIncidence"
    REPRODUCTION = "Reproduction"


ALL_SERIES = tuple(SeriesName)


@dataclass(frozen=True)
class TimeSeriesPoint:
    date: date
    value: float
    is_doubling_marker: bool = False


def seven_day_incidence(daily: Iterable[float], population: int) -> float:
    """Sum of the last <= 7 daily values per 100,000, rounded to 2 places."""
    recent = list(daily)[-DEFAULTS.incidence_days:]
    return round(sum(recent) / (population / DEFAULTS.incidence_per), 2)


class _Doubling:
    """Anchor bookkeeping for one tracked value."""

    def __init__(self) -> None:
        self.anchor = 0.0

    def check(self, value: float) -> bool:
        if self.anchor != 0 and value >= 2 * self.anchor:
            self.anchor = 0.0
            return True
        return False

    def rearm(self, value: float) -> None:
        self.anchor = value


class Projection:
    """Ordered mapping of series name to its points."""

    def __init__(self, names: Iterable[SeriesName]) -> None:
        self._series: Dict[SeriesName, List[TimeSeriesPoint]] = {name: [] for name in names}

    def __getitem__(self, name) -> List[TimeSeriesPoint]:
        return self._series[SeriesName(name)]

    def __contains__(self, name) -> bool:
        try:
            return SeriesName(name) in self._series
        except ValueError:
            return False

    def __iter__(self):
        return iter(self._series)

    def __len__(self) -> int:
        return len(self._series)

    def items(self):
        return self._series.items()

    def _add(self, name: SeriesName, point: TimeSeriesPoint) -> None:
        series = self._series.get(name)
        if series is not None:
            series.append(point)

    def values(self, name) -> List[float]:
        return [p.value for p in self[name]]

    def markers(self, name) -> List[date]:
        """Dates flagged as doubling markers in one series."""
        return [p.date for p in self[name] if p.is_doubling_marker]

    def rows(self) -> List[Dict[str, object]]:
        """One flat record per date, for CSV export and similar."""
        by_date: Dict[date, Dict[str, object]] = {}
        for name, points in self._series.items():
            for p in points:
                row = by_date.setdefault(p.date, {"date": p.date.isoformat()})
                row[name.value] = p.value
                if name in _MARKED:
                    row[f"{name.value}Doubled"] = p.is_doubling_marker
        return [by_date[d] for d in sorted(by_date)]


_MARKED = (SeriesName.CASES, SeriesName.DAILY_CASES, SeriesName.SEVEN_DAY_INCIDENCE)


class TimeSeriesProjector:
    """Drive an engine across a date range and build the output series.

    The engine's current day corresponds to ``start``; ``series`` limits which
    series are recorded.
    """

    def __init__(
        self,
        engine: SEIREngine,
        series: Optional[Iterable] = None,
        doubling_markers: bool = True,
    ) -> None:
        self.engine = engine
        self.names = ALL_SERIES if series is None else tuple(SeriesName(s) for s in series)
        self.doubling_markers = doubling_markers

    def project(
        self,
        start: date,
        end: date,
        today: Optional[date] = None,
        progress: Optional[Callable[[int], None]] = None,
        cancel=None,
    ) -> Projection:
        """Step the engine from ``start`` (exclusive) to ``end`` (inclusive)."""
        # today defaults to the current date; cancel only needs is_set().
        if end < start:
            raise ValidationError(f"end {end} is before start {start}")
        today = date.today() if today is None else today
        total_days = (end - start).days
        population = self.engine.params.population
        checkpoints = DEFAULTS.progress_checkpoints

        result = Projection(self.names)
        window: deque = deque(maxlen=DEFAULTS.incidence_days)
        cases_mark, daily_mark, week_mark = _Doubling(), _Doubling(), _Doubling()
        reported = 0
        offset = self.engine.day

        logger.info("Projecting %s..%s (%d days, today=%s)", start, end, total_days, today)
        for day in range(1, total_days + 1):
            if cancel is not None and cancel.is_set():
                raise ProjectionCancelled(f"projection cancelled at day {day} of {total_days}")
            when = start + timedelta(days=day)
            previous = self.engine.cases
            state = self.engine.advance(offset + day)
            cases = state.cases
            daily = max(cases - previous, 0.0)
            window.append(daily)
            week_total = sum(window)
            incidence = seven_day_incidence(window, population)

            marks = self.doubling_markers
            result._add(SeriesName.SUSCEPTIBLE, TimeSeriesPoint(when, state.S))
            result._add(SeriesName.EXPOSED, TimeSeriesPoint(when, state.E))
            result._add(SeriesName.INFECTIOUS, TimeSeriesPoint(when, state.I))
            result._add(SeriesName.REMOVED, TimeSeriesPoint(when, state.R))
            result._add(SeriesName.CASES, TimeSeriesPoint(when, cases, marks and cases_mark.check(cases)))
            result._add(SeriesName.DAILY_CASES, TimeSeriesPoint(when, daily, marks and daily_mark.check(daily)))
            result._add(
                SeriesName.SEVEN_DAY_INCIDENCE,
                TimeSeriesPoint(when, incidence, marks and week_mark.check(week_total)),
            )
            result._add(SeriesName.REPRODUCTION, TimeSeriesPoint(when, self.engine.reproduction))

            if marks and when == today:
                cases_mark.rearm(cases)
                daily_mark.rearm(daily)
                week_mark.rearm(week_total)

            checkpoint = checkpoints * day // total_days
            if checkpoint != reported:
                reported = checkpoint
                if progress is not None:
                    progress(100 * checkpoint // checkpoints)
        return result

    def project_async(
        self,
        start: date,
        end: date,
        today: Optional[date] = None,
        progress: Optional[Callable[[int], None]] = None,
        cancel=None,
        executor: Optional[Executor] = None,
    ) -> Future:
        """Run ``project`` on a background executor and return its Future."""
        if executor is not None:
            return executor.submit(self.project, start, end, today, progress, cancel)
        own = ThreadPoolExecutor(max_workers=1)
        try:
            return own.submit(self.project, start, end, today, progress, cancel)
        finally:
            # Lets the submitted run finish, then frees the worker thread.
            own.shutdown(wait=False)

