"""Reproduction number schedules.

An engine asks its schedule for the R0 in effect on a given day index.
There are two variants, selected by what the caller passes in:

- ``ConstantReproduction``: the same R0 every day.
- ``VaryingReproduction``: R0 looked up per day, either from an arbitrary
  callable, from day-indexed change points, or from solver estimates keyed
  by date.

``as_schedule`` turns a plain number or callable into the matching variant.
"""

from __future__ import annotations

from bisect import bisect_right
from datetime import date, timedelta
from numbers import Real
from typing import Callable, List, Mapping, Optional, Sequence, Union

from .exceptions import ValidationError


class ConstantReproduction:
    """Constant R0 for every day."""

    kind = "constant"

    def __init__(self, value: float) -> None:
        value = float(value)
        if value < 0:
            raise ValidationError(f"R0 must be >= 0, got {value}")
        self.value = value

    def __call__(self, day: int) -> float:
        return self.value

    def __repr__(self) -> str:
        return f"ConstantReproduction({self.value})"


class VaryingReproduction:
    """R0 that may change from day to day.

    Wraps a ``day -> R0`` callable. Use the ``from_changes`` and
    ``from_estimates`` constructors for the common piecewise-constant cases.
    """

    kind = "varying"

    def __init__(self, func: Callable[[int], float], label: str = "callable") -> None:
        if not callable(func):
            raise ValidationError("reproduction lookup must be callable")
        self._func = func
        self.label = label

    def __call__(self, day: int) -> float:
        return float(self._func(day))

    def __repr__(self) -> str:
        return f"VaryingReproduction({self.label})"

    @classmethod
    def from_changes(cls, initial: float, changes: Mapping[int, float]) -> "VaryingReproduction":
        """Piecewise-constant R0: ``initial`` until the first change day.

        ``changes`` maps a day index to the R0 that holds from that day on.
        """
        values = [float(initial)] + [float(v) for v in changes.values()]
        if min(values) < 0:
            raise ValidationError("R0 change points must be >= 0")
        days = sorted(int(d) for d in changes)
        ordered = [float(changes[d]) for d in days]
        initial = float(initial)

        def lookup(day: int) -> float:
            # Last change at or before this day wins.
            idx = bisect_right(days, day) - 1
            return initial if idx < 0 else ordered[idx]

        return cls(lookup, label=f"{len(days)} change points")

    @classmethod
    def from_estimates(
        cls,
        estimates: Sequence,
        start: date,
        future: Optional[float] = None,
    ) -> "VaryingReproduction":
        """Date-keyed R0 from solver estimates.

        ``start`` is the date of day 0 for the engine that will use this
        schedule. Days before the first estimate use the first estimate; days
        after the last one use ``future`` if given, else the last estimate.
        """
        if not estimates:
            raise ValidationError("at least one estimate is required")
        ordered = sorted(estimates, key=lambda e: e.date)
        dates: List[date] = [e.date for e in ordered]
        values = [float(e.r0) for e in ordered]
        last_date = dates[-1]
        if future is not None and future < 0:
            raise ValidationError(f"future R0 must be >= 0, got {future}")

        def lookup(day: int) -> float:
            when = start + timedelta(days=day)
            if future is not None and when > last_date:
                return float(future)
            idx = bisect_right(dates, when) - 1
            return values[max(idx, 0)]

        return cls(lookup, label=f"{len(values)} estimates from {dates[0]}")


Schedule = Union[ConstantReproduction, VaryingReproduction]


def as_schedule(reproduction: Union[float, int, Callable[[int], float], Schedule]) -> Schedule:
    """Normalize a number, a callable or a schedule into a schedule."""
    if isinstance(reproduction, (ConstantReproduction, VaryingReproduction)):
        return reproduction
    if isinstance(reproduction, bool):
        raise ValidationError("R0 must be a number or a day -> R0 callable")
    if isinstance(reproduction, Real):
        return ConstantReproduction(reproduction)
    if callable(reproduction):
        return VaryingReproduction(reproduction)
    raise ValidationError("R0 must be a number or a day -> R0 callable")
