"""Observed case series helpers.

Reads a local CSV of dates and case counts into the (date, cumulative cases)
pairs the solver consumes. Daily counts are accumulated, with negative
backfills clipped at zero. No network access: downloading and caching of
third-party datasets is left to the caller.
"""


from __future__ import annotations

import csv
from datetime import date
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .exceptions import ValidationError

Observation = Tuple[date, float]


def to_cumulative(daily: Sequence[float]) -> np.ndarray:
    """Accumulate daily counts, clipping negative corrections at zero."""
    values = np.asarray(daily, dtype=float)
    return np.cumsum(np.clip(values, 0.0, None))


def to_daily(cumulative: Sequence[float]) -> np.ndarray:
    """Day-over-day differences of a cumulative series (first day kept as is)."""
    values = np.asarray(cumulative, dtype=float)
    if values.size == 0:
        return values
    return np.clip(np.diff(values, prepend=0.0), 0.0, None)


def slice_range(
    observed: Iterable[Observation],
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Observation]:
    """Keep observations within the inclusive [start, end] range."""
    return [
        (d, v) for d, v in observed
        if (start is None or d >= start) and (end is None or d <= end)
    ]


def load_cases_csv(
    path: Union[Path, str],
    date_col: str = "date",
    value_col: str = "cases",
    cumulative: bool = True,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[Observation]:
    """Load (date, cumulative cases) pairs sorted by date.

    Set ``cumulative=False`` when ``value_col`` holds daily new cases.
    """
    path = Path(path)
    with path.open("r", newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        missing = {date_col, value_col} - set(reader.fieldnames or [])
        if missing:
            raise ValidationError(f"{path} is missing columns: {sorted(missing)}")
        rows = []
        for line_no, row in enumerate(reader, start=2):
            try:
                when = date.fromisoformat(row[date_col].strip())
                raw = row[value_col].strip()
                value = float(raw) if raw else 0.0
            except ValueError as exc:
                raise ValidationError(f"{path}:{line_no}: {exc}") from exc
            rows.append((when, value))

    rows.sort(key=lambda item: item[0])
    dates = [d for d, _ in rows]
    if len(set(dates)) != len(dates):
        raise ValidationError(f"{path} contains duplicate dates")
    values = np.asarray([v for _, v in rows], dtype=float)
    if not cumulative:
        values = to_cumulative(values)
    # Accumulation happens before slicing so the range keeps earlier totals.
    return slice_range(zip(dates, values.tolist()), start=start, end=end)
