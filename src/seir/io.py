"""Run I/O helpers.

Small utilities to create run folders and persist configs, solver estimates
and projected series as JSON and CSV. Used by scripts to standardize run
artifacts in runs/.
"""


from datetime import date
from pathlib import Path
import json
import csv
from typing import Dict, Iterable, List, Sequence, Union


def ensure_dir(path: Union[Path, str]) -> Path:
    path = Path(path)
    # Create output folder if needed.
    path.mkdir(parents=True, exist_ok=True)
    return path


def _json_default(value: object) -> str:
    # Dates and paths end up in configs; store them as plain strings.
    if isinstance(value, (date, Path)):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def save_json(path: Union[Path, str], payload: Dict) -> None:
    path = Path(path)
    with path.open("w", encoding="utf-8") as f:
        # Stable formatting helps diffs and reproducibility.
        json.dump(payload, f, indent=2, sort_keys=True, default=_json_default)


def save_csv(path: Union[Path, str], rows: Iterable[Dict]) -> None:
    path = Path(path)
    rows = list(rows)
    if not rows:
        # Avoid creating empty CSVs.
        return
    with path.open("w", newline="", encoding="utf-8") as f:
        # Use keys from the first row as column order, then append new keys seen later.
        fieldnames = list(rows[0].keys())
        seen = set(fieldnames)
        for row in rows[1:]:
            for key in row.keys():
                if key not in seen:
                    fieldnames.append(key)
                    seen.add(key)
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)


def estimate_rows(estimates: Sequence) -> List[Dict[str, object]]:
    """Flatten solver estimates into CSV-ready records."""
    return [
        {"date": e.date.isoformat(), "r0": e.r0, "residual": e.residual}
        for e in estimates
    ]
