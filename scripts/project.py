"""Project SEIR output series over a date range.

Runs the engine from --start (exclusive) to --end (inclusive) with either a
manual constant R0, or R0 estimated from observed cases (windowed solver)
followed by the manual R0 for dates past the last observation. Writes a run
folder with config.json and series.csv (one row per date, with doubling
flags) under runs/.
Typical usage:
  python scripts/project.py --end 2020-06-30 --r0 1.2 --cases data/raw/cases.csv
  python scripts/project.py --start 2020-03-01 --end 2020-06-30 --r0 2.5
"""


from __future__ import annotations

import argparse
from datetime import date, datetime, timedelta
import logging
from pathlib import Path
from typing import Optional, Sequence

from src.seir.config import DEFAULTS
from src.seir.datasets import load_cases_csv
from src.seir.engine import CompartmentState, Parameters, SEIREngine
from src.seir.io import ensure_dir, save_csv, save_json
from src.seir.logging_utils import setup_logging
from src.seir.projector import SeriesName, TimeSeriesProjector
from src.seir.reproduction import VaryingReproduction
from src.seir.solver import R0Solver, SolverConfig


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Project SEIR series over a date range.")
    parser.add_argument("--start", type=date.fromisoformat, default=None)
    parser.add_argument("--end", type=date.fromisoformat, required=True)
    parser.add_argument("--today", type=date.fromisoformat, default=None)
    parser.add_argument("--r0", type=float, default=DEFAULTS.r0)
    parser.add_argument("--cases", type=str, default=None)
    parser.add_argument("--value-col", type=str, default="cases")
    parser.add_argument("--daily", action="store_true")
    parser.add_argument("--window", type=int, default=DEFAULTS.window)
    parser.add_argument("--population", type=int, default=DEFAULTS.population)
    parser.add_argument("--incubation", type=float, default=DEFAULTS.incubation_period)
    parser.add_argument("--infectious", type=float, default=DEFAULTS.infectious_period)
    parser.add_argument("--exposed0", type=float, default=DEFAULTS.exposed0)
    parser.add_argument("--series", type=str, nargs="*", default=None,
                        choices=[s.value for s in SeriesName])
    parser.add_argument("--no-markers", action="store_true")
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--log-level", type=str, default="INFO")
    parser.add_argument("--log-file", type=str, default=None)
    parser.add_argument("--no-log-file", action="store_true")
    parser.add_argument("--no-console-log", action="store_true")
    args = parser.parse_args(argv)
    # With --cases the start is the day before the first observation.
    if args.cases and args.start is not None:
        parser.error("--start cannot be combined with --cases")
    if not args.cases and args.start is None:
        parser.error("--start is required without --cases")
    return args


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    out_dir = Path(args.out_dir) if args.out_dir else DEFAULTS.runs_dir / f"project_{timestamp}"
    ensure_dir(out_dir)

    log_file = None
    if not args.no_log_file:
        log_file = Path(args.log_file) if args.log_file else out_dir / "run.log"
    setup_logging(level=args.log_level, log_file=log_file, console=not args.no_console_log)
    logger = logging.getLogger(__name__)

    logger.info("Projection start")
    logger.info("Output dir: %s", out_dir)

    params = Parameters(args.population, args.incubation, args.infectious)
    reproduction = args.r0
    start = args.start
    exposed0 = args.exposed0

    if args.cases:
        observed = load_cases_csv(args.cases, value_col=args.value_col, cumulative=not args.daily)
        logger.info("Loaded %d observations from %s", len(observed), args.cases)
        # Observed history starts the day after the projection start.
        start = observed[0][0] - timedelta(days=1)
        exposed0 = max(observed[0][1], 1.0)
        state = CompartmentState.seeded(args.population, exposed=exposed0)
        solver = R0Solver.from_state(state, params, SolverConfig(mode="windowed", window=args.window))
        estimates = solver.estimate(observed)
        reproduction = VaryingReproduction.from_estimates(estimates, start, future=args.r0)
        logger.info("Using %d estimated R0 values, then R0=%.2f", len(estimates), args.r0)

    engine = SEIREngine(CompartmentState.seeded(args.population, exposed=exposed0), params, reproduction)
    projector = TimeSeriesProjector(engine, series=args.series, doubling_markers=not args.no_markers)

    def report(percent: int) -> None:
        logger.info("Progress: %d%%", percent)

    projection = projector.project(start, args.end, today=args.today, progress=report)
    for name in (SeriesName.CASES, SeriesName.DAILY_CASES, SeriesName.SEVEN_DAY_INCIDENCE):
        if name in projection:
            logger.info("%s doubled on: %s", name.value, projection.markers(name) or "-")

    config = vars(args)
    config.update({"timestamp": timestamp, "start": start, "exposed0": exposed0})
    save_json(out_dir / "config.json", config)
    save_csv(out_dir / "series.csv", projection.rows())
    logger.info("Wrote %s", out_dir / "series.csv")


if __name__ == "__main__":
    main()
