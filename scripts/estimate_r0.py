"""Estimate the reproduction number from observed cumulative cases.

Loads a CSV of dates and case counts, builds the reference SEIR state for the
day before the first observation, and runs the grid-search R0 solver in
windowed (one estimate per day) or interval (one estimate overall) mode.
Writes a run folder with config.json, estimates.csv, summary.json (with the
RMSE and R2 of the replayed fit) and fit.csv under runs/. Estimates are
cached by a hash of the inputs.
Typical usage:
  python scripts/estimate_r0.py --cases data/raw/cases.csv --population 83000000
"""


from __future__ import annotations

import argparse
from datetime import date, datetime
import logging
from pathlib import Path
import time
from typing import Dict, List, Optional, Sequence

import numpy as np

from src.seir.cache import cache_exists, hash_config, load_estimates, save_estimates
from src.seir.config import DEFAULTS
from src.seir.datasets import load_cases_csv, to_daily
from src.seir.engine import CompartmentState, Parameters
from src.seir.io import ensure_dir, estimate_rows, save_csv, save_json
from src.seir.logging_utils import setup_logging
from src.seir.metrics import fit_summary
from src.seir.solver import R0Solver, SolverConfig


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Estimate R0 from observed cumulative cases.")
    parser.add_argument("--cases", type=str, required=True)
    parser.add_argument("--date-col", type=str, default="date")
    parser.add_argument("--value-col", type=str, default="cases")
    parser.add_argument("--daily", action="store_true", help="value column holds daily new cases")
    parser.add_argument("--population", type=int, default=DEFAULTS.population)
    parser.add_argument("--incubation", type=float, default=DEFAULTS.incubation_period)
    parser.add_argument("--infectious", type=float, default=DEFAULTS.infectious_period)
    parser.add_argument("--exposed0", type=float, default=None)
    parser.add_argument("--mode", type=str, default="windowed", choices=["windowed", "interval"])
    parser.add_argument("--window", type=int, default=DEFAULTS.window)
    parser.add_argument("--start", type=date.fromisoformat, default=None, help="first date to report")
    parser.add_argument("--end", type=date.fromisoformat, default=None, help="last date to report")
    parser.add_argument("--refine", action="store_true")
    parser.add_argument("--workers", type=int, default=1)
    parser.add_argument("--cache-dir", type=str, default=str(DEFAULTS.cache_dir))
    parser.add_argument("--no-cache", action="store_true")
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--log-level", type=str, default="INFO")
    parser.add_argument("--log-file", type=str, default=None)
    parser.add_argument("--no-log-file", action="store_true")
    parser.add_argument("--no-console-log", action="store_true")
    return parser.parse_args(argv)


def _cache_config(args: argparse.Namespace, exposed0: float) -> Dict:
    """Solver inputs that identify a cache entry."""
    return {
        "cases": str(args.cases),
        "date_col": args.date_col,
        "value_col": args.value_col,
        "daily": args.daily,
        "population": args.population,
        "incubation": args.incubation,
        "infectious": args.infectious,
        "exposed0": exposed0,
        "mode": args.mode,
        "window": args.window,
        "start": args.start,
        "end": args.end,
        "refine": args.refine,
    }


def _fit_rows(observed, observed_cases: np.ndarray, modelled_cases: np.ndarray) -> List[Dict]:
    """Observed vs replayed cases per date, cumulative and daily."""
    observed_daily = to_daily(observed_cases)
    modelled_daily = to_daily(modelled_cases)
    return [
        {
            "date": when.isoformat(),
            "observed": float(observed_cases[i]),
            "modelled": float(modelled_cases[i]),
            "observed_daily": float(observed_daily[i]),
            "modelled_daily": float(modelled_daily[i]),
        }
        for i, (when, _) in enumerate(observed)
    ]


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = _parse_args(argv)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    out_dir = Path(args.out_dir) if args.out_dir else DEFAULTS.runs_dir / f"estimate_{timestamp}"
    ensure_dir(out_dir)

    log_file = None
    if not args.no_log_file:
        log_file = Path(args.log_file) if args.log_file else out_dir / "run.log"
    setup_logging(level=args.log_level, log_file=log_file, console=not args.no_console_log)
    logger = logging.getLogger(__name__)

    logger.info("R0 estimation start")
    logger.info("Output dir: %s", out_dir)

    observed = load_cases_csv(
        args.cases, date_col=args.date_col, value_col=args.value_col, cumulative=not args.daily
    )
    logger.info("Loaded %d observations from %s", len(observed), args.cases)

    # Seed the day before the first observation with its cumulative count.
    exposed0 = args.exposed0
    if exposed0 is None:
        exposed0 = max(observed[0][1], 1.0) if observed else 1.0
    params = Parameters(args.population, args.incubation, args.infectious)
    state = CompartmentState.seeded(args.population, exposed=exposed0)
    config = SolverConfig(mode=args.mode, window=args.window, refine=args.refine, workers=args.workers)

    cache_config = _cache_config(args, exposed0)
    cache_key = hash_config(cache_config)
    logger.info("Cache key: %s", cache_key)

    solver = R0Solver.from_state(state, params, config)
    if not args.no_cache and cache_exists(args.cache_dir, cache_key):
        logger.info("Loading cached estimates from %s", args.cache_dir)
        estimates, _ = load_estimates(args.cache_dir, cache_key)
    else:
        start = time.perf_counter()
        estimates = solver.estimate(observed, start=args.start, end=args.end)
        logger.info("Estimated %d value(s) in %.2fs", len(estimates), time.perf_counter() - start)
        if not args.no_cache:
            logger.info("Saving cache to %s", args.cache_dir)
            save_estimates(args.cache_dir, cache_key, estimates, cache_config)

    # Replay the estimates over the observed days to score the fit.
    observed_cases = np.asarray([v for _, v in observed], dtype=float)
    modelled_cases = solver.replay(observed, estimates)
    summary = fit_summary(estimates, observed_cases, modelled_cases)
    logger.info(
        "R0 mean=%.2f min=%.2f max=%.2f (total sse=%.4g)",
        summary["r0_mean"], summary["r0_min"], summary["r0_max"], summary["residual_total"],
    )
    logger.info("Replayed fit: rmse=%.4g r2=%.4f", summary["rmse"], summary["r2"])

    run_config = vars(args)
    run_config.update({"timestamp": timestamp, "exposed0": exposed0, "cache_key": cache_key})
    save_json(out_dir / "config.json", run_config)
    save_json(out_dir / "summary.json", summary)
    save_csv(out_dir / "estimates.csv", estimate_rows(estimates))
    save_csv(out_dir / "fit.csv", _fit_rows(observed, observed_cases, modelled_cases))
    logger.info("Wrote %s", out_dir / "estimates.csv")


if __name__ == "__main__":
    main()
