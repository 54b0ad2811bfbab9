"""Small helpers shared by the test modules."""

from datetime import timedelta

from src.seir.engine import SEIREngine


def simulate_cases(state, params, reproduction, days):
    """Cumulative cases for days 1..days from a fresh engine."""
    engine = SEIREngine(state, params, reproduction)
    return [s.cases for s in engine.advance_to(days)]


def as_observed(start, cases):
    """Pair case values with the consecutive dates following ``start``."""
    return [(start + timedelta(days=i + 1), c) for i, c in enumerate(cases)]
