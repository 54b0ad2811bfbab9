"""Discrete SEIR transition functions.

One call covers one day. These are pure functions: they neither clamp nor
validate, the engine takes care of both.
"""


from typing import Tuple


def transition_deltas(
    S: float,
    E: float,
    I: float,
    R: float,
    N: float,
    r0: float,
    incubation_period: float,
    infectious_period: float,
) -> Tuple[float, float, float, float]:
    """Return (dS, dE, dI, dR) for a single day."""
    beta = r0 / infectious_period
    # New exposures leave S and enter E.
    infections = beta * S * I / N
    onsets = E / incubation_period
    removals = I / infectious_period
    dS = -infections
    dE = infections - onsets
    dI = onsets - removals
    dR = removals
    return dS, dE, dI, dR


def step(
    S: float,
    E: float,
    I: float,
    R: float,
    N: float,
    r0: float,
    incubation_period: float,
    infectious_period: float,
) -> Tuple[float, float, float, float]:
    """Apply one day of transitions and return the next (S, E, I, R)."""
    dS, dE, dI, dR = transition_deltas(S, E, I, R, N, r0, incubation_period, infectious_period)
    return S + dS, E + dE, I + dI, R + dR
