"""Tests for src.seir.transitions: one-day SEIR deltas."""

import pytest

from src.seir.transitions import step, transition_deltas


class TestTransitionDeltas:

    def test_known_values(self):
        # beta = 2 / 2.5 = 0.8; infections = 0.8 * 990 * 5 / 1000 = 3.96
        dS, dE, dI, dR = transition_deltas(990, 5, 5, 0, 1000, 2.0, 5.0, 2.5)
        assert dS == pytest.approx(-3.96)
        assert dE == pytest.approx(3.96 - 1.0)
        assert dI == pytest.approx(1.0 - 2.0)
        assert dR == pytest.approx(2.0)

    def test_deltas_conserve_population(self):
        deltas = transition_deltas(900_000, 40_000, 30_000, 30_000, 1_000_000, 3.4, 5.2, 2.9)
        assert sum(deltas) == pytest.approx(0.0, abs=1e-9)

    def test_no_infectious_means_no_new_exposures(self):
        dS, dE, dI, dR = transition_deltas(999_990, 10, 0, 0, 1_000_000, 3.4, 5.2, 2.9)
        assert dS == 0.0
        assert dE == pytest.approx(-10 / 5.2)
        assert dI == pytest.approx(10 / 5.2)
        assert dR == 0.0

    def test_zero_r0_only_progresses(self):
        dS, dE, _, _ = transition_deltas(990, 5, 5, 0, 1000, 0.0, 5.0, 2.5)
        assert dS == 0.0
        assert dE == pytest.approx(-1.0)


class TestStep:

    def test_step_adds_deltas(self):
        state = (990.0, 5.0, 5.0, 0.0)
        deltas = transition_deltas(*state, 1000, 2.0, 5.0, 2.5)
        nxt = step(*state, 1000, 2.0, 5.0, 2.5)
        assert nxt == pytest.approx(tuple(s + d for s, d in zip(state, deltas)))

    def test_step_does_not_clamp(self):
        # Large beta overshoots S; clamping is the engine's job.
        S, _, _, _ = step(50, 0, 50, 0, 100, 10.0, 5.0, 1.0)
        assert S < 0
