"""Tests for src.seir.engine: validation, sequencing and invariants."""

import pytest

from src.seir.engine import CompartmentState, Parameters, SEIREngine
from src.seir.exceptions import SequenceError, ValidationError
from src.seir.reproduction import VaryingReproduction


class TestValidation:

    @pytest.mark.parametrize("population", [0, -10, 2.5])
    def test_bad_population(self, population):
        state = CompartmentState(0.0, 0.0, 0.0, 0.0)
        with pytest.raises(ValidationError):
            SEIREngine(state, Parameters(population, 5.2, 2.9), 3.4)

    @pytest.mark.parametrize("incubation, infectious", [(0.0, 2.9), (5.2, 0.0), (-1.0, 2.9), (5.2, -2.0)])
    def test_bad_periods(self, incubation, infectious):
        state = CompartmentState.seeded(1000, exposed=10)
        with pytest.raises(ValidationError):
            SEIREngine(state, Parameters(1000, incubation, infectious), 3.4)

    def test_negative_compartment(self, params):
        state = CompartmentState(params.population + 5.0, -5.0, 0.0, 0.0)
        with pytest.raises(ValidationError):
            SEIREngine(state, params, 3.4)

    def test_state_must_match_population(self, params):
        state = CompartmentState(500.0, 10.0, 0.0, 0.0)
        with pytest.raises(ValidationError):
            SEIREngine(state, params, 3.4)

    def test_negative_constant_r0(self, params, seeded):
        with pytest.raises(ValidationError):
            SEIREngine(seeded, params, -1.0)

    def test_negative_r0_from_schedule(self, params, seeded):
        engine = SEIREngine(seeded, params, lambda day: -0.5)
        with pytest.raises(ValidationError):
            engine.advance(1)

    def test_validation_error_is_value_error(self, params):
        with pytest.raises(ValueError):
            SEIREngine(CompartmentState(1.0, 0.0, 0.0, 0.0), params, 1.0)


class TestSequencing:

    def test_first_day_must_be_one(self, params, seeded):
        engine = SEIREngine(seeded, params, 3.4)
        with pytest.raises(SequenceError):
            engine.advance(2)

    def test_cannot_repeat_a_day(self, params, seeded):
        engine = SEIREngine(seeded, params, 3.4)
        engine.advance(1)
        with pytest.raises(SequenceError):
            engine.advance(1)

    def test_cannot_step_back(self, params, seeded):
        engine = SEIREngine(seeded, params, 3.4)
        engine.advance_to(5)
        with pytest.raises(SequenceError):
            engine.advance_to(3)

    def test_failed_advance_leaves_state(self, params, seeded):
        engine = SEIREngine(seeded, params, 3.4)
        with pytest.raises(SequenceError):
            engine.advance(3)
        assert engine.day == 0
        assert engine.state == seeded

    def test_start_day(self, params, seeded):
        engine = SEIREngine(seeded, params, 3.4, start_day=10)
        engine.advance(11)
        assert engine.day == 11


class TestStepping:

    def test_reproduction_tracks_last_day(self, params, seeded):
        engine = SEIREngine(seeded, params, lambda day: 1.0 + day / 10)
        assert engine.reproduction is None
        engine.advance(1)
        assert engine.reproduction == pytest.approx(1.1)
        engine.advance(2)
        assert engine.reproduction == pytest.approx(1.2)

    def test_schedule_sees_day_index(self, params, seeded):
        seen = []

        def lookup(day):
            seen.append(day)
            return 2.0

        SEIREngine(seeded, params, lookup).advance_to(4)
        assert seen == [1, 2, 3, 4]

    def test_piecewise_schedule(self, params, seeded):
        engine = SEIREngine(seeded, params, VaryingReproduction.from_changes(3.0, {3: 0.5}))
        values = []
        for day in range(1, 6):
            engine.advance(day)
            values.append(engine.reproduction)
        assert values == [3.0, 3.0, 0.5, 0.5, 0.5]

    def test_accessors(self, params, seeded):
        engine = SEIREngine(seeded, params, 3.4)
        state = engine.advance(1)
        assert (engine.S, engine.E, engine.I, engine.R) == state.as_tuple()
        assert engine.cases == pytest.approx(state.E + state.I + state.R)

    def test_negative_values_are_clamped(self):
        # beta = 10: infections (250) exceed S (50), so S overshoots below zero.
        params = Parameters(100, 5.0, 1.0)
        engine = SEIREngine(CompartmentState(50.0, 0.0, 50.0, 0.0), params, 10.0)
        state = engine.advance(1)
        assert state.S == 0.0
        assert min(state.as_tuple()) >= 0.0

    def test_cases_accumulate_what_s_loses(self, params, seeded):
        engine = SEIREngine(seeded, params, 3.4)
        trajectory = engine.advance_to(400)
        for state in trajectory:
            assert state.cases == pytest.approx(seeded.cases + (seeded.S - state.S), abs=1e-6)
        # Late in the run S barely moves; the total still never drops.
        late = [s.cases for s in trajectory[200:]]
        assert all(b >= a for a, b in zip(late, late[1:]))

    def test_fork_is_independent(self, params, seeded):
        engine = SEIREngine(seeded, params, 3.4)
        engine.advance_to(3)
        other = engine.fork(1.0)
        other.advance_to(10)
        assert engine.day == 3
        assert other.day == 10
        assert engine.state != other.state


class TestInvariants:

    @pytest.fixture
    def trajectory(self, params, seeded):
        engine = SEIREngine(seeded, params, VaryingReproduction.from_changes(3.4, {60: 0.9, 120: 1.8}))
        return engine.advance_to(365)

    def test_conservation(self, params, trajectory):
        for state in trajectory:
            assert state.total == pytest.approx(params.population, rel=1e-6)

    def test_non_negative(self, trajectory):
        for state in trajectory:
            assert min(state.as_tuple()) >= 0.0

    def test_cumulative_cases_monotonic(self, trajectory):
        cases = [s.cases for s in trajectory]
        assert all(b >= a for a, b in zip(cases, cases[1:]))

    def test_deterministic(self, params, seeded):
        first = SEIREngine(seeded, params, 3.4).advance_to(120)
        second = SEIREngine(seeded, params, 3.4).advance_to(120)
        assert first == second


class TestCompartmentState:

    def test_seeded(self):
        state = CompartmentState.seeded(1000, exposed=10, infectious=5, removed=1)
        assert state.as_tuple() == (984.0, 10.0, 5.0, 1.0)
        assert state.cases == 16.0
        assert state.total == 1000.0

    def test_clamped(self):
        assert CompartmentState(-1e-12, 1.0, -3.0, 2.0).clamped().as_tuple() == (0.0, 1.0, 0.0, 2.0)
