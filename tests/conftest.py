"""Shared fixtures for the SEIR test suite."""

from datetime import date

import pytest

from src.seir.engine import CompartmentState, Parameters


@pytest.fixture
def params() -> Parameters:
    return Parameters(population=1_000_000, incubation_period=5.2, infectious_period=2.9)


@pytest.fixture
def seeded(params) -> CompartmentState:
    return CompartmentState.seeded(params.population, exposed=100.0, infectious=50.0)


@pytest.fixture
def start() -> date:
    return date(2020, 3, 1)

