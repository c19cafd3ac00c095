from __future__ import annotations

from copy import deepcopy

import pytest
from flask.testing import FlaskClient

from retireplan.app import create_app
from retireplan.config import Settings
from retireplan.core.dates import YearMonth

PROJECTION_START = "2025-01"


@pytest.fixture()
def client() -> FlaskClient:
    app = create_app(Settings())
    with app.test_client() as test_client:
        yield test_client


@pytest.fixture()
def projection_start() -> YearMonth:
    return YearMonth(2025, 1)


@pytest.fixture()
def make_plan():
    """Factory for plan payloads; keyword arguments override the defaults."""

    base = {
        "currentAge": 30,
        "retirementAge": 35,
        "currentSavings": 10000,
        "expectedReturnRate": 0.06,
        "inflationRate": 0.02,
        "monthlyContribution": 500,
        "projectionStart": PROJECTION_START,
    }

    def _make(**overrides) -> dict:
        plan = deepcopy(base)
        plan.update(overrides)
        return plan

    return _make


@pytest.fixture()
def salary():
    def _salary(amount: float = 5000, **overrides) -> dict:
        source = {
            "id": "salary",
            "name": "Salary",
            "type": "salary",
            "amount": amount,
            "frequency": "monthly",
        }
        source.update(overrides)
        return source

    return _salary
