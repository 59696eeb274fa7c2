"""Shared fixtures for engine, serialization, CLI and API tests.

Canonical construction loan: 60L approved, 20 years from 2024-01-01 at 8.5%,
four tranches, two rate revisions and two prepayments.
"""

from datetime import date
from decimal import Decimal

import pytest

from emi_calc.data_models import (
    Disbursal,
    ExtraPayment,
    LoanInputs,
    LoanParameters,
    RateChange,
)
from emi_calc_web.app import create_app


@pytest.fixture
def simple_params() -> LoanParameters:
    """10L at 12% for one year starting 2025-01-01.

    A 365-day year is just under 12 average months, so the loan closes in 12
    rows; a leap year start leaves a 13th trailing row.
    """
    return LoanParameters(
        principal_approved=Decimal("1000000"),
        tenure_years=1,
        initial_rate=Decimal("12"),
        start_date=date(2025, 1, 1),
    )


@pytest.fixture
def simple_disbursal() -> Disbursal:
    return Disbursal(date=date(2025, 1, 1), amount=Decimal("1000000"))


@pytest.fixture
def construction_inputs() -> LoanInputs:
    return LoanInputs(
        params=LoanParameters(
            principal_approved=Decimal("6000000"),
            tenure_years=20,
            initial_rate=Decimal("8.5"),
            start_date=date(2024, 1, 1),
        ),
        disbursals=(
            Disbursal(date=date(2024, 1, 10), amount=Decimal("1500000")),
            Disbursal(date=date(2024, 7, 15), amount=Decimal("1500000")),
            Disbursal(date=date(2025, 2, 1), amount=Decimal("2000000")),
            Disbursal(date=date(2025, 9, 20), amount=Decimal("1000000")),
        ),
        rate_changes=(
            RateChange(date=date(2025, 5, 1), rate=Decimal("9.0")),
            RateChange(date=date(2026, 6, 15), rate=Decimal("8.75")),
        ),
        extra_payments=(
            ExtraPayment(date=date(2027, 3, 10), amount=Decimal("300000")),
            ExtraPayment(date=date(2029, 12, 1), amount=Decimal("500000")),
        ),
    )


@pytest.fixture
def construction_payload() -> dict:
    """The canonical loan as a JSON request body."""
    return {
        "name": "Tower B flat",
        "principal_approved": "6000000",
        "tenure_years": 20,
        "initial_rate": "8.5",
        "start_date": "2024-01-01",
        "disbursals": [
            {"date": "2024-01-10", "amount": "1500000"},
            {"date": "2024-07-15", "amount": "1500000"},
            {"date": "2025-02-01", "amount": "2000000"},
            {"date": "2025-09-20", "amount": "1000000"},
        ],
        "rate_changes": [
            {"date": "2025-05-01", "rate": "9.0"},
            {"date": "2026-06-15", "rate": "8.75"},
        ],
        "extra_payments": [
            {"date": "2027-03-10", "amount": "300000"},
            {"date": "2029-12-01", "amount": "500000"},
        ],
    }


@pytest.fixture
def app(tmp_path):
    flask_app = create_app(database_url=f"sqlite:///{tmp_path / 'calculations.sqlite3'}")
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
