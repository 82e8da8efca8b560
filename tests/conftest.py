"""Pytest fixtures for testing"""

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from paycheck_planner.api.dependencies import get_today
from paycheck_planner.api.main import create_app
from paycheck_planner.domain.models import (
    DebtObligation,
    FinancialGoal,
    PaycheckPeriod,
    RecurringItem,
    SinkingFund,
    VariableBudget,
)

REFERENCE_DATE = date(2024, 3, 15)


@pytest.fixture
def reference_date() -> date:
    """Fixed 'today' so schedules are deterministic"""
    return REFERENCE_DATE


@pytest.fixture
def client() -> TestClient:
    """Create FastAPI test client with a pinned reference date"""
    app = create_app()
    app.dependency_overrides[get_today] = lambda: REFERENCE_DATE
    return TestClient(app)


@pytest.fixture
def salary() -> RecurringItem:
    """Bi-weekly paycheck on Fridays"""
    return RecurringItem(
        id="salary",
        name="Salary",
        kind="income",
        amount=Decimal("2000.00"),
        frequency="bi-weekly",
        start_date=date(2024, 1, 5),
    )


@pytest.fixture
def rent() -> RecurringItem:
    return RecurringItem(
        id="rent",
        name="Rent",
        kind="fixed-expense",
        amount=Decimal("1200.00"),
        frequency="monthly",
        start_date=date(2024, 1, 1),
    )


@pytest.fixture
def streaming() -> RecurringItem:
    return RecurringItem(
        id="streaming",
        name="Streaming",
        kind="subscription",
        amount=Decimal("15.49"),
        frequency="monthly",
        last_renewal_date=date(2024, 2, 20),
    )


@pytest.fixture
def car_loan() -> DebtObligation:
    return DebtObligation(
        id="car",
        name="Car Loan",
        minimum_payment=Decimal("350.00"),
        payment_frequency="monthly",
        creation_date=date(2023, 6, 1),
        next_due_date=date(2024, 3, 20),
    )


@pytest.fixture
def budgets() -> list[VariableBudget]:
    return [
        VariableBudget(id="groceries", name="Groceries", category="Food", monthly_amount=Decimal("600.00")),
        VariableBudget(id="fun", name="Going Out", category="Entertainment", monthly_amount=Decimal("200.00")),
    ]


@pytest.fixture
def emergency_goal() -> FinancialGoal:
    return FinancialGoal(
        id="emergency",
        name="Emergency Fund",
        target_amount=Decimal("3000.00"),
        current_amount=Decimal("0.00"),
        target_date=date(2025, 3, 1),
        creation_date=date(2024, 3, 1),
    )


@pytest.fixture
def insurance_fund() -> SinkingFund:
    return SinkingFund(
        id="insurance",
        name="Car Insurance",
        target_amount=Decimal("1200.00"),
        current_amount=Decimal("200.00"),
        monthly_contribution=Decimal("100.00"),
        contribution_frequency="monthly",
        creation_date=date(2024, 1, 1),
        next_expense_date=date(2024, 12, 1),
    )


def make_period(start: date, end: date, amount: str, next_paycheck: date | None = None) -> PaycheckPeriod:
    """Period helper for tests that do not need the period builder"""
    return PaycheckPeriod(
        id=f"paycheck-{start.isoformat()}",
        paycheck_date=start,
        paycheck_amount=Decimal(amount),
        period_start=start,
        period_end=end,
        next_paycheck_date=next_paycheck,
    )


@pytest.fixture
def period_factory():
    return make_period
