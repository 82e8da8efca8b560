"""Unit tests for the allocation engine"""

import random
from datetime import date, timedelta
from decimal import Decimal

import pytest

from paycheck_planner.domain.allocation import (
    allocate,
    apply_overrides,
    deficit_allocation,
    deficit_guidance,
)
from paycheck_planner.domain.exceptions import InvalidGoalError
from paycheck_planner.domain.models import (
    ActualSpend,
    FinancialGoal,
    LineKind,
    PaycheckPreferences,
    SinkingFund,
    VariableBudget,
)

MARCH = (date(2024, 3, 1), date(2024, 3, 31))
AS_OF = date(2024, 3, 15)


def budget(budget_id: str, category: str, amount: str) -> VariableBudget:
    return VariableBudget(id=budget_id, name=budget_id.title(), category=category, monthly_amount=Decimal(amount))


@pytest.fixture
def march(period_factory):
    """A period covering exactly one calendar month"""
    return period_factory(*MARCH, "2000.00", next_paycheck=date(2024, 4, 1))


def total_of(result) -> Decimal:
    return result.total_allocated + result.carryover.amount


def test_essentials_before_non_essentials(march):
    """Test housing is funded in full before entertainment gets the rest"""
    budgets = [budget("fun", "Entertainment", "50"), budget("rent", "Housing", "80")]

    result = allocate(Decimal("100"), budgets, None, [], Decimal("0"), period=march, as_of=AS_OF)

    lines = {line.id: line for line in result.variable_expense_lines}
    assert lines["rent"].suggested_amount == Decimal("80.00")
    assert not lines["rent"].is_proportional
    assert lines["fun"].suggested_amount == Decimal("20.00")
    assert lines["fun"].is_proportional
    assert result.carryover.amount == Decimal("0.00")
    assert [line.id for line in result.variable_expense_lines] == ["rent", "fun"]


def test_actual_spend_over_budget_gets_nothing(march):
    """Test a category already overspent this month receives no allocation"""
    budgets = [budget("dining", "Dining", "200")]
    spend = [ActualSpend(category_id="dining", spent_this_month=Decimal("250"))]

    result = allocate(Decimal("500"), budgets, spend, [], Decimal("0"), period=march, as_of=AS_OF)

    assert result.variable_expense_lines == []
    assert result.carryover.amount == Decimal("500.00")


def test_actual_spend_reduces_remaining_budget(march):
    """Test month-to-date spend caps the allocation at the remaining budget"""
    budgets = [budget("groceries", "Food", "600")]
    spend = [ActualSpend(category_id="groceries", spent_this_month=Decimal("450"))]

    result = allocate(Decimal("1000"), budgets, spend, [], Decimal("0"), period=march, as_of=AS_OF)

    line = result.variable_expense_lines[0]
    assert line.suggested_amount == Decimal("150.00")
    assert line.remaining_budget == Decimal("150.00")
    assert line.actual_spent == Decimal("450.00")


def test_actual_spend_ignored_outside_current_month(period_factory):
    """Test spend history never projects onto a future month"""
    april = period_factory(date(2024, 4, 1), date(2024, 4, 30), "2000.00")
    budgets = [budget("dining", "Dining", "200")]
    spend = [ActualSpend(category_id="dining", spent_this_month=Decimal("250"))]

    result = allocate(Decimal("500"), budgets, spend, [], Decimal("0"), period=april, as_of=AS_OF)

    assert result.variable_expense_lines[0].suggested_amount == Decimal("200.00")


def test_short_period_gets_prorated_budget(period_factory):
    """Test a two-week period only takes its share of a monthly budget"""
    period = period_factory(date(2024, 3, 1), date(2024, 3, 14), "1000.00")

    result = allocate(
        Decimal("1000"), [budget("groceries", "Food", "310")], None, [], Decimal("0"), period=period, as_of=AS_OF
    )

    line = result.variable_expense_lines[0]
    assert line.suggested_amount == Decimal("140.00")
    assert line.prorated_amount == Decimal("140.00")
    assert not line.is_proportional  # fully funded to its prorated share
    assert result.carryover.amount == Decimal("860.00")


def test_short_period_line_is_proportional_when_pool_runs_out(period_factory):
    """Test a line below its prorated share is flagged proportional"""
    period = period_factory(date(2024, 3, 1), date(2024, 3, 14), "100.00")

    result = allocate(
        Decimal("100"), [budget("groceries", "Food", "310")], None, [], Decimal("0"), period=period, as_of=AS_OF
    )

    line = result.variable_expense_lines[0]
    assert line.suggested_amount == Decimal("100.00")
    assert line.is_proportional
    assert result.carryover.amount == Decimal("0.00")


def test_urgent_goals_before_non_essentials(march):
    """Test a goal due within six months outranks discretionary budgets"""
    urgent = FinancialGoal(
        id="trip",
        name="Trip",
        target_amount=Decimal("1200"),
        current_amount=Decimal("0"),
        target_date=date(2024, 6, 1),
        creation_date=date(2024, 3, 1),
    )
    budgets = [budget("fun", "Entertainment", "100"), budget("groceries", "Food", "100")]

    result = allocate(Decimal("450"), budgets, None, [urgent], Decimal("0"), period=march, as_of=AS_OF)

    assert result.goal_lines[0].suggested_amount == Decimal("300.00")
    assert result.goal_lines[0].is_urgent
    amounts = {line.id: line.suggested_amount for line in result.variable_expense_lines}
    assert amounts == {"groceries": Decimal("100.00"), "fun": Decimal("50.00")}


def test_reserve_goes_to_carryover_first(march):
    """Test funds reserved for future deficits are held back before any pass"""
    result = allocate(
        Decimal("500"), [budget("groceries", "Food", "400")], None, [], Decimal("200"), period=march, as_of=AS_OF
    )

    assert result.variable_expense_lines[0].suggested_amount == Decimal("300.00")
    assert result.carryover.amount == Decimal("200.00")
    assert "Reserved for upcoming deficit(s): $200.00" in result.carryover.reason


def test_reserve_larger_than_available(march):
    """Test an oversized reserve leaves every line empty"""
    result = allocate(
        Decimal("100"), [budget("groceries", "Food", "400")], None, [], Decimal("300"), period=march, as_of=AS_OF
    )

    assert result.variable_expense_lines == []
    assert result.goal_lines == []
    assert result.carryover.amount == Decimal("100.00")


def test_unallocated_reason(march):
    """Test leftover money is explained in the carryover reason"""
    result = allocate(Decimal("250"), [], None, [], Decimal("0"), period=march, as_of=AS_OF)

    assert result.carryover.amount == Decimal("250.00")
    assert result.carryover.reason == "$250.00 unallocated - choose how to use"


def test_sinking_fund_priority(march):
    """Test prioritized sinking funds are paid before essentials"""
    fund = SinkingFund(
        id="insurance",
        name="Insurance",
        target_amount=Decimal("1200"),
        current_amount=Decimal("0"),
        monthly_contribution=Decimal("100"),
        contribution_frequency="monthly",
        creation_date=date(2024, 1, 1),
    )
    budgets = [budget("groceries", "Food", "100")]

    first = allocate(
        Decimal("100"), budgets, None, [], Decimal("0"),
        period=march, as_of=AS_OF, sinking_funds=[fund],
        preferences=PaycheckPreferences(prioritize_sinking_funds=True),
    )
    after = allocate(
        Decimal("100"), budgets, None, [], Decimal("0"),
        period=march, as_of=AS_OF, sinking_funds=[fund],
    )

    assert [line.suggested_amount for line in first.sinking_fund_lines] == [Decimal("100.00")]
    assert first.variable_expense_lines == []
    assert after.sinking_fund_lines == []
    assert after.variable_expense_lines[0].suggested_amount == Decimal("100.00")


def test_negative_amount_rejected(march):
    """Test deficits must go through deficit_allocation"""
    with pytest.raises(ValueError):
        allocate(Decimal("-1"), [], None, [], Decimal("0"), period=march, as_of=AS_OF)


def test_goal_deadline_before_creation_rejected(march):
    """Test an inconsistent goal is a domain error"""
    goal = FinancialGoal(
        id="bad",
        name="Bad",
        target_amount=Decimal("100"),
        current_amount=Decimal("0"),
        target_date=date(2023, 1, 1),
        creation_date=date(2024, 1, 1),
    )

    with pytest.raises(InvalidGoalError):
        allocate(Decimal("100"), [], None, [goal], Decimal("0"), period=march, as_of=AS_OF)


def test_conservation_randomized(period_factory):
    """Test lines plus carryover always equal the amount available"""
    rng = random.Random(20240315)
    categories = ["Housing", "Utilities", "Food", "Transportation", "Entertainment", "Shopping", "Travel"]
    frequencies = ["weekly", "bi-weekly", "monthly", "quarterly", "annually"]

    for _ in range(200):
        start = date(2024, 1, 1) + timedelta(days=rng.randint(0, 300))
        period = period_factory(
            start,
            start + timedelta(days=rng.randint(6, 30)),
            "0",
            next_paycheck=start + timedelta(days=rng.choice([7, 14, 31])),
        )
        budgets = [
            budget(f"b{i}", rng.choice(categories), f"{rng.randint(0, 90000) / 100:.2f}")
            for i in range(rng.randint(0, 6))
        ]
        spend = [
            ActualSpend(category_id=b.id, spent_this_month=Decimal(rng.randint(0, 50000)) / 100)
            for b in budgets
            if rng.random() < 0.5
        ]
        goals = []
        for i in range(rng.randint(0, 3)):
            created = date(2023, 6, 1) + timedelta(days=rng.randint(0, 300))
            goals.append(
                FinancialGoal(
                    id=f"g{i}",
                    name=f"Goal {i}",
                    target_amount=Decimal(rng.randint(0, 1000000)) / 100,
                    current_amount=Decimal(rng.randint(0, 200000)) / 100,
                    target_date=created + timedelta(days=rng.randint(0, 900)),
                    creation_date=created,
                )
            )
        funds = [
            SinkingFund(
                id=f"f{i}",
                name=f"Fund {i}",
                target_amount=Decimal(rng.randint(0, 300000)) / 100,
                current_amount=Decimal(rng.randint(0, 100000)) / 100,
                monthly_contribution=Decimal(rng.randint(0, 50000)) / 100,
                contribution_frequency=rng.choice(frequencies),
                creation_date=date(2023, 1, 1),
                next_expense_date=date(2024, 1, 1) + timedelta(days=rng.randint(0, 500)),
            )
            for i in range(rng.randint(0, 3))
        ]
        available = Decimal(rng.randint(0, 500000)) / 100
        reserved = Decimal(rng.randint(0, 100000)) / 100 if rng.random() < 0.3 else Decimal("0")
        preferences = PaycheckPreferences(
            prioritize_sinking_funds=rng.random() < 0.5,
            sinking_fund_strategy=rng.choice(["proportional", "deadline-priority", "frequency-based"]),
        )

        result = allocate(
            available, budgets, spend, goals, reserved,
            period=period, as_of=AS_OF, sinking_funds=funds, preferences=preferences,
        )

        assert total_of(result) == available
        assert result.carryover.amount >= 0
        all_lines = [*result.variable_expense_lines, *result.goal_lines, *result.sinking_fund_lines]
        assert all(line.suggested_amount > 0 for line in all_lines)
        for line in result.variable_expense_lines:
            assert line.suggested_amount <= min(line.remaining_budget, line.prorated_amount)


def test_deficit_guidance_scales_with_size():
    """Test minor, moderate and significant deficit guidance"""
    assert deficit_guidance(Decimal("99.99")).startswith("minor")
    assert deficit_guidance(Decimal("100")).startswith("moderate")
    assert deficit_guidance(Decimal("499.99")).startswith("moderate")
    assert deficit_guidance(Decimal("500")).startswith("significant")


def test_deficit_allocation_is_empty():
    """Test a deficit period allocates nothing and explains why"""
    result = deficit_allocation(Decimal("-200"))

    assert result.total_allocated == Decimal("0.00")
    assert result.carryover.amount == Decimal("0.00")
    assert result.carryover.reason == "Deficit of $200.00 - moderate deficit - review discretionary spending"


def test_manual_overrides_replace_and_add_lines(march):
    """Test overrides change amounts, add missing lines and rebalance carryover"""
    budgets = [budget("groceries", "Food", "100"), budget("fun", "Entertainment", "0")]
    auto = allocate(Decimal("300"), budgets, None, [], Decimal("0"), period=march, as_of=AS_OF)

    manual = apply_overrides(
        auto,
        {(LineKind.VARIABLE, "groceries"): Decimal("150"), (LineKind.VARIABLE, "fun"): Decimal("25")},
        Decimal("300"),
        budgets,
    )

    amounts = {line.id: line.suggested_amount for line in manual.variable_expense_lines}
    assert amounts == {"groceries": Decimal("150.00"), "fun": Decimal("25.00")}
    assert manual.carryover.amount == Decimal("125.00")
    assert total_of(manual) == Decimal("300.00")


def test_manual_overrides_can_overcommit(march):
    """Test an over-committed plan carries a negative balance"""
    budgets = [budget("groceries", "Food", "100")]
    auto = allocate(Decimal("300"), budgets, None, [], Decimal("0"), period=march, as_of=AS_OF)

    manual = apply_overrides(auto, {(LineKind.VARIABLE, "groceries"): Decimal("400")}, Decimal("300"), budgets)

    assert manual.carryover.amount == Decimal("-100.00")
    assert "over-committed" in manual.carryover.reason
