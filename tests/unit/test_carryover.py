"""Unit tests for carryover propagation across paycheck periods"""

from dataclasses import replace
from datetime import date
from decimal import Decimal

from paycheck_planner.domain.carryover import compute_breakdowns, scan_future_deficits
from paycheck_planner.domain.models import (
    LineKind,
    ManualPlan,
    PaycheckPreferences,
    PaycheckSource,
    RecurringItem,
    VariableBudget,
)
from paycheck_planner.domain.paychecks import build_paycheck_periods

AS_OF = date(2024, 3, 1)


def bill(item_id: str, amount: str, due: date) -> RecurringItem:
    return RecurringItem(
        id=item_id,
        name=item_id.title(),
        kind="fixed-expense",
        amount=Decimal(amount),
        frequency="monthly",
        start_date=due,
    )


def two_periods(period_factory, first: str = "1000.00", second: str = "1000.00"):
    return [
        period_factory(date(2024, 3, 1), date(2024, 3, 14), first, next_paycheck=date(2024, 3, 15)),
        period_factory(date(2024, 3, 15), date(2024, 3, 28), second),
    ]


def test_deficit_propagates_in_full(period_factory):
    """Test a 200 shortfall reduces the next period's available funds to 800"""
    items = [bill("a", "1200.00", date(2024, 3, 5)), bill("b", "800.00", date(2024, 3, 20))]

    first, second = compute_breakdowns(two_periods(period_factory), items, [], [], [], as_of=AS_OF)

    assert first.is_deficit
    assert first.deficit_amount == Decimal("200.00")
    assert first.total_allocated == Decimal("0.00")
    assert first.allocation.carryover.reason.startswith("Deficit of $200.00")
    assert second.carryover_in == Decimal("-200.00")
    assert second.total_available == Decimal("800.00")
    assert second.remaining_after_obligated == Decimal("0.00")
    assert not second.is_deficit
    assert second.deficit_amount is None


def test_scan_records_running_shortfalls(period_factory):
    """Test the look-ahead scan marks every period with a negative running balance"""
    periods = two_periods(period_factory, "1000.00", "500.00")

    deficits = scan_future_deficits(periods, [Decimal("0"), Decimal("2000")])

    assert [(d.period_index, d.amount) for d in deficits] == [(1, Decimal("500.00"))]
    assert deficits[0].reason == "Obligations exceed available funds by period 2"


def test_upcoming_deficit_is_reserved(period_factory):
    """Test money is held back for a deficit in the next periods"""
    items = [bill("car-repair", "2000.00", date(2024, 3, 20))]
    budgets = [VariableBudget(id="fun", name="Fun", category="Entertainment", monthly_amount=Decimal("200"))]

    first, second = compute_breakdowns(
        two_periods(period_factory, "1000.00", "500.00"), items, [], budgets, [], as_of=AS_OF
    )

    assert [d.period_index for d in first.upcoming_deficits] == [1]
    assert first.allocation.variable_expense_lines[0].suggested_amount == Decimal("90.32")
    assert first.allocation.carryover.amount == Decimal("909.68")
    assert "Reserved for upcoming deficit(s): $500.00" in first.allocation.carryover.reason
    assert "Future deficit detected in next 1 paycheck(s)" in first.warnings
    assert second.carryover_in == Decimal("909.68")
    assert second.deficit_amount == Decimal("590.32")


def test_lookahead_horizon_is_configurable(period_factory):
    """Test a zero-period horizon reserves nothing"""
    items = [bill("car-repair", "2000.00", date(2024, 3, 20))]

    first, _ = compute_breakdowns(
        two_periods(period_factory, "1000.00", "500.00"), items, [], [], [], as_of=AS_OF, lookahead_periods=0
    )

    assert first.upcoming_deficits == []
    assert "Reserved" not in first.allocation.carryover.reason


def test_periods_are_processed_chronologically(period_factory):
    """Test unsorted input periods are ordered by paycheck date"""
    first, second = two_periods(period_factory)

    breakdowns = compute_breakdowns([second, first], [], [], [], [], as_of=AS_OF)

    assert [b.period.paycheck_date for b in breakdowns] == [date(2024, 3, 1), date(2024, 3, 15)]
    assert breakdowns[1].carryover_in == Decimal("1000.00")


def test_balance_threads_through_every_period(
    salary, rent, streaming, car_loan, budgets, emergency_goal, insurance_fund, reference_date
):
    """Test conservation per period and carryover_in == previous balance"""
    periods = build_paycheck_periods([salary], reference_date)

    breakdowns = compute_breakdowns(
        periods,
        [salary, rent, streaming],
        [car_loan],
        budgets,
        [emergency_goal],
        [insurance_fund],
        as_of=reference_date,
    )

    assert len(breakdowns) == len(periods)
    balance = Decimal("0")
    for breakdown in breakdowns:
        assert breakdown.carryover_in == balance
        if breakdown.is_deficit:
            balance = breakdown.remaining_after_obligated
        else:
            assert breakdown.total_allocated + breakdown.allocation.carryover.amount == breakdown.remaining_after_obligated
            assert breakdown.final_remaining == Decimal("0.00")
            balance = breakdown.allocation.carryover.amount
        assert breakdown.health_score == breakdowns[0].health_score


def test_expansion_failure_is_reported_not_raised(period_factory):
    """Test a malformed item is excluded and surfaced on each period"""
    broken = RecurringItem(
        id="gym",
        name="Gym",
        kind="fixed-expense",
        amount=Decimal("40.00"),
        frequency="semi-monthly",
        first_pay_day=1,
    )
    items = [broken, bill("rent", "900.00", date(2024, 3, 1))]

    first, second = compute_breakdowns(two_periods(period_factory), items, [], [], [], as_of=AS_OF)

    assert first.total_obligated == Decimal("900.00")
    assert [i.item_id for i in first.expansion_issues] == ["gym"]
    assert any(w.startswith("Could not schedule Gym") for w in second.warnings)


def test_estimated_paycheck_warning(period_factory):
    """Test breakdowns of estimated paychecks say so"""
    periods = [replace(p, source_kind=PaycheckSource.ESTIMATED) for p in two_periods(period_factory)]

    breakdowns = compute_breakdowns(periods, [], [], [], [], as_of=AS_OF)

    assert all("Based on estimated paycheck - actual amounts may vary" in b.warnings for b in breakdowns)


def test_manual_plan_overcommit_carries_negative_balance(period_factory):
    """Test an active manual plan overrides lines and its shortfall carries forward"""
    budgets = [VariableBudget(id="fun", name="Fun", category="Entertainment", monthly_amount=Decimal("200"))]
    preferences = PaycheckPreferences(
        allocation_mode="manual",
        active_manual_plan="plan1",
        manual_plans={
            "plan1": ManualPlan(
                start=date(2024, 3, 1),
                end=date(2024, 3, 14),
                overrides={(LineKind.VARIABLE, "fun"): Decimal("1100")},
            )
        },
    )

    first, second = compute_breakdowns(
        two_periods(period_factory), [], [], budgets, [], preferences=preferences, as_of=AS_OF
    )

    assert first.allocation.variable_expense_lines[0].suggested_amount == Decimal("1100.00")
    assert first.allocation.carryover.amount == Decimal("-100.00")
    assert "Manual plan over-committed by $100.00" in first.warnings
    assert second.carryover_in == Decimal("-100.00")
    assert second.total_available == Decimal("900.00")
    # Plan range ends before the second period
    assert second.allocation.variable_expense_lines[0].suggested_amount == Decimal("90.32")


def test_deficit_insights(period_factory):
    """Test deficit periods get coping suggestions"""
    items = [bill("a", "1200.00", date(2024, 3, 5))]

    first, _ = compute_breakdowns(two_periods(period_factory), items, [], [], [], as_of=AS_OF)

    assert first.insights[0].startswith("Consider delaying non-essential purchases")


def test_sub_cent_paycheck_is_rounded_before_scanning(period_factory):
    """Test a half-cent paycheck is scanned and allocated as the same whole-cent amount"""
    periods = two_periods(period_factory, "100.005", "0")
    rent = bill("rent", "100.01", date(2024, 3, 20))

    first, second = compute_breakdowns(periods, [rent], [], [], [], as_of=AS_OF)

    assert first.period.paycheck_amount == Decimal("100.01")
    assert first.remaining_after_obligated == Decimal("100.01")
    assert first.total_allocated + first.allocation.carryover.amount == Decimal("100.01")
    assert first.upcoming_deficits == []
    assert second.carryover_in == Decimal("100.01")
    assert not second.is_deficit
