"""Allocation engine - splits what is left after obligations across budgets, goals and funds"""

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from paycheck_planner.domain.exceptions import InvalidGoalError
from paycheck_planner.domain.models import (
    ZERO,
    ActualSpend,
    AllocationResult,
    Carryover,
    FinancialGoal,
    GoalLine,
    LineKind,
    PaycheckPeriod,
    PaycheckPreferences,
    SinkingFund,
    SinkingFundLine,
    VariableBudget,
    VariableExpenseLine,
    to_cents,
)
from paycheck_planner.domain.proration import prorate_monthly_amount
from paycheck_planner.domain.sinking_funds import plan_contributions
from paycheck_planner.utils.date_utils import month_end, month_start, overlaps

logger = logging.getLogger(__name__)

ESSENTIAL_CATEGORIES = frozenset({"housing", "utilities", "food", "transportation"})

MINOR_DEFICIT_LIMIT = Decimal("100")
MODERATE_DEFICIT_LIMIT = Decimal("500")


def format_money(amount: Decimal) -> str:
    return f"${to_cents(amount):,.2f}"


def is_essential(budget: VariableBudget) -> bool:
    return budget.category.strip().lower() in ESSENTIAL_CATEGORIES


def validate_goal(goal: FinancialGoal) -> None:
    if goal.target_date < goal.creation_date:
        raise InvalidGoalError(
            f"Goal {goal.name} has a target date before its creation date", goal.id
        )


def is_urgent_goal(goal: FinancialGoal, as_of: date, urgent_months: int = 6) -> bool:
    """Deadline within ``urgent_months`` of the reference date"""
    return goal.target_date <= as_of + relativedelta(months=urgent_months)


def spend_applies(period: PaycheckPeriod, as_of: date) -> bool:
    """Month-to-date spend only counts for periods overlapping the current calendar month"""
    return overlaps(period.period_start, period.period_end, month_start(as_of), month_end(as_of))


def deficit_guidance(deficit_amount: Decimal) -> str:
    amount = abs(deficit_amount)
    if amount < MINOR_DEFICIT_LIMIT:
        return "minor timing issue - consider cash flow adjustment"
    if amount < MODERATE_DEFICIT_LIMIT:
        return "moderate deficit - review discretionary spending"
    return "significant deficit - income or expense restructuring needed"


def deficit_allocation(deficit_amount: Decimal) -> AllocationResult:
    """Allocation-free result for a period whose obligations exceed what is available"""
    amount = to_cents(abs(deficit_amount))
    return AllocationResult(
        variable_expense_lines=[],
        goal_lines=[],
        carryover=Carryover(
            amount=ZERO,
            reason=f"Deficit of {format_money(amount)} - {deficit_guidance(amount)}",
        ),
        sinking_fund_lines=[],
    )


class _Pool:
    """Single depleting pool every allocation pass draws from"""

    def __init__(self, amount: Decimal):
        self.left = amount

    def take(self, wanted: Decimal) -> Decimal:
        granted = max(ZERO, min(to_cents(wanted), self.left))
        self.left -= granted
        return granted


def _spend_by_category(
    actual_spend: Optional[Iterable[ActualSpend]],
    period: PaycheckPeriod,
    as_of: date,
) -> Dict[str, Decimal]:
    if not actual_spend or not spend_applies(period, as_of):
        return {}
    spent: Dict[str, Decimal] = {}
    for record in actual_spend:
        spent[record.category_id] = spent.get(record.category_id, ZERO) + to_cents(record.spent_this_month)
    return spent


def _budget_targets(
    budgets: Sequence[VariableBudget],
    spent: Mapping[str, Decimal],
    period: PaycheckPeriod,
) -> List[Tuple[VariableBudget, Decimal, Decimal, Decimal]]:
    """(budget, remaining budget, prorated amount, actual spent) per budget"""
    targets = []
    for budget in budgets:
        actual = spent.get(budget.id, ZERO)
        remaining = max(ZERO, to_cents(budget.monthly_amount) - actual)
        prorated = prorate_monthly_amount(budget.monthly_amount, period.period_start, period.period_end)
        targets.append((budget, remaining, prorated, actual))
    return targets


def allocate(
    available_after_obligated: Decimal,
    budgets: Sequence[VariableBudget],
    actual_spend: Optional[Iterable[ActualSpend]],
    goals: Sequence[FinancialGoal],
    reserved_for_future_deficits: Decimal,
    *,
    period: PaycheckPeriod,
    as_of: date,
    sinking_funds: Sequence[SinkingFund] = (),
    preferences: Optional[PaycheckPreferences] = None,
    urgent_goal_months: int = 6,
) -> AllocationResult:
    """
    Split a non-negative amount across variable budgets, goals and sinking funds.

    Requirements:
    - Reserve for upcoming deficits first; it goes straight to carryover
    - Passes in order: essentials, urgent goals, non-essentials, normal goals
    - Sinking funds before essentials when prioritized, otherwise after urgent goals
    - Every line capped by the pool; what is left becomes carryover
    - Lines + carryover == available_after_obligated exactly
    """
    available = to_cents(available_after_obligated)
    if available < 0:
        raise ValueError("Deficit amounts must go through deficit_allocation")
    preferences = preferences or PaycheckPreferences()

    reserved = min(max(ZERO, to_cents(reserved_for_future_deficits)), available)
    pool = _Pool(available - reserved)
    reasons = []
    if reserved > 0:
        reasons.append(f"Reserved for upcoming deficit(s): {format_money(reserved)}")

    if pool.left <= 0:
        return AllocationResult(
            variable_expense_lines=[],
            goal_lines=[],
            carryover=Carryover(amount=reserved, reason="; ".join(reasons)),
            sinking_fund_lines=[],
        )

    for goal in goals:
        validate_goal(goal)

    spent = _spend_by_category(actual_spend, period, as_of)
    targets = _budget_targets(budgets, spent, period)
    fund_requests = plan_contributions(
        sinking_funds, period, as_of, preferences.sinking_fund_strategy, urgent_goal_months
    )

    variable_lines: List[VariableExpenseLine] = []
    goal_lines: List[GoalLine] = []
    fund_lines: List[SinkingFundLine] = []

    def budget_pass(essential: bool) -> None:
        for budget, remaining, prorated, actual in targets:
            if is_essential(budget) != essential or remaining <= 0:
                continue
            wanted = min(remaining, prorated)
            granted = pool.take(wanted)
            if granted <= 0:
                continue
            variable_lines.append(
                VariableExpenseLine(
                    id=budget.id,
                    name=budget.name,
                    category=budget.category,
                    suggested_amount=granted,
                    is_proportional=granted < wanted,
                    remaining_budget=remaining,
                    actual_spent=actual,
                    prorated_amount=prorated,
                )
            )

    def goal_pass(urgent: bool) -> None:
        for goal in goals:
            goal_is_urgent = is_urgent_goal(goal, as_of, urgent_goal_months)
            if goal_is_urgent != urgent:
                continue
            wanted = prorate_monthly_amount(goal.monthly_target, period.period_start, period.period_end)
            granted = pool.take(wanted)
            if granted <= 0:
                continue
            goal_lines.append(
                GoalLine(
                    id=goal.id,
                    name=goal.name,
                    suggested_amount=granted,
                    monthly_target=goal.monthly_target,
                    is_urgent=goal_is_urgent,
                )
            )

    def fund_pass() -> None:
        for request in fund_requests:
            granted = pool.take(request.suggested_amount)
            if granted > 0:
                fund_lines.append(replace(request, suggested_amount=granted))

    if preferences.prioritize_sinking_funds:
        fund_pass()
    budget_pass(essential=True)
    goal_pass(urgent=True)
    if not preferences.prioritize_sinking_funds:
        fund_pass()
    budget_pass(essential=False)
    goal_pass(urgent=False)

    if pool.left > 0:
        reasons.append(f"{format_money(pool.left)} unallocated - choose how to use")

    return AllocationResult(
        variable_expense_lines=variable_lines,
        goal_lines=goal_lines,
        carryover=Carryover(amount=reserved + pool.left, reason="; ".join(reasons)),
        sinking_fund_lines=fund_lines,
    )


def apply_overrides(
    allocation: AllocationResult,
    overrides: Mapping[Tuple[LineKind, str], Decimal],
    pool: Decimal,
    budgets: Sequence[VariableBudget] = (),
    goals: Sequence[FinancialGoal] = (),
    sinking_funds: Sequence[SinkingFund] = (),
) -> AllocationResult:
    """
    Replace auto amounts with manual plan amounts.

    Overridden lines take the override amount; items that received nothing get a new
    line. Carryover becomes pool minus every line, negative when the plan commits more
    than the pool holds. Overrides for obligated kinds or unknown items are ignored.
    """
    if not overrides:
        return allocation

    def override_for(kind: LineKind, item_id: str) -> Optional[Decimal]:
        value = overrides.get((kind, item_id))
        if value is None:
            value = overrides.get((kind.value, item_id))
        return None if value is None else max(ZERO, to_cents(value))

    variable_lines = []
    seen = set()
    for line in allocation.variable_expense_lines:
        seen.add(line.id)
        amount = override_for(LineKind.VARIABLE, line.id)
        variable_lines.append(line if amount is None else replace(line, suggested_amount=amount))
    for budget in budgets:
        amount = override_for(LineKind.VARIABLE, budget.id)
        if budget.id in seen or amount is None:
            continue
        variable_lines.append(
            VariableExpenseLine(
                id=budget.id,
                name=budget.name,
                category=budget.category,
                suggested_amount=amount,
                is_proportional=False,
                remaining_budget=to_cents(budget.monthly_amount),
                actual_spent=ZERO,
            )
        )

    goal_lines = []
    seen = set()
    for line in allocation.goal_lines:
        seen.add(line.id)
        amount = override_for(LineKind.GOAL, line.id)
        goal_lines.append(line if amount is None else replace(line, suggested_amount=amount))
    for goal in goals:
        amount = override_for(LineKind.GOAL, goal.id)
        if goal.id in seen or amount is None:
            continue
        goal_lines.append(
            GoalLine(id=goal.id, name=goal.name, suggested_amount=amount, monthly_target=goal.monthly_target)
        )

    fund_lines = []
    seen = set()
    for line in allocation.sinking_fund_lines:
        seen.add(line.id)
        amount = override_for(LineKind.SINKING_FUND, line.id)
        fund_lines.append(line if amount is None else replace(line, suggested_amount=amount))
    for fund in sinking_funds:
        amount = override_for(LineKind.SINKING_FUND, fund.id)
        if fund.id in seen or amount is None:
            continue
        fund_lines.append(
            SinkingFundLine(
                id=fund.id,
                name=fund.name,
                suggested_amount=amount,
                contribution_frequency=fund.contribution_frequency,
                target_amount=fund.target_amount,
                current_amount=fund.current_amount,
                next_expense_date=fund.next_expense_date,
            )
        )

    committed = sum(
        (line.suggested_amount for line in [*variable_lines, *goal_lines, *fund_lines]),
        ZERO,
    )
    leftover = to_cents(pool) - committed
    if leftover < 0:
        reason = f"Manual plan over-committed by {format_money(-leftover)}"
        logger.info(reason)
    else:
        reason = f"{format_money(leftover)} left after manual plan"

    return AllocationResult(
        variable_expense_lines=variable_lines,
        goal_lines=goal_lines,
        carryover=Carryover(amount=leftover, reason=reason),
        sinking_fund_lines=fund_lines,
    )
