"""Financial health analysis - income sufficiency and an overall 0-100 score"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Sequence

from paycheck_planner.domain.allocation import format_money, is_urgent_goal
from paycheck_planner.domain.models import (
    ZERO,
    DebtObligation,
    FinancialGoal,
    HealthReport,
    PaycheckPeriod,
    RecurringItem,
    VariableBudget,
    to_cents,
)
from paycheck_planner.domain.recurrence import monthly_multiplier

logger = logging.getLogger(__name__)

# Average Gregorian month length in days
AVERAGE_MONTH_DAYS = Decimal("30.4375")

HIGH_FIXED_RATIO = Decimal("0.7")
HIGH_FIXED_PENALTY = 20
URGENT_GOAL_PENALTY = 10


def sample_periods(periods: Sequence[PaycheckPeriod], as_of: date, size: int = 6) -> List[PaycheckPeriod]:
    """Up to ``size`` periods from the reference date onward (the latest ones if none are ahead)"""
    ordered = sorted(periods, key=lambda p: p.paycheck_date)
    upcoming = [p for p in ordered if p.period_end >= as_of]
    if upcoming:
        return upcoming[:size]
    return ordered[-size:]


def estimate_monthly_income(periods: Sequence[PaycheckPeriod]) -> Decimal:
    """
    Mean paycheck scaled by how many average-length periods fit in a month.

    Works for any pay schedule: bi-weekly pay of 1000 gives ~2174, monthly pay of
    1000 gives ~1000.
    """
    if not periods:
        return ZERO
    count = Decimal(len(periods))
    mean_amount = sum((p.paycheck_amount for p in periods), ZERO) / count
    mean_days = Decimal(sum(p.days for p in periods)) / count
    return to_cents(mean_amount * AVERAGE_MONTH_DAYS / mean_days)


def monthly_fixed_obligations(
    recurring_items: Sequence[RecurringItem],
    debts: Sequence[DebtObligation],
) -> Decimal:
    """Fixed expenses, subscriptions and debt minimums normalised to a monthly figure"""
    total = ZERO
    for item in recurring_items:
        if item.is_income:
            continue
        total += item.amount * monthly_multiplier(item.frequency)
    for debt in debts:
        total += debt.minimum_payment * monthly_multiplier(debt.payment_frequency)
    return to_cents(total)


def analyze_financial_health(
    periods: Sequence[PaycheckPeriod],
    recurring_items: Sequence[RecurringItem],
    debts: Sequence[DebtObligation],
    budgets: Sequence[VariableBudget],
    goals: Sequence[FinancialGoal],
    as_of: date,
    sample_size: int = 6,
    urgent_goal_months: int = 6,
) -> HealthReport:
    """
    Compare monthly income against monthly needs.

    Requirements:
    - Needs = fixed obligations + variable budgets + goal monthly targets
    - Score starts at min(100, income sufficiency %)
    - -20 when fixed obligations exceed 70% of income
    - -10 when any goal deadline falls within the urgent horizon
    - Floored at 0
    """
    monthly_income = estimate_monthly_income(sample_periods(periods, as_of, sample_size))
    monthly_fixed = monthly_fixed_obligations(recurring_items, debts)
    monthly_variable = to_cents(sum((b.monthly_amount for b in budgets), ZERO))
    monthly_goals = to_cents(sum((g.monthly_target for g in goals), ZERO))
    total_needs = monthly_fixed + monthly_variable + monthly_goals

    if total_needs > 0:
        sufficiency = to_cents(monthly_income / total_needs * 100)
    else:
        sufficiency = Decimal("100.00") if monthly_income > 0 else ZERO

    issues = []
    recommendations = []

    if sufficiency < 100:
        shortfall = total_needs - monthly_income
        issues.append(f"Income insufficient: need {format_money(shortfall)} more monthly")
        recommendations.append("Consider increasing income or reducing expenses")

    high_fixed = monthly_fixed > 0 and (
        monthly_income <= 0 or monthly_fixed / monthly_income > HIGH_FIXED_RATIO
    )
    if high_fixed:
        issues.append("High fixed expense ratio - limited flexibility")
        recommendations.append("Look for ways to reduce fixed expenses")

    urgent_goals = [g for g in goals if is_urgent_goal(g, as_of, urgent_goal_months)]
    if urgent_goals:
        recommendations.append(f"{len(urgent_goals)} goal(s) due within {urgent_goal_months} months")

    score = min(Decimal(100), sufficiency)
    if high_fixed:
        score -= HIGH_FIXED_PENALTY
    if urgent_goals:
        score -= URGENT_GOAL_PENALTY
    score = max(0, int(score.to_integral_value()))

    logger.debug(
        "Financial health analyzed",
        extra={"monthly_income": str(monthly_income), "total_needs": str(total_needs), "score": score},
    )

    return HealthReport(
        monthly_income=monthly_income,
        monthly_fixed=monthly_fixed,
        monthly_variable=monthly_variable,
        monthly_goals=monthly_goals,
        total_monthly_needs=to_cents(total_needs),
        income_sufficiency_pct=sufficiency,
        score=score,
        issues=issues,
        recommendations=recommendations,
    )
