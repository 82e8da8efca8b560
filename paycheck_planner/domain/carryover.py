"""Carryover propagation - threads surplus and deficit through chronological paycheck periods"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from paycheck_planner.domain.allocation import (
    allocate,
    apply_overrides,
    deficit_allocation,
    format_money,
    spend_applies,
    validate_goal,
)
from paycheck_planner.domain.expenses import match_expenses
from paycheck_planner.domain.health import analyze_financial_health
from paycheck_planner.domain.models import (
    ZERO,
    ActualSpend,
    AllocationResult,
    DebtObligation,
    DeficitForecast,
    ExpenseMatch,
    FinancialGoal,
    HealthReport,
    ManualPlan,
    PaycheckBreakdown,
    PaycheckPeriod,
    PaycheckPreferences,
    PaycheckSource,
    RecurringItem,
    SinkingFund,
    VariableBudget,
    to_cents,
)
from paycheck_planner.utils.date_utils import overlaps

logger = logging.getLogger(__name__)

CUMULATIVE_DEFICIT_WARNING = Decimal("100")
UNALLOCATED_INSIGHT_THRESHOLD = Decimal("100")
LOW_SUFFICIENCY_PCT = Decimal("90")
LOW_HEALTH_SCORE = 70


@dataclass(frozen=True)
class PassContext:
    """Inputs shared by every period of one computation pass"""

    recurring_items: Sequence[RecurringItem]
    debts: Sequence[DebtObligation]
    budgets: Sequence[VariableBudget]
    goals: Sequence[FinancialGoal]
    sinking_funds: Sequence[SinkingFund]
    preferences: PaycheckPreferences
    actual_spend: Sequence[ActualSpend]
    as_of: date
    health: HealthReport
    deficits: Sequence[DeficitForecast]
    lookahead_periods: int = 2
    urgent_goal_months: int = 6

    def upcoming_deficits(self, index: int) -> List[DeficitForecast]:
        """Scanned deficits in the next ``lookahead_periods`` periods after ``index``"""
        return [
            d for d in self.deficits
            if index < d.period_index <= index + self.lookahead_periods
        ]

    def manual_plan_for(self, period: PaycheckPeriod) -> Optional[ManualPlan]:
        plan = self.preferences.active_plan()
        if plan is None:
            return None
        if not overlaps(plan.start, plan.end, period.period_start, period.period_end):
            return None
        return plan


def scan_future_deficits(
    periods: Sequence[PaycheckPeriod],
    obligated_totals: Sequence[Decimal],
) -> List[DeficitForecast]:
    """
    Look-ahead pass: running balance of paychecks minus obligations.

    Every period where the running balance is negative is recorded with the size of
    the shortfall. Nothing is allocated here, so this balance is an upper bound on the
    balance the main loop sees.
    """
    deficits = []
    running = ZERO
    for index, (period, obligated) in enumerate(zip(periods, obligated_totals)):
        running += period.paycheck_amount - obligated
        if running < 0:
            deficits.append(
                DeficitForecast(
                    period_index=index,
                    amount=to_cents(-running),
                    reason=f"Obligations exceed available funds by period {index + 1}",
                )
            )
    return deficits


def propagate_period(
    balance: Decimal,
    index: int,
    period: PaycheckPeriod,
    match: ExpenseMatch,
    ctx: PassContext,
) -> Tuple[Decimal, PaycheckBreakdown]:
    """
    One fold step: (balance, period) -> (new balance, breakdown).

    Deficits carry forward in full. Otherwise the allocation's carryover (reserved
    plus unallocated money, never spent money) becomes the new balance.
    """
    total_obligated = match.total
    total_available = period.paycheck_amount + balance
    remaining = total_available - total_obligated
    is_deficit = remaining < 0
    upcoming = ctx.upcoming_deficits(index)

    if any(d.period_index == index for d in ctx.deficits):
        assert is_deficit, f"Look-ahead scan marks period {index} as a deficit but the balance is {remaining}"

    manual_plan = None
    if is_deficit:
        allocation = deficit_allocation(remaining)
        new_balance = remaining
    else:
        reserved = sum((d.amount for d in upcoming), ZERO)
        allocation = allocate(
            remaining,
            ctx.budgets,
            ctx.actual_spend,
            ctx.goals,
            reserved,
            period=period,
            as_of=ctx.as_of,
            sinking_funds=ctx.sinking_funds,
            preferences=ctx.preferences,
            urgent_goal_months=ctx.urgent_goal_months,
        )
        manual_plan = ctx.manual_plan_for(period)
        if manual_plan is not None:
            allocation = apply_overrides(
                allocation,
                manual_plan.overrides,
                remaining,
                ctx.budgets,
                ctx.goals,
                ctx.sinking_funds,
            )
        new_balance = allocation.carryover.amount

    total_allocated = ZERO if is_deficit else allocation.total_allocated
    final_remaining = ZERO if is_deficit else remaining - total_allocated - allocation.carryover.amount

    breakdown = PaycheckBreakdown(
        period=period,
        obligated_expenses=list(match.lines),
        total_obligated=total_obligated,
        carryover_in=balance,
        total_available=total_available,
        remaining_after_obligated=remaining,
        allocation=allocation,
        total_allocated=total_allocated,
        final_remaining=final_remaining,
        is_deficit=is_deficit,
        deficit_amount=-remaining if is_deficit else None,
        warnings=build_warnings(period, remaining, new_balance, upcoming, match, ctx, manual_plan is not None),
        health_score=ctx.health.score,
        insights=build_insights(period, remaining, upcoming, allocation, ctx),
        upcoming_deficits=upcoming,
        expansion_issues=list(match.issues),
    )
    return new_balance, breakdown


def build_warnings(
    period: PaycheckPeriod,
    remaining: Decimal,
    new_balance: Decimal,
    upcoming: Sequence[DeficitForecast],
    match: ExpenseMatch,
    ctx: PassContext,
    manual: bool,
) -> List[str]:
    warnings = []
    if remaining < 0:
        warnings.append(f"Deficit of {format_money(-remaining)} - obligations exceed available funds")
    if upcoming:
        warnings.append(f"Future deficit detected in next {len(upcoming)} paycheck(s)")
    if manual and remaining >= 0 and new_balance < 0:
        warnings.append(f"Manual plan over-committed by {format_money(-new_balance)}")
    elif new_balance < 0 and -new_balance > CUMULATIVE_DEFICIT_WARNING:
        warnings.append(f"Significant cumulative deficit: {format_money(-new_balance)}")
    if ctx.health.income_sufficiency_pct < LOW_SUFFICIENCY_PCT:
        warnings.append("Income may be insufficient for all financial goals")
    if period.source_kind == PaycheckSource.ESTIMATED:
        warnings.append("Based on estimated paycheck - actual amounts may vary")
    for issue in match.issues:
        warnings.append(f"Could not schedule {issue.item_name}: {issue.message}")
    return warnings


def build_insights(
    period: PaycheckPeriod,
    remaining: Decimal,
    upcoming: Sequence[DeficitForecast],
    allocation: AllocationResult,
    ctx: PassContext,
) -> List[str]:
    insights = []
    if remaining < 0:
        insights.append("Consider delaying non-essential purchases until the next paycheck arrives")
        insights.append("Check whether any bills can be paid later without penalties")
        insights.append("Look for quick wins like meal planning to stretch current funds")
    elif remaining > 0:
        insights.append("This paycheck has a surplus - good opportunity for strategic allocation")

        if ctx.actual_spend and spend_applies(period, ctx.as_of):
            spent = {}
            for record in ctx.actual_spend:
                spent[record.category_id] = spent.get(record.category_id, ZERO) + record.spent_this_month
            overspent = [b for b in ctx.budgets if spent.get(b.id, ZERO) > b.monthly_amount]
            under_used = [b for b in ctx.budgets if spent.get(b.id, ZERO) < b.monthly_amount / 2]
            if overspent:
                insights.append(f"Overspending detected in {len(overspent)} categories - allocations adjusted")
            if under_used:
                insights.append(f"Under budget in {under_used[0].name} - consider reallocating those funds")

        reserved = sum((d.amount for d in upcoming), ZERO)
        unallocated = allocation.carryover.amount - min(reserved, remaining)
        if unallocated > UNALLOCATED_INSIGHT_THRESHOLD:
            insights.append(
                f"{format_money(unallocated)} unallocated - consider extra debt payments or an emergency fund boost"
            )
        if upcoming:
            insights.append("Reserve funds for upcoming tight periods to stay on track")
        else:
            insights.append("No upcoming deficits detected - good time to accelerate financial goals")

    if ctx.health.score < LOW_HEALTH_SCORE:
        insights.append("Areas for financial improvement detected - focus on essential expenses first")
        if ctx.health.issues:
            insights.append(f"Priority issue: {ctx.health.issues[0]}")
    return insights


def compute_breakdowns(
    periods: Iterable[PaycheckPeriod],
    recurring_items: Sequence[RecurringItem],
    debts: Sequence[DebtObligation],
    variable_budgets: Sequence[VariableBudget],
    goals: Sequence[FinancialGoal],
    sinking_funds: Sequence[SinkingFund] = (),
    preferences: Optional[PaycheckPreferences] = None,
    actual_spend: Optional[Sequence[ActualSpend]] = None,
    *,
    as_of: date,
    lookahead_periods: int = 2,
    urgent_goal_months: int = 6,
    health_sample_periods: int = 6,
) -> List[PaycheckBreakdown]:
    """
    Main entry point: one breakdown per paycheck period, in chronological order.

    Requirements:
    - Periods sorted by paycheck date and rounded to whole cents before anything else
    - Look-ahead deficit scan before the main loop
    - Balance starts at 0 and is threaded period to period
    - An item that fails to expand is reported on its period, never aborts the pass
    """
    for goal in goals:
        validate_goal(goal)

    # Whole cents throughout so the look-ahead scan and the main loop agree
    ordered = [
        replace(p, paycheck_amount=to_cents(p.paycheck_amount))
        for p in sorted(periods, key=lambda p: p.paycheck_date)
    ]
    matches = [match_expenses(period, recurring_items, debts, as_of=as_of) for period in ordered]

    ctx = PassContext(
        recurring_items=recurring_items,
        debts=debts,
        budgets=variable_budgets,
        goals=goals,
        sinking_funds=sinking_funds,
        preferences=preferences or PaycheckPreferences(),
        actual_spend=actual_spend or [],
        as_of=as_of,
        health=analyze_financial_health(
            ordered,
            recurring_items,
            debts,
            variable_budgets,
            goals,
            as_of,
            sample_size=health_sample_periods,
            urgent_goal_months=urgent_goal_months,
        ),
        deficits=scan_future_deficits(ordered, [m.total for m in matches]),
        lookahead_periods=lookahead_periods,
        urgent_goal_months=urgent_goal_months,
    )

    breakdowns = []
    balance = ZERO
    for index, (period, match) in enumerate(zip(ordered, matches)):
        balance, breakdown = propagate_period(balance, index, period, match, ctx)
        logger.debug(
            f"Period {period.paycheck_date.isoformat()}: "
            f"{'deficit' if breakdown.is_deficit else 'surplus'} {breakdown.remaining_after_obligated}, "
            f"carryover {balance}"
        )
        breakdowns.append(breakdown)

    logger.info(
        "Breakdowns computed",
        extra={
            "period_count": len(breakdowns),
            "deficit_count": sum(1 for b in breakdowns if b.is_deficit),
            "health_score": ctx.health.score,
        },
    )
    return breakdowns
