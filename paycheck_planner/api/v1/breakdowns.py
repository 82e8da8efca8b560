"""POST /v1/breakdowns - Full paycheck breakdowns with carryover"""

import time
from datetime import date

from fastapi import APIRouter, Depends, Request

from paycheck_planner.api.dependencies import get_request_id, get_settings, get_today
from paycheck_planner.api.v1.schemas import BreakdownSchema, BreakdownsRequest, BreakdownsResponse
from paycheck_planner.config import Settings
from paycheck_planner.domain.carryover import compute_breakdowns
from paycheck_planner.domain.paychecks import build_paycheck_periods
from paycheck_planner.domain.recurrence import is_known_frequency
from paycheck_planner.infrastructure.observability.logging import log_breakdown_summary
from paycheck_planner.infrastructure.observability.metrics import (
    breakdown_duration_histogram,
    record_breakdowns,
    unknown_frequency_counter,
)

router = APIRouter()


@router.post("/breakdowns", response_model=BreakdownsResponse)
def create_breakdowns(
    request_body: BreakdownsRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    today: date = Depends(get_today),
):
    """
    Compute one breakdown per paycheck period.

    Flow:
    1. Build periods from income items unless the caller supplied them
    2. Match obligations, scan for future deficits, allocate and carry over
    3. Record metrics and a summary log line
    """
    start_time = time.perf_counter()
    request_id = get_request_id(request)
    reference_date = request_body.reference_date or today

    recurring_items = [item.to_domain() for item in request_body.recurring_items]
    debts = [debt.to_domain() for debt in request_body.debts]

    unknown = sum(1 for item in recurring_items if not is_known_frequency(item.frequency))
    unknown += sum(1 for debt in debts if not is_known_frequency(debt.payment_frequency))
    if unknown:
        unknown_frequency_counter.inc(unknown)

    # 1. Periods
    if request_body.periods is not None:
        periods = [p.to_domain() for p in request_body.periods]
    else:
        periods = build_paycheck_periods(
            recurring_items,
            reference_date,
            lookback_months=settings.lookback_months,
            forecast_periods=settings.forecast_periods,
            past_periods=settings.past_periods,
            default_amount=settings.default_paycheck_amount,
        )

    # 2. Breakdowns
    actual_spend = None
    if request_body.actual_spend is not None:
        actual_spend = [record.to_domain() for record in request_body.actual_spend]

    breakdowns = compute_breakdowns(
        periods,
        recurring_items,
        debts,
        [budget.to_domain() for budget in request_body.variable_budgets],
        [goal.to_domain() for goal in request_body.goals],
        [fund.to_domain() for fund in request_body.sinking_funds],
        request_body.preferences.to_domain(),
        actual_spend,
        as_of=reference_date,
        lookahead_periods=settings.deficit_lookahead_periods,
        urgent_goal_months=settings.urgent_goal_months,
        health_sample_periods=settings.health_sample_periods,
    )

    # 3. Metrics and logs
    duration = time.perf_counter() - start_time
    deficit_count = sum(1 for b in breakdowns if b.is_deficit)
    breakdown_duration_histogram.observe(duration)
    record_breakdowns(breakdowns)
    log_breakdown_summary(request_id, len(breakdowns), deficit_count, duration * 1000)

    return BreakdownsResponse(
        reference_date=reference_date,
        period_count=len(breakdowns),
        deficit_count=deficit_count,
        breakdowns=[BreakdownSchema.model_validate(b) for b in breakdowns],
    )
