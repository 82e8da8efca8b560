"""POST /v1/paycheck-periods - Build paycheck periods around a reference date"""

from datetime import date

from fastapi import APIRouter, Depends

from paycheck_planner.api.dependencies import get_settings, get_today
from paycheck_planner.api.v1.schemas import PaycheckPeriodsRequest, PaycheckPeriodsResponse, PeriodSchema
from paycheck_planner.config import Settings
from paycheck_planner.domain.paychecks import build_paycheck_periods

router = APIRouter()


@router.post("/paycheck-periods", response_model=PaycheckPeriodsResponse)
def create_paycheck_periods(
    request_body: PaycheckPeriodsRequest,
    settings: Settings = Depends(get_settings),
    today: date = Depends(get_today),
):
    """
    Paycheck periods from income items.

    Without income items a synthetic bi-weekly series of estimated paychecks is used.
    """
    reference_date = request_body.reference_date or today
    periods = build_paycheck_periods(
        [item.to_domain() for item in request_body.income_items],
        reference_date,
        lookback_months=settings.lookback_months,
        forecast_periods=settings.forecast_periods,
        past_periods=settings.past_periods,
        default_amount=settings.default_paycheck_amount,
    )
    return PaycheckPeriodsResponse(periods=[PeriodSchema.model_validate(p) for p in periods])
