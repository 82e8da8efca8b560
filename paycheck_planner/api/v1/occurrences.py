"""POST /v1/occurrences - Expand one recurring item or debt over a window"""

import logging

from fastapi import APIRouter, Request

from paycheck_planner.api.dependencies import get_request_id
from paycheck_planner.api.v1.schemas import OccurrencesRequest, OccurrencesResponse
from paycheck_planner.domain.recurrence import expand_occurrences, is_known_frequency
from paycheck_planner.infrastructure.observability.metrics import unknown_frequency_counter

router = APIRouter()


@router.post("/occurrences", response_model=OccurrencesResponse)
def create_occurrences(request_body: OccurrencesRequest, request: Request):
    """
    Concrete due dates inside [window_start, window_end].

    Income dates are rolled back to the previous business day; expenses and debts
    are returned as scheduled. Malformed definitions are rejected with 422.
    """
    if request_body.item is not None:
        source = request_body.item.to_domain()
        frequency = source.frequency
    else:
        source = request_body.debt.to_domain()
        frequency = source.payment_frequency

    if not is_known_frequency(frequency):
        unknown_frequency_counter.inc()

    dates = expand_occurrences(
        source,
        request_body.window_start,
        request_body.window_end,
        as_of=request_body.as_of,
    )

    logging.info(
        f"Expanded {len(dates)} occurrences for {source.name}",
        extra={"request_id": get_request_id(request), "item_id": source.id},
    )
    return OccurrencesResponse(dates=dates)
