"""Paycheck event generation and paycheck period construction"""

import logging
import math
from datetime import date, timedelta
from decimal import Decimal
from itertools import groupby
from typing import Iterable, List

from dateutil.relativedelta import relativedelta

from paycheck_planner.domain.exceptions import DomainException
from paycheck_planner.domain.models import (
    PaycheckEvent,
    PaycheckPeriod,
    PaycheckSource,
    RecurringItem,
    to_cents,
)
from paycheck_planner.domain.recurrence import expand_item_occurrences

logger = logging.getLogger(__name__)

ESTIMATED_PAY_INTERVAL = timedelta(weeks=2)
DEFAULT_PAYCHECK_AMOUNT = Decimal("3000.00")


def generate_paycheck_events(
    income_items: Iterable[RecurringItem],
    window_start: date,
    window_end: date,
) -> List[PaycheckEvent]:
    """
    Flatten every income item's occurrences in the window into dated paycheck events.

    An income item that cannot be expanded is logged and skipped so the remaining
    sources still produce paychecks.
    """
    events: List[PaycheckEvent] = []
    for item in income_items:
        if not item.is_income:
            continue
        try:
            occurrences = expand_item_occurrences(item, window_start, window_end)
        except (DomainException, ValueError, OverflowError) as e:
            message = e.message if isinstance(e, DomainException) else str(e)
            logger.warning(
                f"Skipping income source {item.name}: {message}",
                extra={"item_id": item.id},
            )
            continue
        events.extend(
            PaycheckEvent(date=occ.date, amount=to_cents(item.amount), source_label=item.name)
            for occ in occurrences
        )

    # Global chronological order; ties keep source order
    events.sort(key=lambda e: e.date)
    return events


def generate_estimated_events(
    reference_date: date,
    amount: Decimal = DEFAULT_PAYCHECK_AMOUNT,
    periods_count: int = 12,
    past_periods: int = 3,
) -> List[PaycheckEvent]:
    """
    Synthetic bi-weekly paychecks used when no income is defined.

    Starts ``past_periods`` intervals before the reference date so recent history is
    covered, then runs ``periods_count`` intervals forward.
    """
    first = reference_date - ESTIMATED_PAY_INTERVAL * past_periods
    return [
        PaycheckEvent(
            date=first + ESTIMATED_PAY_INTERVAL * i,
            amount=to_cents(amount),
            source_label="Estimated paycheck",
            source_kind=PaycheckSource.ESTIMATED,
        )
        for i in range(past_periods + periods_count)
    ]


def merge_same_day_events(events: Iterable[PaycheckEvent]) -> List[PaycheckEvent]:
    """Combine paychecks landing on the same calendar day into one economic event"""
    merged = []
    ordered = sorted(events, key=lambda e: e.date)
    for day, group in groupby(ordered, key=lambda e: e.date):
        same_day = list(group)
        labels = []
        for event in same_day:
            if event.source_label not in labels:
                labels.append(event.source_label)
        all_estimated = all(e.source_kind == PaycheckSource.ESTIMATED for e in same_day)
        merged.append(
            PaycheckEvent(
                date=day,
                amount=sum((e.amount for e in same_day), Decimal("0.00")),
                source_label=" + ".join(labels),
                source_kind=PaycheckSource.ESTIMATED if all_estimated else PaycheckSource.ACTUAL,
            )
        )
    return merged


def build_periods(events: Iterable[PaycheckEvent]) -> List[PaycheckPeriod]:
    """
    Partition the timeline into paycheck periods.

    Each period runs from its paycheck to the day before the next one; the last
    period gets a one-month window. Periods are chronological, contiguous and
    non-overlapping.
    """
    merged = merge_same_day_events(events)
    periods = []
    for i, event in enumerate(merged):
        next_event = merged[i + 1] if i + 1 < len(merged) else None
        if next_event is not None:
            period_end = next_event.date - timedelta(days=1)
        else:
            period_end = event.date + relativedelta(months=1) - timedelta(days=1)

        periods.append(
            PaycheckPeriod(
                id=f"paycheck-{event.date.isoformat()}",
                paycheck_date=event.date,
                paycheck_amount=event.amount,
                period_start=event.date,
                period_end=period_end,
                next_paycheck_date=next_event.date if next_event else None,
                source_kind=event.source_kind,
                source_label=event.source_label,
            )
        )
    return periods


def build_paycheck_periods(
    income_items: Iterable[RecurringItem],
    reference_date: date,
    lookback_months: int = 2,
    forecast_periods: int = 12,
    past_periods: int = 3,
    default_amount: Decimal = DEFAULT_PAYCHECK_AMOUNT,
) -> List[PaycheckPeriod]:
    """
    Main entry point: paycheck periods around a reference date.

    Income is expanded from ``lookback_months`` before the reference date to
    ceil(forecast_periods / 4) months after it. Without any income item an
    estimated bi-weekly series is used instead.
    """
    income = [item for item in income_items if item.is_income]

    if not income:
        logger.info("No income items found, using estimated paychecks")
        events = generate_estimated_events(reference_date, default_amount, forecast_periods, past_periods)
        return build_periods(events)

    window_start = reference_date - relativedelta(months=lookback_months)
    window_end = reference_date + relativedelta(months=math.ceil(forecast_periods / 4))
    events = generate_paycheck_events(income, window_start, window_end)
    logger.debug(f"Generated {len(events)} paycheck events from {len(income)} income sources")
    return build_periods(events)
