"""Recurrence expansion for recurring items and debt payment schedules"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Union

from dateutil.relativedelta import relativedelta

from paycheck_planner.domain.business_days import (
    MAX_ROLLBACK_DAYS,
    adjust_to_previous_business_day,
    recover_natural_date,
)
from paycheck_planner.domain.exceptions import (
    InvalidDebtError,
    InvalidRecurrenceError,
    InvalidWindowError,
)
from paycheck_planner.domain.models import (
    DebtObligation,
    Frequency,
    ItemKind,
    Occurrence,
    RecurringItem,
)
from paycheck_planner.utils.date_utils import clamp_day, iter_months

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrequencyRule:
    """How one frequency steps through time and what it is worth per month"""

    step: Optional[relativedelta]  # None: not expressible as a fixed step (semi-monthly, other)
    monthly_multiplier: Decimal


# Single source of truth for frequency stepping, shared by both expanders and health analysis
FREQUENCY_RULES: Dict[str, FrequencyRule] = {
    Frequency.DAILY.value: FrequencyRule(relativedelta(days=1), Decimal(365) / Decimal(12)),
    Frequency.WEEKLY.value: FrequencyRule(relativedelta(weeks=1), Decimal(52) / Decimal(12)),
    Frequency.BI_WEEKLY.value: FrequencyRule(relativedelta(weeks=2), Decimal(26) / Decimal(12)),
    Frequency.SEMI_MONTHLY.value: FrequencyRule(None, Decimal(2)),
    Frequency.MONTHLY.value: FrequencyRule(relativedelta(months=1), Decimal(1)),
    Frequency.QUARTERLY.value: FrequencyRule(relativedelta(months=3), Decimal(1) / Decimal(3)),
    Frequency.YEARLY.value: FrequencyRule(relativedelta(years=1), Decimal(1) / Decimal(12)),
    Frequency.ANNUALLY.value: FrequencyRule(relativedelta(years=1), Decimal(1) / Decimal(12)),
    Frequency.OTHER.value: FrequencyRule(None, Decimal(1)),
}

# Debts only step on these; annually/other emit the single next due date
DEBT_STEPPED_FREQUENCIES = {Frequency.WEEKLY.value, Frequency.BI_WEEKLY.value, Frequency.MONTHLY.value}

# Unknown frequencies jump far enough ahead that expansion terminates after one date
UNKNOWN_FREQUENCY_STEP = relativedelta(years=100)

# Natural dates up to this far past a window can still roll back into it
ROLLBACK_SPAN = timedelta(days=MAX_ROLLBACK_DAYS + 1)


def is_known_frequency(frequency: str) -> bool:
    return frequency in FREQUENCY_RULES


def monthly_multiplier(frequency: str) -> Decimal:
    rule = FREQUENCY_RULES.get(frequency)
    return rule.monthly_multiplier if rule else Decimal(1)


def step_for(frequency: str, item_id: str | None = None) -> relativedelta:
    """Step for a frequency; unknown values get the terminating 100-year step"""
    rule = FREQUENCY_RULES.get(frequency)
    if rule is not None and rule.step is not None:
        return rule.step
    logger.warning(
        "Unrecognized frequency, expansion bounded to a single occurrence",
        extra={"item_id": item_id, "frequency": frequency},
    )
    return UNKNOWN_FREQUENCY_STEP


def step_series(
    anchor: date,
    step: relativedelta,
    window_start: date,
    window_end: date,
    floor: date | None = None,
) -> List[date]:
    """
    Every ``anchor + k * step`` inside [window_start, window_end].

    Dates are computed from the anchor rather than from the previous date, so month-end
    anchors clamp per month (Jan 31 -> Feb 29 -> Mar 31) instead of drifting.
    Nothing earlier than ``floor`` is emitted. The series ends where a step would
    leave the representable date range.
    """

    def at(k: int) -> Optional[date]:
        try:
            return anchor + step * k
        except (ValueError, OverflowError):
            return None

    # Step backward until reaching or passing the window start
    k = 0
    while at(k) > window_start:
        previous = at(k - 1)
        if previous is None or (floor is not None and previous < floor):
            break
        k -= 1

    # Step forward emitting everything in range
    dates = []
    current = at(k)
    while current is not None and current <= window_end:
        if current >= window_start and (floor is None or current >= floor):
            dates.append(current)
        k += 1
        current = at(k)
    return dates


def _check_window(window_start: date, window_end: date) -> None:
    if window_end < window_start:
        raise InvalidWindowError(
            f"Window end {window_end.isoformat()} precedes start {window_start.isoformat()}"
        )


def _check_day(day: Optional[int]) -> bool:
    return day is not None and 1 <= day <= 31


# ---------------------------------------------------------------------------
# Recurring items
# ---------------------------------------------------------------------------


def validate_recurring_item(item: RecurringItem) -> None:
    """Fail fast on definitions that would otherwise expand to wrong dates"""
    if item.kind not in {k.value for k in ItemKind}:
        raise InvalidRecurrenceError(f"Unknown item kind '{item.kind}' for {item.name}", item.id)
    if item.amount < 0:
        raise InvalidRecurrenceError(f"Negative amount for {item.name}", item.id)
    if item.frequency == Frequency.SEMI_MONTHLY:
        if not (_check_day(item.first_pay_day) and _check_day(item.second_pay_day)):
            raise InvalidRecurrenceError(
                f"Semi-monthly item {item.name} needs two pay days between 1 and 31",
                item.id,
            )


def resolve_item_anchor(item: RecurringItem, step: relativedelta) -> date:
    """
    Natural (unadjusted) anchor date for a recurring item.

    Subscriptions anchor one step after their last renewal; everything else on the
    start date, then on a stored natural next occurrence, then on a natural date
    recovered from an adjusted next occurrence.
    """
    if item.kind == ItemKind.SUBSCRIPTION and item.last_renewal_date is not None:
        return item.last_renewal_date + step
    if item.start_date is not None:
        return item.start_date
    if item.next_occurrence_natural is not None:
        return item.next_occurrence_natural
    if item.next_occurrence is not None:
        if item.is_income:
            return recover_natural_date(
                item.next_occurrence, preferred_day=item.first_pay_day, item_id=item.id
            )
        return item.next_occurrence
    raise InvalidRecurrenceError(
        f"Recurring item {item.name} has no start date, renewal date or next occurrence",
        item.id,
    )


def _series_floor(item: RecurringItem) -> Optional[date]:
    if item.kind == ItemKind.SUBSCRIPTION and item.last_renewal_date is not None:
        return item.last_renewal_date
    return item.start_date


def _semi_monthly_naturals(item: RecurringItem, window_start: date, window_end: date) -> List[date]:
    naturals = []
    for first_of_month in iter_months(window_start, window_end):
        for pay_day in (item.first_pay_day, item.second_pay_day):
            naturals.append(clamp_day(first_of_month.year, first_of_month.month, pay_day))
    floor = item.start_date
    return sorted(
        d for d in naturals
        if window_start <= d <= window_end and (floor is None or d >= floor)
    )


def expand_item_occurrences(
    item: RecurringItem,
    window_start: date,
    window_end: date,
) -> List[Occurrence]:
    """
    All occurrences of a recurring item inside [window_start, window_end].

    Income dates are rolled back to the previous business day; each occurrence keeps
    the natural date it came from. Dates after ``end_date`` are excluded.

    Raises:
        InvalidRecurrenceError: malformed item definition
        InvalidWindowError: window_end before window_start
    """
    _check_window(window_start, window_end)
    validate_recurring_item(item)

    if item.end_date is not None and item.end_date < window_start:
        return []

    # Natural dates just past the window can roll back into it
    natural_end = window_end
    if item.is_income:
        natural_end = min(window_end, date.max - ROLLBACK_SPAN) + ROLLBACK_SPAN

    if item.frequency == Frequency.SEMI_MONTHLY:
        naturals = _semi_monthly_naturals(item, window_start, natural_end)
    else:
        step = step_for(item.frequency, item.id)
        anchor = resolve_item_anchor(item, step)
        naturals = step_series(anchor, step, window_start, natural_end, floor=_series_floor(item))

    occurrences = []
    for natural in naturals:
        due = adjust_to_previous_business_day(natural) if item.is_income else natural
        if not (window_start <= due <= window_end):
            continue
        if item.end_date is not None and due > item.end_date:
            continue
        occurrences.append(Occurrence(date=due, natural_date=natural))
    return occurrences


# ---------------------------------------------------------------------------
# Debts
# ---------------------------------------------------------------------------


def validate_debt(debt: DebtObligation) -> None:
    if debt.minimum_payment < 0:
        raise InvalidDebtError(f"Negative minimum payment for {debt.name}", debt.id)
    if debt.payment_day_of_month is not None and not _check_day(debt.payment_day_of_month):
        raise InvalidDebtError(
            f"Payment day {debt.payment_day_of_month} for {debt.name} is not between 1 and 31",
            debt.id,
        )
    if debt.next_due_date is None and debt.payment_day_of_month is None:
        raise InvalidDebtError(
            f"Debt {debt.name} needs a next due date or a payment day of month",
            debt.id,
        )


def resolve_debt_anchor(debt: DebtObligation, as_of: date) -> date:
    """
    Next due date of a debt.

    Without a stored next due date it is derived from the payment day: the first such
    day on or after ``as_of`` and not before the debt was created.
    """
    if debt.next_due_date is not None:
        return debt.next_due_date

    day = debt.payment_day_of_month
    reference = max(as_of, debt.creation_date)
    candidate = clamp_day(reference.year, reference.month, day)
    if candidate < reference:
        following = reference + relativedelta(months=1)
        candidate = clamp_day(following.year, following.month, day)
    return candidate


def expand_debt_occurrences(
    debt: DebtObligation,
    window_start: date,
    window_end: date,
    as_of: date | None = None,
) -> List[Occurrence]:
    """
    Payment dates of a debt inside [window_start, window_end].

    Weekly, bi-weekly and monthly schedules step from the next due date in both
    directions; annually, other and unknown frequencies yield only the next due date.
    Monthly debts known only by their payment day fall on that day (clamped) every month.
    Debt dates are never business-day adjusted.
    """
    _check_window(window_start, window_end)
    validate_debt(debt)

    anchor = resolve_debt_anchor(debt, as_of or window_start)
    frequency = debt.payment_frequency

    if frequency == Frequency.MONTHLY and debt.next_due_date is None:
        # Clamp the payment day per month so day 31 stays at month end after February
        naturals = [
            d for d in (
                clamp_day(m.year, m.month, debt.payment_day_of_month)
                for m in iter_months(window_start, window_end)
            )
            if window_start <= d <= window_end and d >= debt.creation_date
        ]
    elif frequency in DEBT_STEPPED_FREQUENCIES:
        naturals = step_series(anchor, FREQUENCY_RULES[frequency].step, window_start, window_end)
    else:
        if not is_known_frequency(frequency):
            logger.warning(
                "Unrecognized debt payment frequency, using next due date only",
                extra={"item_id": debt.id, "frequency": frequency},
            )
        naturals = [anchor] if window_start <= anchor <= window_end else []

    return [Occurrence(date=d, natural_date=d) for d in naturals]


def expand_occurrences(
    item: Union[RecurringItem, DebtObligation],
    window_start: date,
    window_end: date,
    as_of: date | None = None,
) -> List[date]:
    """Main entry point: concrete due dates for a recurring item or debt inside a window"""
    if isinstance(item, DebtObligation):
        occurrences = expand_debt_occurrences(item, window_start, window_end, as_of=as_of)
    else:
        occurrences = expand_item_occurrences(item, window_start, window_end)
    return [occ.date for occ in occurrences]
