"""Obligated expenses (fixed expenses, subscriptions, debt minimums) due within a period"""

import logging
from datetime import date
from typing import Iterable, List

from paycheck_planner.domain.exceptions import DomainException
from paycheck_planner.domain.models import (
    DebtObligation,
    ExpansionIssue,
    ExpenseKind,
    ExpenseMatch,
    ItemKind,
    ObligatedExpenseLine,
    PaycheckPeriod,
    RecurringItem,
    SourceKind,
    to_cents,
)
from paycheck_planner.domain.recurrence import expand_debt_occurrences, expand_item_occurrences

logger = logging.getLogger(__name__)

OBLIGATED_ITEM_KINDS = {ItemKind.FIXED_EXPENSE.value, ItemKind.SUBSCRIPTION.value}


def match_expenses(
    period: PaycheckPeriod,
    recurring_items: Iterable[RecurringItem],
    debts: Iterable[DebtObligation],
    as_of: date | None = None,
) -> ExpenseMatch:
    """
    Expand every obligation restricted to [period_start, period_end].

    Only fixed expenses, subscriptions and debt minimum payments are obligated.
    An item whose expansion fails is recorded as an ExpansionIssue and left out;
    the rest of the period is still matched.
    """
    lines: List[ObligatedExpenseLine] = []
    issues: List[ExpansionIssue] = []

    for item in recurring_items:
        if item.kind not in OBLIGATED_ITEM_KINDS:
            continue
        try:
            occurrences = expand_item_occurrences(item, period.period_start, period.period_end)
        except (DomainException, ValueError, OverflowError) as e:
            issues.append(_issue(item.id, item.name, SourceKind.RECURRING, e))
            continue
        for occ in occurrences:
            lines.append(
                ObligatedExpenseLine(
                    id=f"{item.id}-{occ.date.isoformat()}",
                    name=item.name,
                    amount=to_cents(item.amount),
                    due_date=occ.date,
                    kind=ExpenseKind(item.kind).value,
                    source_kind=SourceKind.RECURRING.value,
                    item_id=item.id,
                    category_id=item.category_id,
                )
            )

    for debt in debts:
        try:
            occurrences = expand_debt_occurrences(
                debt, period.period_start, period.period_end, as_of=as_of
            )
        except (DomainException, ValueError, OverflowError) as e:
            issues.append(_issue(debt.id, debt.name, SourceKind.DEBT, e))
            continue
        for occ in occurrences:
            lines.append(
                ObligatedExpenseLine(
                    id=f"debt-{debt.id}-{occ.date.isoformat()}",
                    name=f"{debt.name} Payment",
                    amount=to_cents(debt.minimum_payment),
                    due_date=occ.date,
                    kind=ExpenseKind.DEBT_PAYMENT.value,
                    source_kind=SourceKind.DEBT.value,
                    item_id=debt.id,
                )
            )

    lines.sort(key=lambda line: line.due_date)
    return ExpenseMatch(lines=lines, issues=issues)


def _issue(item_id: str, item_name: str, source: SourceKind, error: Exception) -> ExpansionIssue:
    message = error.message if isinstance(error, DomainException) else str(error)
    logger.warning(
        f"Excluding {item_name} from obligations: {message}",
        extra={"item_id": item_id, "source": source.value},
    )
    return ExpansionIssue(
        item_id=item_id,
        item_name=item_name,
        source_kind=source.value,
        message=message,
    )
