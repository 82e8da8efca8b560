"""Domain models - pure Python dataclasses representing budgeting entities"""

import math
from dataclasses import dataclass, field
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")


def to_cents(value) -> Decimal:
    """Normalize a numeric value to a Decimal rounded to whole cents"""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class Frequency(str, Enum):
    """Recurrence frequencies shared by recurring items and debts"""

    DAILY = "daily"
    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    SEMI_MONTHLY = "semi-monthly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    ANNUALLY = "annually"
    OTHER = "other"


class ItemKind(str, Enum):
    INCOME = "income"
    FIXED_EXPENSE = "fixed-expense"
    SUBSCRIPTION = "subscription"


class ExpenseKind(str, Enum):
    """Kinds of obligated expense lines"""

    FIXED_EXPENSE = "fixed-expense"
    SUBSCRIPTION = "subscription"
    DEBT_PAYMENT = "debt-payment"


class SourceKind(str, Enum):
    RECURRING = "recurring"
    DEBT = "debt"


class PaycheckSource(str, Enum):
    ACTUAL = "actual"
    ESTIMATED = "estimated"


class LineKind(str, Enum):
    """Closed set of line kinds used to key manual overrides"""

    FIXED = "fixed"
    SUBSCRIPTION = "subscription"
    VARIABLE = "variable"
    DEBT = "debt"
    GOAL = "goal"
    SINKING_FUND = "sinking-fund"


# ---------------------------------------------------------------------------
# Persisted definitions (owned by the caller, read-only here)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RecurringItem:
    """Income, fixed expense or subscription with a recurrence rule.

    Anchors, in resolution order: ``last_renewal_date`` (subscriptions, advanced one step),
    ``start_date``, ``next_occurrence_natural``, then ``next_occurrence`` (an adjusted date
    whose natural date must be recovered, on ``first_pay_day`` when it is set). Semi-monthly
    items use ``first_pay_day`` and ``second_pay_day`` instead.
    """

    id: str
    name: str
    kind: str  # ItemKind value
    amount: Decimal
    frequency: str  # Frequency value; unknown values are tolerated
    start_date: Optional[date] = None
    last_renewal_date: Optional[date] = None
    first_pay_day: Optional[int] = None
    second_pay_day: Optional[int] = None
    end_date: Optional[date] = None
    next_occurrence: Optional[date] = None
    next_occurrence_natural: Optional[date] = None
    category_id: Optional[str] = None

    @property
    def is_income(self) -> bool:
        return self.kind == ItemKind.INCOME


@dataclass(frozen=True)
class DebtObligation:
    """Debt account with its minimum payment schedule"""

    id: str
    name: str
    minimum_payment: Decimal
    payment_frequency: str  # weekly | bi-weekly | monthly | annually | other
    creation_date: date
    next_due_date: Optional[date] = None
    payment_day_of_month: Optional[int] = None


@dataclass(frozen=True)
class VariableBudget:
    """Monthly budget for a variable expense category"""

    id: str
    name: str
    category: str
    monthly_amount: Decimal


@dataclass(frozen=True)
class ActualSpend:
    """Spend recorded so far this month; matched to a budget by ``category_id == budget.id``"""

    category_id: str
    spent_this_month: Decimal


@dataclass(frozen=True)
class FinancialGoal:
    """Savings goal with a deadline"""

    id: str
    name: str
    target_amount: Decimal
    current_amount: Decimal
    target_date: date
    creation_date: date

    @property
    def months_remaining(self) -> int:
        """Whole 30-day months from creation to deadline, at least 1.

        Measured from the creation date so every call in a pass sees the same figure.
        """
        days = (self.target_date - self.creation_date).days
        return max(1, math.ceil(days / 30))

    @property
    def monthly_target(self) -> Decimal:
        remaining = self.target_amount - self.current_amount
        return max(ZERO, to_cents(remaining / self.months_remaining))


@dataclass(frozen=True)
class SinkingFund:
    """Envelope saved into ahead of a known expense"""

    id: str
    name: str
    target_amount: Decimal
    current_amount: Decimal
    monthly_contribution: Decimal
    contribution_frequency: str  # weekly | bi-weekly | monthly | quarterly | annually
    creation_date: date
    next_expense_date: Optional[date] = None
    is_active: bool = True


@dataclass(frozen=True)
class ManualPlan:
    """User-defined allocation plan with per-line override amounts"""

    start: date
    end: date
    overrides: Dict[Tuple[LineKind, str], Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class PaycheckPreferences:
    allocation_mode: str = "auto"  # auto | manual
    active_manual_plan: Optional[str] = None  # plan1 | plan2 | plan3
    manual_plans: Dict[str, ManualPlan] = field(default_factory=dict)
    prioritize_sinking_funds: bool = False
    sinking_fund_strategy: str = "proportional"  # proportional | frequency-based | deadline-priority
    timing_mode: str = "current-period"

    def active_plan(self) -> Optional[ManualPlan]:
        if self.allocation_mode != "manual" or not self.active_manual_plan:
            return None
        return self.manual_plans.get(self.active_manual_plan)


# ---------------------------------------------------------------------------
# Per-pass values (created fresh, never mutated)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Occurrence:
    """One due date plus the unadjusted date it was derived from"""

    date: date
    natural_date: date


@dataclass(frozen=True)
class PaycheckEvent:
    date: date
    amount: Decimal
    source_label: str
    source_kind: str = PaycheckSource.ACTUAL


@dataclass(frozen=True)
class PaycheckPeriod:
    """Span from one paycheck to the day before the next"""

    id: str
    paycheck_date: date
    paycheck_amount: Decimal
    period_start: date
    period_end: date
    next_paycheck_date: Optional[date] = None
    source_kind: str = PaycheckSource.ACTUAL
    source_label: str = ""

    @property
    def days(self) -> int:
        return (self.period_end - self.period_start).days + 1


@dataclass(frozen=True)
class ObligatedExpenseLine:
    id: str
    name: str
    amount: Decimal
    due_date: date
    kind: str  # ExpenseKind value
    source_kind: str  # SourceKind value
    item_id: str = ""
    category_id: Optional[str] = None


@dataclass(frozen=True)
class ExpansionIssue:
    """Structured record of an item that could not be expanded for a period"""

    item_id: str
    item_name: str
    source_kind: str
    message: str


@dataclass(frozen=True)
class ExpenseMatch:
    lines: List[ObligatedExpenseLine]
    issues: List[ExpansionIssue]

    @property
    def total(self) -> Decimal:
        return sum((line.amount for line in self.lines), ZERO)


@dataclass(frozen=True)
class MonthSegment:
    year: int
    month: int
    days: int


@dataclass(frozen=True)
class VariableExpenseLine:
    id: str
    name: str
    category: str
    suggested_amount: Decimal
    is_proportional: bool
    remaining_budget: Decimal
    actual_spent: Decimal
    prorated_amount: Decimal = ZERO

    kind = LineKind.VARIABLE


@dataclass(frozen=True)
class GoalLine:
    id: str
    name: str
    suggested_amount: Decimal
    monthly_target: Decimal
    is_urgent: bool = False

    kind = LineKind.GOAL


@dataclass(frozen=True)
class SinkingFundLine:
    id: str
    name: str
    suggested_amount: Decimal
    contribution_frequency: str
    target_amount: Decimal
    current_amount: Decimal
    is_urgent: bool = False
    next_expense_date: Optional[date] = None

    kind = LineKind.SINKING_FUND


AllocationLine = Union[VariableExpenseLine, GoalLine, SinkingFundLine]


@dataclass(frozen=True)
class Carryover:
    amount: Decimal
    reason: str = ""


@dataclass(frozen=True)
class AllocationResult:
    variable_expense_lines: List[VariableExpenseLine]
    goal_lines: List[GoalLine]
    carryover: Carryover
    sinking_fund_lines: List[SinkingFundLine] = field(default_factory=list)

    @property
    def total_allocated(self) -> Decimal:
        """Money actually assigned to lines (excludes carryover)"""
        lines: List[AllocationLine] = [
            *self.variable_expense_lines,
            *self.goal_lines,
            *self.sinking_fund_lines,
        ]
        return sum((line.suggested_amount for line in lines), ZERO)


@dataclass(frozen=True)
class DeficitForecast:
    """Period where the cumulative (unallocated) balance is projected negative"""

    period_index: int
    amount: Decimal
    reason: str


@dataclass(frozen=True)
class HealthReport:
    monthly_income: Decimal
    monthly_fixed: Decimal
    monthly_variable: Decimal
    monthly_goals: Decimal
    total_monthly_needs: Decimal
    income_sufficiency_pct: Decimal
    score: int
    issues: List[str]
    recommendations: List[str]


@dataclass(frozen=True)
class PaycheckBreakdown:
    """Everything the presentation layer needs for one paycheck period"""

    period: PaycheckPeriod
    obligated_expenses: List[ObligatedExpenseLine]
    total_obligated: Decimal
    carryover_in: Decimal
    total_available: Decimal
    remaining_after_obligated: Decimal
    allocation: AllocationResult
    total_allocated: Decimal
    final_remaining: Decimal
    is_deficit: bool
    deficit_amount: Optional[Decimal]
    warnings: List[str]
    health_score: int
    insights: List[str]
    upcoming_deficits: List[DeficitForecast] = field(default_factory=list)
    expansion_issues: List[ExpansionIssue] = field(default_factory=list)
