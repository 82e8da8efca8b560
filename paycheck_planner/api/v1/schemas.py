"""Pydantic schemas for API request/response validation"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from paycheck_planner.domain.models import (
    ActualSpend,
    DebtObligation,
    FinancialGoal,
    LineKind,
    ManualPlan,
    PaycheckPeriod,
    PaycheckPreferences,
    PaycheckSource,
    RecurringItem,
    SinkingFund,
    VariableBudget,
    to_cents,
)


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class RecurringItemSchema(BaseModel):
    """Income, fixed expense or subscription"""

    id: str = Field(..., min_length=1)
    name: str
    kind: str = Field(..., description="income | fixed-expense | subscription")
    amount: Decimal
    frequency: str = Field(..., description="daily | weekly | bi-weekly | semi-monthly | monthly | quarterly | yearly | annually | other")
    start_date: Optional[date] = None
    last_renewal_date: Optional[date] = None
    first_pay_day: Optional[int] = None
    second_pay_day: Optional[int] = None
    end_date: Optional[date] = None
    next_occurrence: Optional[date] = None
    next_occurrence_natural: Optional[date] = None
    category_id: Optional[str] = None

    def to_domain(self) -> RecurringItem:
        return RecurringItem(**self.model_dump())


class DebtSchema(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    minimum_payment: Decimal
    payment_frequency: str = "monthly"
    creation_date: date
    next_due_date: Optional[date] = None
    payment_day_of_month: Optional[int] = None

    def to_domain(self) -> DebtObligation:
        return DebtObligation(**self.model_dump())


class VariableBudgetSchema(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    category: str
    monthly_amount: Decimal = Field(..., ge=0)

    def to_domain(self) -> VariableBudget:
        return VariableBudget(**self.model_dump())


class ActualSpendSchema(BaseModel):
    """Month-to-date spend for one budget (category_id matches the budget id)"""

    category_id: str
    spent_this_month: Decimal = Field(..., ge=0)

    def to_domain(self) -> ActualSpend:
        return ActualSpend(**self.model_dump())


class GoalSchema(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    target_amount: Decimal = Field(..., ge=0)
    current_amount: Decimal = Field(Decimal("0"), ge=0)
    target_date: date
    creation_date: date

    def to_domain(self) -> FinancialGoal:
        return FinancialGoal(**self.model_dump())


class SinkingFundSchema(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    target_amount: Decimal = Field(..., ge=0)
    current_amount: Decimal = Field(Decimal("0"), ge=0)
    monthly_contribution: Decimal = Field(..., ge=0)
    contribution_frequency: str = "monthly"
    creation_date: date
    next_expense_date: Optional[date] = None
    is_active: bool = True

    def to_domain(self) -> SinkingFund:
        return SinkingFund(**self.model_dump())


class OverrideSchema(BaseModel):
    """Manual amount for one line, keyed by line kind and item id"""

    line_kind: LineKind
    item_id: str
    amount: Decimal = Field(..., ge=0)


class ManualPlanSchema(BaseModel):
    start: date
    end: date
    overrides: List[OverrideSchema] = []

    def to_domain(self) -> ManualPlan:
        return ManualPlan(
            start=self.start,
            end=self.end,
            overrides={(o.line_kind, o.item_id): o.amount for o in self.overrides},
        )


class PreferencesSchema(BaseModel):
    allocation_mode: str = Field("auto", pattern="^(auto|manual)$")
    active_manual_plan: Optional[str] = Field(None, pattern="^plan[123]$")
    manual_plans: Dict[str, ManualPlanSchema] = {}
    prioritize_sinking_funds: bool = False
    sinking_fund_strategy: str = Field("proportional", pattern="^(proportional|frequency-based|deadline-priority)$")
    timing_mode: str = "current-period"

    def to_domain(self) -> PaycheckPreferences:
        return PaycheckPreferences(
            allocation_mode=self.allocation_mode,
            active_manual_plan=self.active_manual_plan,
            manual_plans={plan_id: plan.to_domain() for plan_id, plan in self.manual_plans.items()},
            prioritize_sinking_funds=self.prioritize_sinking_funds,
            sinking_fund_strategy=self.sinking_fund_strategy,
            timing_mode=self.timing_mode,
        )


class PeriodSchema(BaseModel):
    """Paycheck period (request input and response output)"""

    model_config = ConfigDict(from_attributes=True)

    id: str
    paycheck_date: date
    paycheck_amount: Decimal
    period_start: date
    period_end: date
    next_paycheck_date: Optional[date] = None
    source_kind: PaycheckSource = PaycheckSource.ACTUAL
    source_label: str = ""

    def to_domain(self) -> PaycheckPeriod:
        values = self.model_dump()
        values["paycheck_amount"] = to_cents(self.paycheck_amount)
        return PaycheckPeriod(**values)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class OccurrencesRequest(BaseModel):
    """Request body for POST /v1/occurrences - exactly one of item or debt"""

    item: Optional[RecurringItemSchema] = None
    debt: Optional[DebtSchema] = None
    window_start: date
    window_end: date
    as_of: Optional[date] = None

    @model_validator(mode="after")
    def check_single_source(self):
        if (self.item is None) == (self.debt is None):
            raise ValueError("Provide exactly one of 'item' or 'debt'")
        return self


class PaycheckPeriodsRequest(BaseModel):
    """Request body for POST /v1/paycheck-periods"""

    income_items: List[RecurringItemSchema] = []
    reference_date: Optional[date] = None


class BreakdownsRequest(BaseModel):
    """Request body for POST /v1/breakdowns"""

    reference_date: Optional[date] = None
    periods: Optional[List[PeriodSchema]] = None
    recurring_items: List[RecurringItemSchema] = []
    debts: List[DebtSchema] = []
    variable_budgets: List[VariableBudgetSchema] = []
    goals: List[GoalSchema] = []
    sinking_funds: List[SinkingFundSchema] = []
    preferences: PreferencesSchema = PreferencesSchema()
    actual_spend: Optional[List[ActualSpendSchema]] = None


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class OccurrencesResponse(BaseModel):
    dates: List[date]


class PaycheckPeriodsResponse(BaseModel):
    periods: List[PeriodSchema]


class ObligatedExpenseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    amount: Decimal
    due_date: date
    kind: str
    source_kind: str
    item_id: str
    category_id: Optional[str] = None


class VariableLineSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    category: str
    suggested_amount: Decimal
    is_proportional: bool
    remaining_budget: Decimal
    actual_spent: Decimal
    prorated_amount: Decimal


class GoalLineSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    suggested_amount: Decimal
    monthly_target: Decimal
    is_urgent: bool


class SinkingFundLineSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    suggested_amount: Decimal
    contribution_frequency: str
    target_amount: Decimal
    current_amount: Decimal
    is_urgent: bool
    next_expense_date: Optional[date] = None


class CarryoverSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    amount: Decimal
    reason: str


class AllocationSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    variable_expense_lines: List[VariableLineSchema]
    goal_lines: List[GoalLineSchema]
    sinking_fund_lines: List[SinkingFundLineSchema]
    carryover: CarryoverSchema


class DeficitForecastSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    period_index: int
    amount: Decimal
    reason: str


class ExpansionIssueSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: str
    item_name: str
    source_kind: str
    message: str


class BreakdownSchema(BaseModel):
    """One paycheck period with obligations, allocation and carryover"""

    model_config = ConfigDict(from_attributes=True)

    period: PeriodSchema
    obligated_expenses: List[ObligatedExpenseSchema]
    total_obligated: Decimal
    carryover_in: Decimal
    total_available: Decimal
    remaining_after_obligated: Decimal
    allocation: AllocationSchema
    total_allocated: Decimal
    final_remaining: Decimal
    is_deficit: bool
    deficit_amount: Optional[Decimal] = None
    warnings: List[str]
    health_score: int
    insights: List[str]
    upcoming_deficits: List[DeficitForecastSchema]
    expansion_issues: List[ExpansionIssueSchema]


class BreakdownsResponse(BaseModel):
    """Response for POST /v1/breakdowns"""

    reference_date: date
    period_count: int
    deficit_count: int
    breakdowns: List[BreakdownSchema]
