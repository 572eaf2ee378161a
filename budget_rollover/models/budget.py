"""
Core Data Models for the Budget Rollover Engine

These models define the strict schemas for all data flowing through the
rollover engine. They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for storage and logging
4. Keep derived values (unspent amounts, plans) reproducible

DESIGN DECISION: All money is Decimal. Budgets and expenses come from storage
and are only read by the engine; derived models (UnspentRecord, RolloverPlan)
are never persisted. RolloverSettings and RolloverRecord are the only
documents the engine writes besides budgets.
"""

import calendar
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# Rollover history keeps only the most recent resets
HISTORY_LIMIT = 12

PREFERENCE_TYPE_BUDGET_RESET = "budget_reset"

ZERO = Decimal("0")
HUNDRED = Decimal("100")
ONE_DECIMAL = Decimal("0.1")


def utcnow() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(timezone.utc)


def _dedupe(values: list[str]) -> list[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class CategoryType(str, Enum):
    """How a budget category behaves month to month."""
    FIXED = "fixed"
    FLEXIBLE = "flexible"


class RecurrenceType(str, Enum):
    """Whether a budget repeats every period."""
    RECURRING = "recurring"
    ONE_OFF = "one-off"


class SkipReason(str, Enum):
    """
    Why a category carries nothing over.

    CARRY_OVER_DISABLED covers an opted-in, eligible category when the
    user's cap is 0%.
    """
    NOT_SELECTED = "not_selected"
    NO_UNSPENT_AMOUNT = "no_unspent_amount"
    CARRY_OVER_DISABLED = "carry_over_disabled"

    @property
    def description(self) -> str:
        return {
            SkipReason.NOT_SELECTED: "Not selected for carry-over",
            SkipReason.NO_UNSPENT_AMOUNT: "No unspent amount",
            SkipReason.CARRY_OVER_DISABLED: "Carry-over cap is 0%",
        }[self]


class UpsertAction(str, Enum):
    """Which path a target-period budget write took."""
    INSERT = "insert"
    UPDATE = "update"


# =============================================================================
# PERIOD
# =============================================================================

class Period(BaseModel):
    """A (month, year) pair scoping budgets and expenses."""

    model_config = ConfigDict(frozen=True)

    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2020)

    @property
    def first_day(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def last_day(self) -> date:
        return date(self.year, self.month, calendar.monthrange(self.year, self.month)[1])

    @property
    def label(self) -> str:
        """Period label in YYYY-MM form, as stored in rollover history."""
        return f"{self.year}-{self.month:02d}"

    def next(self) -> "Period":
        if self.month == 12:
            return Period(month=1, year=self.year + 1)
        return Period(month=self.month + 1, year=self.year)

    def previous(self) -> "Period":
        if self.month == 1:
            return Period(month=12, year=self.year - 1)
        return Period(month=self.month - 1, year=self.year)

    def contains(self, day: date) -> bool:
        return self.first_day <= day <= self.last_day

    @classmethod
    def of(cls, day: date) -> "Period":
        return cls(month=day.month, year=day.year)

    @classmethod
    def current(cls, today: Optional[date] = None) -> "Period":
        return cls.of(today or date.today())

    def __str__(self) -> str:
        return self.label


# =============================================================================
# LEDGER MODELS (read from storage)
# =============================================================================

class Budget(BaseModel):
    """
    A category budget for one user and one period.

    A (user, category, month, year) tuple maps to at most one Budget row.
    The metadata fields (category_type onwards) are carried opaquely by the
    engine and copied to the target period on rollover.
    """
    # Category names are trimmed on load; matching after that is exact and case-sensitive
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = Field(
        default=None,
        description="Storage identifier, None until inserted"
    )
    user_id: str = Field(..., min_length=1)
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category name, unique per user and period"
    )
    monthly_limit: Decimal = Field(
        ...,
        ge=0,
        description="Spending limit for the period"
    )
    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=2020)

    # Category metadata
    category_type: CategoryType = CategoryType.FLEXIBLE
    recurrence_type: RecurrenceType = RecurrenceType.RECURRING
    workdays_per_month: Optional[int] = Field(default=None, ge=0, le=31)
    category_group: Optional[str] = Field(default=None, max_length=100)
    auto_calculate: bool = False

    created_at: datetime = Field(default_factory=utcnow)

    @property
    def period(self) -> Period:
        return Period(month=self.month, year=self.year)

    def metadata(self) -> dict:
        """Non-financial fields copied to the target period on rollover."""
        return {
            "category_type": self.category_type,
            "recurrence_type": self.recurrence_type,
            "workdays_per_month": self.workdays_per_month,
            "category_group": self.category_group,
            "auto_calculate": self.auto_calculate,
        }


class Expense(BaseModel):
    """A logged expense. Read-only input to the engine."""
    # Trimmed like Budget.category so both sides compare the same way
    model_config = ConfigDict(str_strip_whitespace=True)

    id: Optional[str] = None
    user_id: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., ge=0)
    expense_date: date
    description: Optional[str] = Field(default=None, max_length=500)


# =============================================================================
# DERIVED MODELS (never persisted)
# =============================================================================

class UnspentRecord(BaseModel):
    """
    Spend summary of one budget over its period.

    Build it with from_amounts() so the derived fields always follow the
    formulas:
        unspent_amount         = max(0, budget_limit - total_spent)
        spent_percentage       = total_spent / budget_limit * 100, 1 decimal
                                 (0 when budget_limit is 0)
        eligible_for_carryover = unspent_amount > 0 and spent_percentage < 100
    """

    category: str
    budget_limit: Decimal = Field(..., ge=0)
    total_spent: Decimal = Field(..., ge=0)
    unspent_amount: Decimal = Field(..., ge=0)
    spent_percentage: Decimal = Field(..., ge=0)
    eligible_for_carryover: bool

    @classmethod
    def from_amounts(
        cls,
        category: str,
        budget_limit: Decimal,
        total_spent: Decimal,
    ) -> "UnspentRecord":
        unspent = max(ZERO, budget_limit - total_spent)
        if budget_limit > 0:
            raw_percentage = total_spent / budget_limit * HUNDRED
        else:
            raw_percentage = ZERO

        return cls(
            category=category,
            budget_limit=budget_limit,
            total_spent=total_spent,
            unspent_amount=unspent,
            spent_percentage=raw_percentage.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP),
            eligible_for_carryover=unspent > 0 and raw_percentage < HUNDRED,
        )


class RolloverPlan(BaseModel):
    """
    Planned rollover of one source-period budget.

    Shared by preview and execute: the numbers a user previews are the
    numbers execute writes, given unchanged data.
    """

    category: str
    original_limit: Decimal = Field(..., ge=0)
    carried_over_amount: Decimal = Field(..., ge=0)
    new_limit: Decimal = Field(..., ge=0)
    unspent_from_previous: Decimal = Field(..., ge=0)
    total_spent: Decimal = Field(default=ZERO, ge=0)
    spent_percentage: Decimal = Field(default=ZERO, ge=0)
    eligible_for_carryover: bool = False
    skip_reason: Optional[SkipReason] = None

    @model_validator(mode='after')
    def validate_limits(self) -> 'RolloverPlan':
        if self.new_limit != self.original_limit + self.carried_over_amount:
            raise ValueError("New limit must equal original limit plus carried over amount")
        if self.carried_over_amount > self.unspent_from_previous:
            raise ValueError("Cannot carry over more than the unspent amount")
        return self

    @property
    def carries_over(self) -> bool:
        return self.carried_over_amount > 0


class RolloverOptions(BaseModel):
    """Inputs shared by preview and execute."""

    source: Period
    target: Period
    carry_over_categories: list[str] = Field(default_factory=list)
    max_carry_over_percentage: Decimal = Field(
        default=Decimal("50"),
        ge=0,
        le=100,
    )

    @field_validator('carry_over_categories')
    @classmethod
    def dedupe_categories(cls, v: list[str]) -> list[str]:
        return _dedupe(v)

    @model_validator(mode='after')
    def validate_periods(self) -> 'RolloverOptions':
        if self.source == self.target:
            raise ValueError("Source and target period must differ")
        return self

    def is_opted_in(self, category: str) -> bool:
        return category in self.carry_over_categories

    @classmethod
    def from_settings(
        cls,
        settings: "RolloverSettings",
        source: Period,
        target: Optional[Period] = None,
    ) -> "RolloverOptions":
        """
        Build options from a user's saved preferences.

        With carry-over disabled no category is opted in, so the rollover
        only copies budgets forward.
        """
        return cls(
            source=source,
            target=target or source.next(),
            carry_over_categories=(
                list(settings.carry_over_categories)
                if settings.carry_over_enabled
                else []
            ),
            max_carry_over_percentage=settings.max_carry_over_percentage,
        )


class RolloverPreview(BaseModel):
    """Dry-run result. Produced without side effects."""

    source_period: str
    target_period: str
    total_categories: int = Field(ge=0)
    total_carry_over_amount: Decimal = Field(ge=0)
    categories_with_carryover: list[RolloverPlan] = Field(default_factory=list)
    categories_without_carryover: list[RolloverPlan] = Field(default_factory=list)

    @property
    def plans(self) -> list[RolloverPlan]:
        return self.categories_with_carryover + self.categories_without_carryover


# =============================================================================
# EXECUTION RESULT MODELS
# =============================================================================

class CategoryOutcome(BaseModel):
    """A category whose target-period budget was written."""

    category: str
    original_limit: Decimal
    new_limit: Decimal
    carried_over: Decimal
    unspent_from_previous: Decimal
    action: UpsertAction
    budget_id: Optional[str] = None


class CategoryFailure(BaseModel):
    """A category whose target-period budget could not be written."""

    category: str
    message: str


class RolloverRecord(BaseModel):
    """
    One entry of the rollover history.

    Append-only: records are never edited once written.
    """

    reset_date: datetime = Field(default_factory=utcnow)
    source_period: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    target_period: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    total_carried_over: Decimal = Field(default=ZERO, ge=0)
    categories_count: int = Field(default=0, ge=0)
    carry_over_categories: list[str] = Field(default_factory=list)


class RolloverResult(BaseModel):
    """
    Outcome of an executed rollover.

    Carries both the success payload and the per-category failures.
    Categories listed in categories_processed stay committed even when
    others failed.
    """

    copied_budgets: int = Field(ge=0)
    total_carried_over_amount: Decimal = Field(ge=0)
    categories_processed: list[CategoryOutcome] = Field(default_factory=list)
    failures: list[CategoryFailure] = Field(default_factory=list)
    reset_record: RolloverRecord
    history_error: Optional[str] = None

    @property
    def error(self) -> Optional[str]:
        """Joined failure messages, or None when everything succeeded."""
        messages = [failure.message for failure in self.failures]
        if self.history_error:
            messages.append(self.history_error)
        return "; ".join(messages) if messages else None

    @property
    def is_partial(self) -> bool:
        return self.error is not None

    def raise_for_errors(self) -> None:
        """Raise PartialExecutionError if any part of the rollover failed."""
        from budget_rollover.rollover.errors import PartialExecutionError

        if self.is_partial:
            raise PartialExecutionError(self)


# =============================================================================
# PERSISTED SETTINGS
# =============================================================================

class RolloverSettings(BaseModel):
    """
    A user's rollover preferences plus the bounded rollover history.

    Stored as one JSON document per user. Missing keys take the defaults
    below and unknown keys are ignored, so older documents load unchanged.
    """
    model_config = ConfigDict(extra="ignore")

    auto_reset_enabled: bool = False
    reset_day: int = Field(default=1, ge=1, le=31)
    carry_over_enabled: bool = True
    carry_over_categories: list[str] = Field(
        default_factory=lambda: ["Entertainment", "Shopping", "Dining Out"]
    )
    max_carry_over_percentage: Decimal = Field(default=Decimal("50"), ge=0, le=100)
    notification_enabled: bool = True
    reset_history: list[RolloverRecord] = Field(default_factory=list)

    @field_validator('carry_over_categories')
    @classmethod
    def dedupe_categories(cls, v: list[str]) -> list[str]:
        return _dedupe(v)

    @field_validator('reset_history')
    @classmethod
    def keep_recent_history(cls, v: list[RolloverRecord]) -> list[RolloverRecord]:
        """Keep only the newest HISTORY_LIMIT records (most recent last)."""
        return v[-HISTORY_LIMIT:]

    def with_record(self, record: RolloverRecord) -> "RolloverSettings":
        """Return a copy with record appended and history truncated."""
        history = [*self.reset_history, record][-HISTORY_LIMIT:]
        return self.model_copy(update={"reset_history": history})

    def to_document(self) -> dict:
        """JSON-compatible payload for the preference store."""
        return self.model_dump(mode="json")
