from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional, Dict
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing_extensions import Self


# ===== EXPENSE PYDANTIC MODELS =====

class FrequencyEnum(str, Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    SIX_MONTHS = "6 Months"
    YEARLY = "Yearly"


class ExpenseCreate(BaseModel):
    user_id: int = Field(..., description="Owning user's database ID")
    amount: Decimal = Field(..., description="Expense amount")
    category: str = Field(..., min_length=1, max_length=100, description="Spending category")
    description: Optional[str] = Field(None, description="Free text description")
    expense_date: date = Field(..., description="Date the expense is attributed to")
    payment_method: Optional[str] = Field(None, max_length=50, description="How it was paid")
    frequency: Optional[FrequencyEnum] = Field(None, description="Recurrence cadence for templates")
    is_recurring: bool = Field(default=False, description="Whether this row is a recurring template")
    recurring_start_date: Optional[date] = None
    recurring_end_date: Optional[date] = Field(None, description="Last date (inclusive) an occurrence may fall on")

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v: Decimal) -> Decimal:
        return round(v, 2)

    @field_validator('category')
    @classmethod
    def validate_category(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Category cannot be empty")
        return v

    @field_validator('description')
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v

    @model_validator(mode="after")
    def check_recurrence(self) -> Self:
        if self.is_recurring and self.frequency is None:
            raise ValueError("Recurring expenses require a frequency")
        if (
            self.recurring_start_date
            and self.recurring_end_date
            and self.recurring_end_date < self.recurring_start_date
        ):
            raise ValueError("recurring_end_date cannot be before recurring_start_date")
        return self


class ExpenseResponse(BaseModel):
    """Expense data returned to client"""
    id: int
    user_id: int
    amount: Decimal
    category: str
    description: Optional[str]
    expense_date: date
    payment_method: Optional[str]
    frequency: Optional[str]
    is_recurring: bool
    recurring_start_date: Optional[date]
    last_occurred: Optional[date]
    recurring_next_date: Optional[date]
    recurring_end_date: Optional[date]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TemplateOutcome(str, Enum):
    ACTIVE = "ACTIVE"          # nothing due yet
    CAUGHT_UP = "CAUGHT_UP"    # occurrences materialized this run
    EXPIRED = "EXPIRED"        # retired, end date passed
    ORPHANED = "ORPHANED"      # retired, owning user missing
    FAILED = "FAILED"          # aborted on a store error, retried next run


class RecurringRunSummary(BaseModel):
    """Counters for one pass (or a whole run) of the recurring job"""
    run_date: date
    templates_seen: int = 0
    occurrences_inserted: int = 0
    duplicates_skipped: int = 0
    templates_deactivated: int = 0
    templates_failed: int = 0
    occurrences_deleted: int = 0
    outcomes: Dict[int, TemplateOutcome] = Field(default_factory=dict)

    def merge(self, other: "RecurringRunSummary") -> "RecurringRunSummary":
        """Combine a cleanup summary with a processing summary."""
        outcomes = dict(self.outcomes)
        outcomes.update(other.outcomes)
        return RecurringRunSummary(
            run_date=self.run_date,
            templates_seen=max(self.templates_seen, other.templates_seen),
            occurrences_inserted=self.occurrences_inserted + other.occurrences_inserted,
            duplicates_skipped=self.duplicates_skipped + other.duplicates_skipped,
            templates_deactivated=self.templates_deactivated + other.templates_deactivated,
            templates_failed=self.templates_failed + other.templates_failed,
            occurrences_deleted=self.occurrences_deleted + other.occurrences_deleted,
            outcomes=outcomes,
        )
