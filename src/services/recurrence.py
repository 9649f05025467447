"""
Date arithmetic for recurring expenses.

Month-based cadences use ``dateutil.relativedelta``, which clamps to the last
day of the target month: 2024-01-31 + Monthly is 2024-02-29, and the following
step anchors on the 29th. Occurrences never roll over into the next month.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from dateutil.relativedelta import relativedelta

from src.db.core import ExpenseDB, Frequency


FREQUENCY_STEPS = {
    Frequency.DAILY.value: relativedelta(days=1),
    Frequency.WEEKLY.value: relativedelta(weeks=1),
    Frequency.MONTHLY.value: relativedelta(months=1),
    Frequency.QUARTERLY.value: relativedelta(months=3),
    Frequency.SIX_MONTHS.value: relativedelta(months=6),
    Frequency.YEARLY.value: relativedelta(years=1),
}


def is_known_frequency(frequency: Optional[str]) -> bool:
    return frequency in FREQUENCY_STEPS


def advance_date(anchor: Optional[date], frequency: Optional[str]) -> Optional[date]:
    """
    Return the next occurrence strictly after ``anchor`` for ``frequency``.

    An unknown or empty frequency returns ``anchor`` unchanged so callers
    looping on the result stop instead of spinning. A missing anchor gives None.
    """
    if anchor is None:
        return None
    step = FREQUENCY_STEPS.get(frequency)
    if step is None:
        return anchor
    return anchor + step


@dataclass(frozen=True)
class RecurringTemplate:
    """Detached copy of a template row, safe to read after a rollback."""
    id: int
    user_id: int
    amount: Decimal
    category: str
    description: Optional[str]
    expense_date: date
    payment_method: Optional[str]
    frequency: Optional[str]
    recurring_start_date: Optional[date]
    last_occurred: Optional[date]
    recurring_next_date: Optional[date]
    recurring_end_date: Optional[date]

    @classmethod
    def from_row(cls, row: ExpenseDB) -> "RecurringTemplate":
        return cls(
            id=row.id,
            user_id=row.user_id,
            amount=row.amount,
            category=row.category,
            description=row.description,
            expense_date=row.expense_date,
            payment_method=row.payment_method,
            frequency=row.frequency,
            recurring_start_date=row.recurring_start_date,
            last_occurred=row.last_occurred,
            recurring_next_date=row.recurring_next_date,
            recurring_end_date=row.recurring_end_date,
        )

    @property
    def anchor(self) -> Optional[date]:
        """Last confirmed occurrence, falling back to where the recurrence began."""
        return self.last_occurred or self.recurring_start_date or self.expense_date

    def next_due(self) -> Optional[date]:
        """Next date to materialize, or None when the cadence cannot advance."""
        anchor = self.anchor
        next_date = advance_date(anchor, self.frequency)
        if next_date is None or next_date == anchor:
            return None
        return next_date

    def is_past_end(self, day: date) -> bool:
        return self.recurring_end_date is not None and day > self.recurring_end_date

    def has_pending_before_end(self) -> bool:
        """True while an occurrence on or before the end date is still unmaterialized."""
        next_date = self.next_due()
        return next_date is not None and not self.is_past_end(next_date)

    def occurrence(self, on: date) -> dict:
        """Column values for the plain (non-recurring) row materialized on ``on``."""
        return {
            "user_id": self.user_id,
            "amount": self.amount,
            "category": self.category,
            "description": self.description,
            "expense_date": on,
            "payment_method": self.payment_method,
            "frequency": self.frequency,
            "is_recurring": False,
            "recurring_start_date": self.recurring_start_date,
            "last_occurred": on,
            "recurring_next_date": advance_date(on, self.frequency),
            "recurring_end_date": self.recurring_end_date,
        }
