from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import asc, desc
from typing import Optional, List, Dict, Any
from datetime import datetime, date

from src.db.core import ExpenseDB, UserDB, NotFoundError
from src.models.expense import ExpenseCreate
from src.logging_config import get_logger

logger = get_logger(__name__)

# Columns the recurring job is allowed to patch on an existing row
UPDATABLE_FIELDS = {
    "is_recurring",
    "last_occurred",
    "recurring_next_date",
    "recurring_end_date",
}


# ===== UTILITY FUNCTIONS =====

def is_foreign_key_violation(error: IntegrityError) -> bool:
    """SQLite and PostgreSQL both mention the foreign key in the message."""
    return "foreign key" in str(error.orig).lower()


# ===== RECURRING JOB ACCESS =====

def list_recurring_templates(db: Session) -> List[ExpenseDB]:
    """All rows currently flagged as recurring templates, oldest first."""
    return (
        db.query(ExpenseDB)
        .filter(ExpenseDB.is_recurring.is_(True))
        .order_by(asc(ExpenseDB.id))
        .all()
    )


def find_expenses(db: Session, user_id: int, category: str, expense_date: date) -> List[ExpenseDB]:
    """Exact (user, category, date) lookup used as the duplicate guard."""
    return db.query(ExpenseDB).filter(
        ExpenseDB.user_id == user_id,
        ExpenseDB.category == category,
        ExpenseDB.expense_date == expense_date,
    ).all()


def find_expenses_past_date(
    db: Session,
    user_id: int,
    category: str,
    is_recurring: bool,
    after: date,
) -> List[ExpenseDB]:
    return db.query(ExpenseDB).filter(
        ExpenseDB.user_id == user_id,
        ExpenseDB.category == category,
        ExpenseDB.is_recurring.is_(is_recurring),
        ExpenseDB.expense_date > after,
    ).order_by(asc(ExpenseDB.expense_date)).all()


def insert_expense(db: Session, record: Dict[str, Any]) -> int:
    """
    Insert an expense row built from a plain dict and return its id.

    Raises NotFoundError when the owning user is gone (foreign key violation)
    and ValueError for any other constraint failure.
    """
    db_expense = ExpenseDB(
        **record,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow(),
    )
    try:
        db.add(db_expense)
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_foreign_key_violation(e):
            raise NotFoundError(f"User with id {record.get('user_id')} not found") from e
        raise ValueError("Expense creation failed due to database constraint") from e
    return db_expense.id


def update_expense(db: Session, expense_id: int, fields: Dict[str, Any]) -> None:
    """Patch bookkeeping fields on a single row and commit immediately."""
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update fields: {', '.join(sorted(unknown))}")

    updated = db.query(ExpenseDB).filter(ExpenseDB.id == expense_id).update(
        {**fields, "updated_at": datetime.utcnow()},
        synchronize_session="fetch",
    )
    if not updated:
        db.rollback()
        raise NotFoundError(f"Expense with id {expense_id} not found")
    db.commit()


def delete_expense(db: Session, expense_id: int) -> None:
    deleted = db.query(ExpenseDB).filter(ExpenseDB.id == expense_id).delete(
        synchronize_session="fetch"
    )
    if not deleted:
        db.rollback()
        raise NotFoundError(f"Expense with id {expense_id} not found")
    db.commit()


# ===== DATABASE OPERATIONS =====

def create_db_expense(db: Session, expense_data: ExpenseCreate) -> ExpenseDB:
    """Create an expense (or a recurring template) for an existing user"""

    user = db.query(UserDB).filter(UserDB.db_id == expense_data.user_id).first()
    if not user:
        raise NotFoundError(f"User with id {expense_data.user_id} not found")

    record = expense_data.model_dump()
    if expense_data.frequency is not None:
        record["frequency"] = expense_data.frequency.value

    if expense_data.is_recurring:
        # The template itself is the first occurrence
        record["recurring_start_date"] = expense_data.recurring_start_date or expense_data.expense_date
        record["last_occurred"] = expense_data.expense_date

    expense_id = insert_expense(db, record)
    logger.info(f"Created expense {expense_id} for user {expense_data.user_id}")
    return read_db_expense(db, expense_id)


def read_db_expense(db: Session, expense_id: int) -> Optional[ExpenseDB]:
    return db.query(ExpenseDB).filter(ExpenseDB.id == expense_id).first()


def read_db_expenses(
    db: Session,
    user_id: int,
    is_recurring: Optional[bool] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[ExpenseDB]:
    """Read a user's expenses, newest first"""
    query = db.query(ExpenseDB).filter(ExpenseDB.user_id == user_id)

    if is_recurring is not None:
        query = query.filter(ExpenseDB.is_recurring.is_(is_recurring))
    if date_from:
        query = query.filter(ExpenseDB.expense_date >= date_from)
    if date_to:
        query = query.filter(ExpenseDB.expense_date <= date_to)

    return query.order_by(desc(ExpenseDB.expense_date), desc(ExpenseDB.id)).offset(skip).limit(limit).all()


def delete_db_expense(db: Session, expense_id: int) -> bool:
    delete_expense(db, expense_id)
    logger.info(f"Deleted expense {expense_id}")
    return True
