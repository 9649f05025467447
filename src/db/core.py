import os
from typing import Optional
from sqlalchemy import create_engine, event, ForeignKey, Index, UniqueConstraint, Boolean, String, Text, DECIMAL, DateTime, Date
from sqlalchemy.orm import sessionmaker, DeclarativeBase, Mapped, relationship, mapped_column
from datetime import datetime, date
from uuid import UUID
from decimal import Decimal
import enum


DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///budget_ai.db")


class NotFoundError(Exception):
    pass


class Base(DeclarativeBase):
    pass


class Frequency(enum.Enum):
    DAILY = "Daily"
    WEEKLY = "Weekly"
    MONTHLY = "Monthly"
    QUARTERLY = "Quarterly"
    SIX_MONTHS = "6 Months"
    YEARLY = "Yearly"


class UserDB(Base):
    __tablename__ = "users"

    __table_args__ = (
        # Unique constraints
        UniqueConstraint("email", name="uq_user_email"),
        UniqueConstraint("username", name="uq_user_username"),

        # Query indexes
        Index("idx_users_email", "email"),
    )

    # Core User Identification
    db_id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    id: Mapped[UUID] = mapped_column(unique=True, nullable=False)

    # Identity (credentials live with the hosted auth provider)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    username: Mapped[str] = mapped_column(String(100), nullable=False)

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    expenses = relationship("ExpenseDB", back_populates="user")


class ExpenseDB(Base):
    """
    A single expense row. Rows with is_recurring=True are templates that the
    recurring job materializes into plain occurrences.
    """
    __tablename__ = "expenses"

    __table_args__ = (
        # Duplicate check for recurring occurrences
        Index("idx_expenses_user_category_date", "user_id", "category", "date"),
        Index("idx_expenses_is_recurring", "is_recurring"),
    )

    # Primary Key
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # Foreign Key
    user_id: Mapped[int] = mapped_column(ForeignKey("users.db_id"), nullable=False)

    # Expense Data
    amount: Mapped[Decimal] = mapped_column(DECIMAL(15, 2), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    expense_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    payment_method: Mapped[Optional[str]] = mapped_column(String(50))

    # Recurrence bookkeeping
    frequency: Mapped[Optional[str]] = mapped_column(String(20))  # Frequency value; kept as text so bad labels load
    is_recurring: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    recurring_start_date: Mapped[Optional[date]] = mapped_column(Date)
    last_occurred: Mapped[Optional[date]] = mapped_column(Date)
    recurring_next_date: Mapped[Optional[date]] = mapped_column(Date)
    recurring_end_date: Mapped[Optional[date]] = mapped_column(Date)  # inclusive

    # Audit Trail
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    user = relationship("UserDB", back_populates="expenses")


def enable_sqlite_foreign_keys(engine):
    """SQLite ignores foreign keys unless asked per connection."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_engine(DATABASE_URL, echo=os.getenv("SQL_ECHO", "false").lower() == "true")
enable_sqlite_foreign_keys(engine)
session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency to get the database session
def get_db():
    database = session_local()
    try:
        yield database
    finally:
        database.close()
