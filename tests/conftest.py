from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from src.db.core import Base, ExpenseDB, UserDB, enable_sqlite_foreign_keys


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def make_user(db):
    def _make_user(username="alice"):
        user = UserDB(id=uuid4(), email=f"{username}@example.com", username=username)
        db.add(user)
        db.commit()
        return user
    return _make_user


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def make_expense(db):
    def _make_expense(user_id, **overrides):
        values = {
            "user_id": user_id,
            "amount": Decimal("50.00"),
            "category": "Rent",
            "description": "Monthly rent",
            "expense_date": date(2024, 1, 15),
            "payment_method": "Card",
            "frequency": "Monthly",
            "is_recurring": True,
            "recurring_start_date": date(2024, 1, 15),
            "last_occurred": date(2024, 1, 15),
        }
        values.update(overrides)
        expense = ExpenseDB(**values)
        db.add(expense)
        db.commit()
        return expense
    return _make_expense
