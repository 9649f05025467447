from datetime import date
from decimal import Decimal

import pytest

from src.crud import crud_expense, crud_user
from src.db.core import NotFoundError
from src.models.expense import ExpenseResponse
from src.models.user import UserResponse
from tests.helpers import reload


def _record(user_id, **overrides):
    record = {
        "user_id": user_id,
        "amount": Decimal("9.99"),
        "category": "Streaming",
        "description": None,
        "expense_date": date(2024, 5, 1),
        "payment_method": "Card",
        "frequency": "Monthly",
        "is_recurring": False,
    }
    record.update(overrides)
    return record


def test_insert_for_missing_user_raises_not_found(db):
    with pytest.raises(NotFoundError):
        crud_expense.insert_expense(db, _record(user_id=404))


def test_insert_constraint_failure_raises_value_error(db, user):
    with pytest.raises(ValueError):
        crud_expense.insert_expense(db, _record(user.db_id, category=None))


def test_insert_returns_new_id(db, user):
    expense_id = crud_expense.insert_expense(db, _record(user.db_id))
    assert reload(db, expense_id).amount == Decimal("9.99")


def test_update_only_touches_bookkeeping_fields(db, user, make_expense):
    expense_id = make_expense(user.db_id).id

    crud_expense.update_expense(db, expense_id, {"last_occurred": date(2024, 2, 15)})
    assert reload(db, expense_id).last_occurred == date(2024, 2, 15)

    with pytest.raises(ValueError):
        crud_expense.update_expense(db, expense_id, {"amount": Decimal("1.00")})


def test_update_and_delete_missing_row_raise_not_found(db):
    with pytest.raises(NotFoundError):
        crud_expense.update_expense(db, 12345, {"is_recurring": False})
    with pytest.raises(NotFoundError):
        crud_expense.delete_expense(db, 12345)


def test_find_expenses_matches_user_category_and_date(db, make_user, make_expense):
    alice, bob = make_user("alice"), make_user("bob")
    target = make_expense(alice.db_id, expense_date=date(2024, 2, 15), is_recurring=False).id
    make_expense(alice.db_id, category="Gym", expense_date=date(2024, 2, 15))
    make_expense(bob.db_id, expense_date=date(2024, 2, 15))

    found = crud_expense.find_expenses(db, alice.db_id, "Rent", date(2024, 2, 15))

    assert [e.id for e in found] == [target]


def test_find_expenses_past_date_filters_flag_and_date(db, user, make_expense):
    make_expense(user.db_id, expense_date=date(2024, 3, 15))
    later = make_expense(user.db_id, expense_date=date(2024, 4, 15)).id
    make_expense(user.db_id, expense_date=date(2024, 5, 15), is_recurring=False)

    found = crud_expense.find_expenses_past_date(
        db, user_id=user.db_id, category="Rent", is_recurring=True, after=date(2024, 3, 15)
    )

    assert [e.id for e in found] == [later]


def test_list_recurring_templates(db, user, make_expense):
    template = make_expense(user.db_id).id
    make_expense(user.db_id, is_recurring=False)

    assert [e.id for e in crud_expense.list_recurring_templates(db)] == [template]


def test_user_exists(db, user):
    assert crud_user.user_exists(db, user.db_id)
    assert not crud_user.user_exists(db, user.db_id + 1)


def test_response_models_read_orm_rows(db, user, make_expense):
    expense = make_expense(user.db_id, recurring_end_date=date(2024, 6, 30))

    body = ExpenseResponse.model_validate(expense)
    owner = UserResponse.model_validate(user)

    assert body.id == expense.id
    assert body.expense_date == date(2024, 1, 15)
    assert body.recurring_end_date == date(2024, 6, 30)
    assert owner.db_id == user.db_id
    assert owner.username == "alice"
