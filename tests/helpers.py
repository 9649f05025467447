from sqlalchemy import delete, text
from sqlalchemy.exc import OperationalError

from src.db.core import ExpenseDB, UserDB


def remove_user(db, user_id):
    """Delete a user behind the expenses' back, the way the auth provider does."""
    db.commit()
    db.execute(text("PRAGMA foreign_keys=OFF"))
    db.execute(delete(UserDB).where(UserDB.db_id == user_id))
    db.commit()
    db.execute(text("PRAGMA foreign_keys=ON"))
    db.commit()


def occurrences(db, template_id):
    """Plain rows materialized for a template (same user and category), oldest first."""
    db.expire_all()
    template = db.get(ExpenseDB, template_id)
    return (
        db.query(ExpenseDB)
        .filter(
            ExpenseDB.user_id == template.user_id,
            ExpenseDB.category == template.category,
            ExpenseDB.is_recurring.is_(False),
            ExpenseDB.id != template_id,
        )
        .order_by(ExpenseDB.expense_date, ExpenseDB.id)
        .all()
    )


def reload(db, expense_id):
    db.expire_all()
    return db.get(ExpenseDB, expense_id)


def store_error(message="database is locked"):
    return OperationalError("SELECT 1", {}, Exception(message))
