from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from typing import Optional, List
from uuid import uuid4, UUID
from datetime import datetime

from src.db.core import UserDB, ExpenseDB, NotFoundError
from src.models.user import UserCreate


# ===== USER DIRECTORY =====

def user_exists(db: Session, user_id: int) -> bool:
    """
    Check that a user id still resolves to an account.
    Database errors propagate so callers can tell "missing" from "unreachable".
    """
    return db.query(UserDB.db_id).filter(UserDB.db_id == user_id).first() is not None


# ===== DATABASE OPERATIONS =====

def create_db_user(db: Session, user_data: UserCreate) -> UserDB:
    """Create a new user in the database"""

    existing_user = db.query(UserDB).filter(UserDB.email == user_data.email).first()
    if existing_user:
        raise ValueError("Email already registered")

    existing_username = db.query(UserDB).filter(UserDB.username == user_data.username).first()
    if existing_username:
        raise ValueError("Username already taken")

    db_user = UserDB(
        id=uuid4(),
        email=user_data.email,
        username=user_data.username,
        created_at=datetime.utcnow(),
        updated_at=datetime.utcnow()
    )

    try:
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
        return db_user
    except IntegrityError:
        db.rollback()
        raise ValueError("User creation failed due to database constraint")


def read_db_user(db: Session, user_id: int = None, user_uuid: UUID = None) -> Optional[UserDB]:
    """Read a user from the database by integer id or UUID"""

    query = db.query(UserDB)

    if user_id:
        return query.filter(UserDB.db_id == user_id).first()
    elif user_uuid:
        return query.filter(UserDB.id == user_uuid).first()
    else:
        raise ValueError("Must provide at least one identifier (user_id or user_uuid)")


def read_db_users(db: Session, skip: int = 0, limit: int = 100) -> List[UserDB]:
    """Read multiple users from the database (for admin purposes)"""
    return db.query(UserDB).offset(skip).limit(limit).all()


def delete_db_user(db: Session, user_id: int) -> bool:
    """Delete a user who owns no expenses"""

    db_user = db.query(UserDB).filter(UserDB.db_id == user_id).first()
    if not db_user:
        raise NotFoundError(f"User with id {user_id} not found")

    owned = db.query(ExpenseDB.id).filter(ExpenseDB.user_id == user_id).first()
    if owned:
        raise ValueError(f"User {user_id} still owns expenses")

    try:
        db.delete(db_user)
        db.commit()
        return True
    except IntegrityError as e:
        db.rollback()
        raise ValueError(f"Failed to delete user: {str(e)}")
