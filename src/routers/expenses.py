from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from src.crud import crud_expense
from src.models.expense import ExpenseCreate, ExpenseResponse
from src.db.core import get_db, NotFoundError

router = APIRouter(
    prefix="/expenses",
    tags=["expenses"],
)

@router.post("/", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
def create_expense(expense: ExpenseCreate, db: Session = Depends(get_db)):
    """
    Log an expense. With is_recurring set, the row becomes a recurring template.
    """
    try:
        db_expense = crud_expense.create_db_expense(db, expense)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return db_expense

@router.get("/", response_model=List[ExpenseResponse])
def read_expenses(
    user_id: int,
    is_recurring: Optional[bool] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    return crud_expense.read_db_expenses(
        db,
        user_id=user_id,
        is_recurring=is_recurring,
        date_from=date_from,
        date_to=date_to,
        skip=skip,
        limit=limit,
    )

@router.get("/{expense_id}", response_model=ExpenseResponse)
def read_expense(expense_id: int, db: Session = Depends(get_db)):
    db_expense = crud_expense.read_db_expense(db, expense_id)
    if db_expense is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return db_expense

@router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(expense_id: int, db: Session = Depends(get_db)):
    try:
        crud_expense.delete_db_expense(db, expense_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
