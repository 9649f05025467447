from fastapi import APIRouter, HTTPException, Request, status
from typing import Optional
from datetime import date

from src.models.expense import RecurringRunSummary

router = APIRouter(
    prefix="/recurring",
    tags=["recurring"],
)

@router.post("/run", response_model=RecurringRunSummary)
async def run_recurring_job(request: Request, run_date: Optional[date] = None):
    """
    Trigger a cleanup + processing run now. Fails with 409 if one is already running.
    """
    summary = await request.app.state.recurring_scheduler.run_once(today=run_date)
    if summary is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Recurring job already running")
    return summary

@router.get("/last-run", response_model=Optional[RecurringRunSummary])
def read_last_run(request: Request):
    return request.app.state.recurring_scheduler.last_summary
