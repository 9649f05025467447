"""
Recurring expense materialization.

Each run takes a fixed ``today`` and does two passes over templates
(rows with ``is_recurring=True``):

1. cleanup: delete still-recurring rows dated past a template's end date and
   retire templates that are finished;
2. processing: insert every due occurrence up to ``today``, advancing the
   template's ``last_occurred`` after each one.

Templates are handled one at a time. A store error aborts only the template
being processed; nothing is retried in-run, the next scheduled run resumes
from the persisted ``last_occurred`` and the duplicate check keeps that safe.
"""
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.crud import crud_expense, crud_user
from src.db.core import NotFoundError
from src.logging_config import get_logger
from src.models.expense import RecurringRunSummary, TemplateOutcome
from src.services.recurrence import RecurringTemplate, advance_date, is_known_frequency

logger = get_logger(__name__)


def _load_templates(db: Session, summary: RecurringRunSummary, label: str) -> list:
    try:
        rows = crud_expense.list_recurring_templates(db)
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"{label}: error fetching recurring expenses: {e}")
        return []
    templates = [RecurringTemplate.from_row(row) for row in rows]
    summary.templates_seen = len(templates)
    return templates


def _deactivate(db: Session, template: RecurringTemplate, summary: RecurringRunSummary, reason: str) -> None:
    crud_expense.update_expense(db, template.id, {"is_recurring": False})
    summary.templates_deactivated += 1
    logger.info(f"Marked recurring expense {template.id} as inactive ({reason})")


def _record_failure(db: Session, template: RecurringTemplate, summary: RecurringRunSummary, error: Exception) -> None:
    db.rollback()
    summary.templates_failed += 1
    summary.outcomes[template.id] = TemplateOutcome.FAILED
    logger.error(f"Error processing recurring expense {template.id}: {error}")


# ===== PROCESSING PASS =====

def _catch_up(db: Session, template: RecurringTemplate, today: date, summary: RecurringRunSummary) -> TemplateOutcome:
    if not crud_user.user_exists(db, template.user_id):
        _deactivate(db, template, summary, f"user {template.user_id} not found")
        return TemplateOutcome.ORPHANED

    if template.is_past_end(today) and not template.has_pending_before_end():
        _deactivate(db, template, summary, f"end date {template.recurring_end_date} passed")
        return TemplateOutcome.EXPIRED

    if not is_known_frequency(template.frequency):
        logger.warning(
            f"Recurring expense {template.id} has unrecognized frequency {template.frequency!r}; nothing generated"
        )
        return TemplateOutcome.ACTIVE

    next_date = template.next_due()
    if next_date is None or next_date > today:
        # Keep the "upcoming" date accurate even when nothing was due
        if next_date is not None and next_date != template.recurring_next_date:
            crud_expense.update_expense(db, template.id, {"recurring_next_date": next_date})
        return TemplateOutcome.ACTIVE

    while next_date is not None and next_date <= today:
        if template.is_past_end(next_date):
            _deactivate(db, template, summary, f"end date {template.recurring_end_date} reached")
            return TemplateOutcome.EXPIRED

        existing = crud_expense.find_expenses(db, template.user_id, template.category, next_date)
        if existing:
            summary.duplicates_skipped += 1
            logger.info(
                f"Recurring expense for user {template.user_id} on {next_date} already exists, skipping insert"
            )
        else:
            try:
                crud_expense.insert_expense(db, template.occurrence(next_date))
            except NotFoundError:
                _deactivate(db, template, summary, f"user {template.user_id} missing at insert time")
                return TemplateOutcome.ORPHANED
            summary.occurrences_inserted += 1

        following = advance_date(next_date, template.frequency)
        crud_expense.update_expense(
            db, template.id, {"last_occurred": next_date, "recurring_next_date": following}
        )
        logger.info(
            f"Recurring expense {template.id} processed for {next_date}, next on {following}"
        )
        next_date = following

    # Last occurrence before the end date landed this run; nothing else can follow
    if template.is_past_end(today):
        _deactivate(db, template, summary, f"end date {template.recurring_end_date} passed")
        return TemplateOutcome.EXPIRED

    return TemplateOutcome.CAUGHT_UP


def process_recurring_expenses(db: Session, today: date) -> RecurringRunSummary:
    """Materialize every due occurrence of every active template up to ``today``."""
    summary = RecurringRunSummary(run_date=today)

    for template in _load_templates(db, summary, "Processing"):
        try:
            outcome = _catch_up(db, template, today, summary)
        except (SQLAlchemyError, ValueError, NotFoundError) as e:
            _record_failure(db, template, summary, e)
            continue
        summary.outcomes[template.id] = outcome

    logger.info(
        f"Recurring processing for {today}: {summary.occurrences_inserted} inserted, "
        f"{summary.duplicates_skipped} duplicates skipped, {summary.templates_deactivated} deactivated, "
        f"{summary.templates_failed} failed"
    )
    return summary


# ===== CLEANUP PASS =====

def _delete_extras(db: Session, template: RecurringTemplate, summary: RecurringRunSummary) -> set:
    rows = crud_expense.find_expenses_past_date(
        db,
        user_id=template.user_id,
        category=template.category,
        is_recurring=True,
        after=template.recurring_end_date,
    )
    # Only copies of this series; a newer template in the same category has its own start date
    extras = [
        (row.id, row.expense_date)
        for row in rows
        if row.id != template.id and row.recurring_start_date == template.recurring_start_date
    ]
    deleted = set()

    for expense_id, expense_date in extras:
        try:
            crud_expense.delete_expense(db, expense_id)
        except (SQLAlchemyError, NotFoundError) as e:
            db.rollback()
            logger.error(f"Cleanup: error deleting extra recurring expense {expense_id}: {e}")
            continue
        deleted.add(expense_id)
        summary.occurrences_deleted += 1
        logger.info(
            f"Cleanup: deleted extra recurring expense {expense_id} for user {template.user_id} on {expense_date}"
        )
    return deleted


def cleanup_expired_recurring_expenses(db: Session, today: date) -> RecurringRunSummary:
    """Remove rows generated past an end date and retire finished templates."""
    summary = RecurringRunSummary(run_date=today)
    deleted = set()
    templates = _load_templates(db, summary, "Cleanup")

    for template in templates:
        if template.recurring_end_date is None or template.id in deleted:
            continue
        try:
            if not crud_user.user_exists(db, template.user_id):
                _deactivate(db, template, summary, f"user {template.user_id} not found")
                summary.outcomes[template.id] = TemplateOutcome.ORPHANED
                continue

            deleted |= _delete_extras(db, template, summary)

            # Unfinished templates are caught up and retired by the processing pass
            if template.is_past_end(today) and not template.has_pending_before_end():
                _deactivate(db, template, summary, f"end date {template.recurring_end_date} passed")
                summary.outcomes[template.id] = TemplateOutcome.EXPIRED
        except (SQLAlchemyError, NotFoundError, ValueError) as e:
            _record_failure(db, template, summary, e)

    return summary


# ===== FULL RUN =====

def run_recurring_job(db: Session, today: date) -> RecurringRunSummary:
    """Cleanup, then processing, for a single fixed ``today``."""
    logger.info(f"Recurring expense job started for {today}")
    cleanup = cleanup_expired_recurring_expenses(db, today)
    processing = process_recurring_expenses(db, today)
    summary = cleanup.merge(processing)
    logger.info(
        f"Recurring expense job complete for {today}: {summary.occurrences_inserted} inserted, "
        f"{summary.occurrences_deleted} deleted, {summary.templates_deactivated} deactivated, "
        f"{summary.templates_failed} failed"
    )
    return summary
