#!/usr/bin/env python
"""
Recurring Expenses Job

One-shot run of the recurring expense job, for cron or manual catch-up:
1. Delete rows generated past a template's end date and retire finished templates
2. Insert every due occurrence of every active template up to the run date

Usage:
    python scripts/recurring_expenses_job.py [--date YYYY-MM-DD] [--cleanup-only | --skip-cleanup]

Options:
    --date: Date to treat as "today" (default: today)
    --cleanup-only: Run only the cleanup pass
    --skip-cleanup: Run only the processing pass
"""
import sys
from pathlib import Path
from datetime import date, datetime
from argparse import ArgumentParser

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.db.core import get_db
from src.logging_config import setup_logging, get_logger
from src.services.recurring_expenses import (
    cleanup_expired_recurring_expenses,
    process_recurring_expenses,
    run_recurring_job,
)

logger = get_logger("recurring_expenses_job")


def run_job(run_date: date, cleanup_only: bool = False, skip_cleanup: bool = False):
    """
    Run the requested passes for a single fixed date and return the summary.
    """
    db = next(get_db())

    try:
        if cleanup_only:
            summary = cleanup_expired_recurring_expenses(db, run_date)
        elif skip_cleanup:
            summary = process_recurring_expenses(db, run_date)
        else:
            summary = run_recurring_job(db, run_date)
    finally:
        db.close()

    logger.info("=" * 60)
    logger.info(f"Job Complete for {run_date}")
    logger.info(f"  Templates seen: {summary.templates_seen}")
    logger.info(f"  Occurrences inserted: {summary.occurrences_inserted}")
    logger.info(f"  Duplicates skipped: {summary.duplicates_skipped}")
    logger.info(f"  Occurrences deleted: {summary.occurrences_deleted}")
    logger.info(f"  Templates deactivated: {summary.templates_deactivated}")
    logger.info(f"  Errors: {summary.templates_failed}")
    logger.info("=" * 60)
    return summary


def main(argv=None):
    parser = ArgumentParser(description="Materialize due recurring expenses")

    parser.add_argument(
        '--date',
        type=str,
        help='Run date (YYYY-MM-DD), defaults to today'
    )

    passes = parser.add_mutually_exclusive_group()
    passes.add_argument(
        '--cleanup-only',
        action='store_true',
        help='Only delete over-generated rows and retire finished templates'
    )
    passes.add_argument(
        '--skip-cleanup',
        action='store_true',
        help='Only insert due occurrences'
    )

    args = parser.parse_args(argv)

    setup_logging()

    if args.date:
        try:
            run_date = datetime.strptime(args.date, '%Y-%m-%d').date()
        except ValueError:
            logger.error(f"Invalid date format: {args.date}. Use YYYY-MM-DD")
            sys.exit(1)
    else:
        run_date = date.today()

    summary = run_job(
        run_date=run_date,
        cleanup_only=args.cleanup_only,
        skip_cleanup=args.skip_cleanup,
    )
    if summary.templates_failed:
        sys.exit(2)


if __name__ == "__main__":
    main()
