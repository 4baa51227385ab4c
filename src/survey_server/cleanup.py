"""Maintenance CLI — ``survey-cleanup``.

Removes submission records left behind by interrupted writes (no answer
rows) and, optionally, old submissions.  Intended for cron jobs or
one-off maintenance.

Examples::

    # Delete empty submissions older than $EMPTY_SUBMISSION_MAX_AGE_HOURS (default)
    survey-cleanup

    # Delete every empty submission regardless of age
    survey-cleanup --empty --hours 0

    # Delete all submissions older than 365 days
    survey-cleanup --days 365
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from survey_server.config import EMPTY_SUBMISSION_MAX_AGE_HOURS

logger = logging.getLogger(__name__)


async def run_cleanup(
    *,
    hours: int = EMPTY_SUBMISSION_MAX_AGE_HOURS,
    days: int | None = None,
) -> int:
    """Execute the cleanup operation and return the number of deleted rows.

    ``days`` set → delete submissions older than that many days; otherwise
    delete empty submissions older than ``hours``.
    """
    # Lazy imports to avoid loading DB machinery at module import time
    from survey_db.engine import dispose_engine, get_session_factory
    from survey_db.repository import SubmissionRepository

    repo = SubmissionRepository()
    factory = get_session_factory()

    try:
        async with factory() as db:
            if days is not None:
                affected = await repo.purge_old_submissions(db, older_than_days=days)
                action = "purge_old"
            else:
                affected = await repo.purge_empty_submissions(db, older_than_hours=hours)
                action = "purge_empty"
            await db.commit()

        logger.info("Cleanup complete: action=%s, affected_rows=%d", action, affected)
        return affected
    finally:
        await dispose_engine()


def cli() -> None:
    """Console-script entry point: ``survey-cleanup``."""
    parser = argparse.ArgumentParser(
        prog="survey-cleanup",
        description="Clean up empty or old submissions from the database.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--empty",
        action="store_true",
        default=True,
        help="Delete submissions without answer rows (default)",
    )
    mode.add_argument(
        "--days",
        type=int,
        default=None,
        help="Delete all submissions older than this many days",
    )
    parser.add_argument(
        "--hours",
        type=int,
        default=EMPTY_SUBMISSION_MAX_AGE_HOURS,
        help=(
            "Minimum age in hours of empty submissions to delete "
            "(default: $EMPTY_SUBMISSION_MAX_AGE_HOURS or 1; 0 means any age)"
        ),
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if args.days is not None and args.days < 1:
        parser.error("--days must be at least 1")

    affected = asyncio.run(run_cleanup(hours=args.hours, days=args.days))

    print(f"Deleted rows: {affected}")
    sys.exit(0)
