"""
Requirements Background Jobs

Reminds applicants of requirements that are still outstanding (never
uploaded, or rejected and awaiting a re-upload) and due within the reminder
window.

Design Principles:
- Idempotent: an application is reminded at most once per REMINDER_COOLDOWN_HOURS
- Each application is processed in its own session and transaction
- A failure on one application is logged and counted, never aborts the run
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from iskolar.core.config import settings
from iskolar.core.database import async_session_maker
from iskolar.core.email import send_requirement_reminder
from iskolar.core.scheduler import register_job
from iskolar.modules.applications import repository as application_repository
from iskolar.modules.applications.models import Application
from iskolar.modules.applications.service import app_timezone
from iskolar.modules.requirements import repository
from iskolar.modules.requirements.catalog import (
    RequirementCatalog,
    RequirementDefinition,
    get_requirement_catalog,
)
from iskolar.modules.requirements.models import SubmissionStatus

logger = logging.getLogger(__name__)

JOB_ID_SEND_DUE_REMINDERS = "requirements_send_due_reminders"
REMINDER_COOLDOWN_HOURS = 24

OUTSTANDING_STATUSES = {
    SubmissionStatus.MISSING,
    SubmissionStatus.IN_PROGRESS,
    SubmissionStatus.REJECTED,
}


def outstanding_requirements(
    due_soon: list[RequirementDefinition], statuses: dict[str, SubmissionStatus]
) -> list[RequirementDefinition]:
    """Due-soon requirements the applicant still has to act on."""
    return [
        item
        for item in due_soon
        if statuses.get(item.key, SubmissionStatus.MISSING) in OUTSTANDING_STATUSES
    ]


async def _process_application(
    application: Application, due_soon: list[RequirementDefinition]
) -> dict[str, Any]:
    async with async_session_maker() as db:
        statuses = await repository.statuses_for_application(db, application.id)
        outstanding = outstanding_requirements(due_soon, statuses)

        if not outstanding:
            return {"application_id": application.id, "status": "skipped"}

        email_sent = await send_requirement_reminder(
            to_email=application.applicant.email,
            applicant_name=application.applicant.full_name,
            outstanding=[(item.name, item.due_date) for item in outstanding],
        )
        if not email_sent:
            logger.error(f"Failed to send requirement reminder for application {application.id}")

        # Marked either way so a bouncing address is not retried every run
        await application_repository.mark_reminder_sent(db, application.id)
        await db.commit()

    logger.info(
        f"Reminded application {application.id} of {len(outstanding)} outstanding requirement(s)"
    )
    return {
        "application_id": application.id,
        "status": "sent" if email_sent else "marked_sent_email_failed",
        "outstanding": [item.key for item in outstanding],
    }


async def send_due_reminders(
    catalog: RequirementCatalog | None = None, now: datetime | None = None
) -> dict[str, Any]:
    """
    Email applicants whose requirements are due within the reminder window.

    Returns:
        Dict with executed_at, per-application results, total_sent and total_errors
    """
    catalog = catalog or get_requirement_catalog()
    executed_at = now or datetime.now(UTC)
    today = executed_at.astimezone(app_timezone()).date()

    results: dict[str, Any] = {
        "executed_at": executed_at.isoformat(),
        "results": [],
        "total_sent": 0,
        "total_errors": 0,
    }

    due_soon = catalog.due_within(today, settings.reminder_window_days)
    if not due_soon:
        logger.info(f"No requirements due within {settings.reminder_window_days} day(s) of {today}")
        return results

    async with async_session_maker() as db:
        applications = await application_repository.list_due_for_reminder(
            db, sent_before=executed_at - timedelta(hours=REMINDER_COOLDOWN_HOURS)
        )

    logger.info(
        f"Starting requirement reminder job: {len(due_soon)} requirement(s) due soon, "
        f"{len(applications)} candidate application(s)"
    )

    for application in applications:
        try:
            result = await _process_application(application, due_soon)
        except Exception as e:
            logger.error(f"Error reminding application {application.id}: {e}", exc_info=True)
            result = {"application_id": application.id, "status": "error", "error": str(e)}
            results["total_errors"] += 1
        else:
            if result["status"] != "skipped":
                results["total_sent"] += 1
        results["results"].append(result)

    logger.info(
        f"Requirement reminder job completed. "
        f"Sent: {results['total_sent']}, Errors: {results['total_errors']}"
    )
    return results


def register_requirement_jobs() -> None:
    """Register the reminder job. Call during startup."""
    register_job(
        job_id=JOB_ID_SEND_DUE_REMINDERS,
        func=send_due_reminders,
        trigger=IntervalTrigger(hours=settings.reminder_interval_hours),
    )
    logger.info(
        f"Registered job: {JOB_ID_SEND_DUE_REMINDERS} "
        f"(interval: {settings.reminder_interval_hours} hours)"
    )
