"""
Applications Service Layer

Business logic for scholarship applications.

This module implements:
1. Submission: eligibility gate, duplicate guard, frozen GPA/income snapshot
2. Listing and detail views for applicants and staff
3. The lifecycle engine: every status change goes through apply_transition(),
   which consults the transition table and persists with compare-and-set
4. Slot consumption on the first transition into approved
5. Staff decisions (approve, reject, return, request info) with the approval
   checklist gate and an audit record

Every public function runs inside storage_guard(), so transient database
failures surface as a retryable StorageError and the transaction is rolled back.
"""

import logging
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from iskolar.core.config import settings
from iskolar.core.database import storage_guard
from iskolar.core.email import send_application_decision
from iskolar.core.exceptions import (
    ConflictError,
    DuplicateApplicationError,
    EligibilityError,
    NotFoundError,
    ValidationError,
)
from iskolar.modules.applicants import repository as applicant_repository
from iskolar.modules.applications import lifecycle, repository
from iskolar.modules.applications.eligibility import (
    ApplicantSnapshot,
    EligibilityResult,
    ScholarshipTerms,
    evaluate,
)
from iskolar.modules.applications.lifecycle import InvalidTransitionError, LifecycleAction
from iskolar.modules.applications.models import (
    Application,
    ApplicationStatus,
    ValidationAction,
    ValidationRecord,
)
from iskolar.modules.requirements import repository as requirement_repository
from iskolar.modules.requirements.catalog import RequirementCatalog
from iskolar.modules.requirements.completion import CompletionSummary, summarize
from iskolar.modules.requirements.models import RequirementSubmission
from iskolar.modules.scholarships import repository as scholarship_repository

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def app_timezone() -> ZoneInfo:
    """Timezone the scholarship calendar dates are expressed in."""
    return ZoneInfo(settings.app_timezone)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def clamp_pagination(page: int, limit: int) -> tuple[int, int]:
    """page is at least 1, limit is kept within [1, 100]."""
    return max(1, page), min(MAX_PAGE_SIZE, max(1, limit))


def page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


# ============================================
# Lifecycle engine
# ============================================


async def consume_slot(db: AsyncSession, application: Application) -> int | None:
    """
    Take one slot from the scholarship for a newly approved application.

    Runs at most once per application: slot_consumed_at is claimed first, so
    an application that is reopened and approved again never decrements twice.

    Returns:
        Remaining slots (0 when the counter was already at the floor), or
        None if this application had already consumed its slot

    Raises:
        ConflictError: If the scholarship has no slots left and capacity is enforced
    """
    if not await repository.mark_slot_consumed(db, application.id):
        logger.info(f"Application {application.id} already consumed a slot, skipping decrement")
        return None

    remaining = await scholarship_repository.decrement_slots(db, application.scholarship_id)
    if remaining is None:
        if settings.enforce_slot_capacity:
            logger.warning(
                f"Refusing approval of application {application.id}: "
                f"scholarship {application.scholarship_id} has no slots left"
            )
            raise ConflictError(
                f"Scholarship {application.scholarship_id} has no slots remaining",
                error_code="SLOTS_EXHAUSTED",
            )
        logger.warning(
            f"Application {application.id} approved with no slots left on "
            f"scholarship {application.scholarship_id}; counter stays at 0"
        )
        return 0

    logger.info(
        f"Scholarship {application.scholarship_id} slot consumed by application "
        f"{application.id}, {remaining} remaining"
    )
    return remaining


async def apply_transition(
    db: AsyncSession,
    application: Application,
    action: LifecycleAction,
    remarks: str | None = None,
) -> ApplicationStatus | None:
    """
    Move an application through the state machine. Does not commit.

    Staff actions raise when the table has no entry for the current status or
    when a concurrent writer moved the row first. System actions are skipped
    quietly in both cases.

    Returns:
        The new status, or None if a system action did not apply
    """
    system = lifecycle.is_system_action(action)
    current = application.status
    target = lifecycle.next_status(current, action)

    if target is None:
        if system:
            logger.debug(
                f"Skipping {action.value} for application {application.id} in {current.value}"
            )
            return None
        logger.warning(f"Refused {action.value} on application {application.id} in {current.value}")
        raise InvalidTransitionError(current, action)

    moved = await repository.transition_status(
        db, application.id, lifecycle.source_statuses(action), target, remarks
    )
    if not moved:
        if system:
            logger.info(f"Application {application.id} changed concurrently, {action.value} skipped")
            return None
        logger.warning(f"Application {application.id} changed concurrently during {action.value}")
        raise ConflictError(
            "Application was updated by another reviewer. Reload and try again.",
            extra={"current_status": current.value, "action": action.value},
        )

    logger.info(
        f"Application {application.id}: {current.value} -> {target.value} ({action.value})"
    )

    if target == ApplicationStatus.APPROVED:
        await consume_slot(db, application)

    return target


async def _notify_decision(
    db: AsyncSession, application_id: int, status: ApplicationStatus, remarks: str | None
) -> None:
    # Email is best effort and never fails the request
    try:
        application = await repository.get_with_relations(db, application_id)
        if application is None:
            return
        await send_application_decision(
            to_email=application.applicant.email,
            applicant_name=application.applicant.full_name,
            scholarship_name=application.scholarship.name,
            status=status.value,
            remarks=remarks,
        )
    except Exception as e:
        logger.error(
            f"Failed to send decision email for application {application_id}: {e}", exc_info=True
        )


# ============================================
# Applicant operations
# ============================================


async def get_eligibility(
    db: AsyncSession,
    applicant_id: int,
    scholarship_id: int,
    now: datetime | None = None,
) -> EligibilityResult:
    """Evaluate eligibility without creating anything."""
    async with storage_guard(db, "check eligibility"):
        applicant = await applicant_repository.get_by_id(db, applicant_id)
        if applicant is None:
            raise NotFoundError("Applicant", applicant_id)

        scholarship = await scholarship_repository.get_by_id(db, scholarship_id)
        if scholarship is None or not scholarship.is_active:
            raise NotFoundError("Scholarship", scholarship_id)

        return evaluate(
            ApplicantSnapshot.from_model(applicant),
            ScholarshipTerms.from_model(scholarship),
            now or _utcnow(),
            app_timezone(),
        )


async def submit_application(
    db: AsyncSession,
    applicant_id: int,
    scholarship_id: int,
    now: datetime | None = None,
) -> Application:
    """
    Submit a new application.

    Flow:
    1. Load applicant and active scholarship
    2. Evaluate eligibility, refusing with every failed reason
    3. Advisory duplicate check
    4. Insert with GPA and income frozen from the profile; the partial unique
       index decides any race with a concurrent submission

    Raises:
        NotFoundError: Unknown applicant or inactive/unknown scholarship
        EligibilityError: One or more criteria failed
        DuplicateApplicationError: A non-withdrawn application already exists
    """
    logger.info(f"Applicant {applicant_id} submitting application for scholarship {scholarship_id}")

    async with storage_guard(db, "submit application"):
        applicant = await applicant_repository.get_by_id(db, applicant_id)
        if applicant is None:
            raise NotFoundError("Applicant", applicant_id)

        scholarship = await scholarship_repository.get_by_id(db, scholarship_id)
        if scholarship is None or not scholarship.is_active:
            raise NotFoundError("Scholarship", scholarship_id)

        snapshot = ApplicantSnapshot.from_model(applicant)
        result = evaluate(
            snapshot, ScholarshipTerms.from_model(scholarship), now or _utcnow(), app_timezone()
        )
        if not result.eligible:
            logger.warning(
                f"Applicant {applicant_id} not eligible for scholarship {scholarship_id}: "
                f"{result.failed_checks}"
            )
            raise EligibilityError(result.reasons, result.checks)

        if await repository.get_active_for_pair(db, applicant_id, scholarship_id) is not None:
            logger.warning(f"Duplicate application: applicant {applicant_id}, scholarship {scholarship_id}")
            raise DuplicateApplicationError(applicant_id, scholarship_id)

        try:
            application = await repository.create(
                db,
                applicant_id=applicant_id,
                scholarship_id=scholarship_id,
                gpa_at_submission=snapshot.gpa,
                income_at_submission=snapshot.monthly_income,
            )
            await db.commit()
        except IntegrityError as e:
            logger.warning(
                f"Concurrent duplicate application rejected by the database: "
                f"applicant {applicant_id}, scholarship {scholarship_id}"
            )
            raise DuplicateApplicationError(applicant_id, scholarship_id) from e

    logger.info(f"Application {application.id} submitted")
    return application


async def list_applications(
    db: AsyncSession,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    status: ApplicationStatus | None = None,
    scholarship_id: int | None = None,
    applicant_id: int | None = None,
) -> dict:
    """
    Paginated application list.

    Returns:
        Dict with rows, total, page, limit and pages
    """
    page, limit = clamp_pagination(page, limit)

    async with storage_guard(db, "list applications"):
        rows, total = await repository.list_paginated(
            db,
            offset=(page - 1) * limit,
            limit=limit,
            status=status,
            scholarship_id=scholarship_id,
            applicant_id=applicant_id,
        )

    return {"rows": rows, "total": total, "page": page, "limit": limit, "pages": page_count(total, limit)}


async def get_application_detail(
    db: AsyncSession, application_id: int
) -> tuple[Application, list[ValidationRecord]]:
    """
    Application with applicant, scholarship and audit history.

    Raises:
        NotFoundError: If application doesn't exist
    """
    async with storage_guard(db, "load application"):
        application = await repository.get_with_relations(db, application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        history = await repository.list_validation_records(db, application_id)

    return application, history


# ============================================
# Staff operations
# ============================================


async def staff_list_applications(
    db: AsyncSession,
    catalog: RequirementCatalog,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
    status: ApplicationStatus | None = None,
    search: str | None = None,
) -> dict:
    """
    Staff review queue.

    Returns:
        Dict with rows, completion per application id, status summary,
        total, page, limit and pages
    """
    page, limit = clamp_pagination(page, limit)
    logger.info(f"Staff listing applications: status={status}, search={search}, page={page}")

    async with storage_guard(db, "list applications for review"):
        rows, total = await repository.list_for_staff(
            db, offset=(page - 1) * limit, limit=limit, status=status, search=search
        )
        statuses = await requirement_repository.statuses_for_applications(db, [row.id for row in rows])
        summary = await repository.count_by_status(db)

    completion = {row.id: summarize(catalog, statuses.get(row.id, {})) for row in rows}

    return {
        "rows": rows,
        "completion": completion,
        "summary": {status.value: count for status, count in summary.items()},
        "total": total,
        "page": page,
        "limit": limit,
        "pages": page_count(total, limit),
    }


@dataclass
class StaffApplicationView:
    application: Application
    submissions: list[RequirementSubmission]
    completion: CompletionSummary
    history: list[ValidationRecord]


async def staff_get_application_detail(
    db: AsyncSession, application_id: int, catalog: RequirementCatalog
) -> StaffApplicationView:
    """
    Everything a reviewer needs: application, submissions, completion, history.

    Raises:
        NotFoundError: If application doesn't exist
    """
    async with storage_guard(db, "load application for review"):
        application = await repository.get_with_relations(db, application_id)
        if application is None:
            raise NotFoundError("Application", application_id)
        submissions = await requirement_repository.list_for_application(db, application_id)
        history = await repository.list_validation_records(db, application_id)

    completion = summarize(catalog, {row.requirement_key: row.status for row in submissions})
    submissions.sort(key=lambda row: row.requirement_key)
    return StaffApplicationView(application, submissions, completion, history)


async def start_review(db: AsyncSession, validator_id: int, application_id: int) -> ApplicationStatus:
    """
    Pick up a submitted or returned application for review.

    Raises:
        NotFoundError: If application doesn't exist
        InvalidTransitionError: If the application isn't submitted or returned
    """
    logger.info(f"Validator {validator_id} starting review of application {application_id}")

    async with storage_guard(db, "start review"):
        application = await repository.get_by_id(db, application_id)
        if application is None:
            raise NotFoundError("Application", application_id)

        new_status = await apply_transition(db, application, LifecycleAction.RESUME_REVIEW)
        await db.commit()

    return new_status


async def decide_application(
    db: AsyncSession,
    validator_id: int,
    application_id: int,
    action: ValidationAction,
    checklist: dict | None = None,
    notes: str | None = None,
) -> tuple[ApplicationStatus, ApplicationStatus]:
    """
    Record a staff decision on a whole application.

    Checks, in order: the application exists, the transition table allows the
    action from the current status, and (for approval) the checklist attests
    every criterion. Nothing is written unless all pass. Then the audit record,
    the status change and the slot consumption commit together.

    Returns:
        Tuple of (previous status, new status)

    Raises:
        NotFoundError: If application doesn't exist
        InvalidTransitionError: If the action isn't allowed from the current status
        ValidationError: If an approval's checklist is missing or incomplete
        ConflictError: If another reviewer changed the application concurrently
    """
    lifecycle_action = lifecycle.DECISION_ACTIONS[action]
    logger.info(f"Validator {validator_id} deciding '{action.value}' on application {application_id}")

    async with storage_guard(db, "record decision"):
        application = await repository.get_by_id(db, application_id)
        if application is None:
            raise NotFoundError("Application", application_id)

        previous = application.status
        lifecycle.require_transition(previous, lifecycle_action)

        if action == ValidationAction.APPROVED:
            missing = lifecycle.missing_checklist_items(checklist)
            if missing:
                logger.warning(
                    f"Approval of application {application_id} refused, checklist incomplete: {missing}"
                )
                raise ValidationError(
                    "All checklist items must be confirmed before approval", fields=missing
                )

        await repository.add_validation_record(
            db,
            application_id=application_id,
            validator_id=validator_id,
            action=action,
            checklist=checklist,
            notes=notes,
        )
        new_status = await apply_transition(db, application, lifecycle_action, remarks=notes)
        await db.commit()

    logger.info(f"Application {application_id} decision recorded: {previous.value} -> {new_status.value}")

    if new_status != previous:
        await _notify_decision(db, application_id, new_status, notes)

    return previous, new_status
