"""
Applications Repository

Database operations for scholarship applications and the validation audit log.

Design Principles:
- Only database operations, no business rules
- Functions flush but never commit; the service owns the transaction
- Status changes are compare-and-set UPDATEs, never read-then-write
- Document-driven status decisions run under the application row lock
- Validation records are insert and read only
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, Update, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from iskolar.modules.applicants.models import Applicant

from .models import Application, ApplicationStatus, ValidationAction, ValidationRecord

# Statuses an applicant is still working on
ACTIVE_STATUSES = (
    ApplicationStatus.SUBMITTED,
    ApplicationStatus.UNDER_REVIEW,
    ApplicationStatus.RETURNED,
)

# Staff queue ordering: work to do first
STATUS_PRIORITY = {
    ApplicationStatus.SUBMITTED: 1,
    ApplicationStatus.UNDER_REVIEW: 2,
    ApplicationStatus.RETURNED: 3,
    ApplicationStatus.APPROVED: 4,
    ApplicationStatus.REJECTED: 5,
}


async def create(
    db: AsyncSession,
    applicant_id: int,
    scholarship_id: int,
    gpa_at_submission: Decimal,
    income_at_submission: Decimal,
) -> Application:
    """Insert a new application in the submitted state."""
    application = Application(
        applicant_id=applicant_id,
        scholarship_id=scholarship_id,
        status=ApplicationStatus.SUBMITTED,
        gpa_at_submission=gpa_at_submission,
        income_at_submission=income_at_submission,
    )
    db.add(application)
    await db.flush()
    await db.refresh(application)
    return application


async def get_by_id(db: AsyncSession, id: int) -> Application | None:
    """Get application by ID."""
    return await db.get(Application, id)


def build_lock_statement(application_id: int) -> Select:
    """SELECT ... FROM applications WHERE id = :id FOR UPDATE"""
    return (
        select(Application)
        .where(Application.id == application_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def get_for_update(db: AsyncSession, id: int) -> Application | None:
    """
    Get application and hold its row lock until the transaction ends.

    Writers that decide the next status from the application's documents take
    this lock first, so two of them on the same application run one at a time
    and the second sees what the first committed.
    """
    result = await db.execute(build_lock_statement(id))
    return result.scalar_one_or_none()


async def get_with_relations(db: AsyncSession, id: int) -> Application | None:
    """Get application with applicant and scholarship loaded."""
    result = await db.execute(
        select(Application)
        .where(Application.id == id)
        .options(selectinload(Application.applicant), selectinload(Application.scholarship))
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_active_for_pair(
    db: AsyncSession, applicant_id: int, scholarship_id: int
) -> Application | None:
    """Get the non-withdrawn application for an (applicant, scholarship) pair."""
    result = await db.execute(
        select(Application).where(
            Application.applicant_id == applicant_id,
            Application.scholarship_id == scholarship_id,
            Application.status != ApplicationStatus.WITHDRAWN,
        )
    )
    return result.scalar_one_or_none()


async def get_latest_for_applicant(db: AsyncSession, applicant_id: int) -> Application | None:
    """Get the applicant's most recent non-withdrawn application."""
    result = await db.execute(
        select(Application)
        .where(
            Application.applicant_id == applicant_id,
            Application.status != ApplicationStatus.WITHDRAWN,
        )
        .order_by(Application.created_at.desc(), Application.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def list_for_applicant(db: AsyncSession, applicant_id: int) -> list[Application]:
    """Every application of an applicant with its scholarship, newest first."""
    result = await db.execute(
        select(Application)
        .where(Application.applicant_id == applicant_id)
        .options(selectinload(Application.scholarship))
        .order_by(Application.created_at.desc(), Application.id.desc())
    )
    return list(result.scalars().all())


def _apply_filters(
    query: Select,
    status: ApplicationStatus | None = None,
    scholarship_id: int | None = None,
    applicant_id: int | None = None,
) -> Select:
    if status is not None:
        query = query.where(Application.status == status)
    if scholarship_id is not None:
        query = query.where(Application.scholarship_id == scholarship_id)
    if applicant_id is not None:
        query = query.where(Application.applicant_id == applicant_id)
    return query


async def list_paginated(
    db: AsyncSession,
    offset: int,
    limit: int,
    status: ApplicationStatus | None = None,
    scholarship_id: int | None = None,
    applicant_id: int | None = None,
) -> tuple[list[Application], int]:
    """
    List applications with optional filters, most recently updated first.

    Returns:
        Tuple of (applications, total matching count)
    """
    count_query = _apply_filters(
        select(func.count()).select_from(Application), status, scholarship_id, applicant_id
    )
    total = (await db.execute(count_query)).scalar_one()

    query = _apply_filters(
        select(Application).options(
            selectinload(Application.applicant), selectinload(Application.scholarship)
        ),
        status,
        scholarship_id,
        applicant_id,
    )
    query = query.order_by(Application.updated_at.desc(), Application.id.desc())
    result = await db.execute(query.offset(offset).limit(limit))

    return list(result.scalars().all()), total


def _staff_filters(query: Select, status: ApplicationStatus | None, search: str | None) -> Select:
    query = query.where(Application.status != ApplicationStatus.DRAFT)
    if status is not None:
        query = query.where(Application.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(
            or_(
                Applicant.full_name.ilike(pattern),
                Applicant.student_number.ilike(pattern),
                Applicant.email.ilike(pattern),
            )
        )
    return query


async def list_for_staff(
    db: AsyncSession,
    offset: int,
    limit: int,
    status: ApplicationStatus | None = None,
    search: str | None = None,
) -> tuple[list[Application], int]:
    """
    Staff review queue. Drafts are never shown.

    Ordered by status priority (submitted, under review, returned, approved,
    rejected, anything else), then most recently updated.
    """
    count_query = _staff_filters(
        select(func.count()).select_from(Application).join(Applicant), status, search
    )
    total = (await db.execute(count_query)).scalar_one()

    priority = case(
        *[(Application.status == value, rank) for value, rank in STATUS_PRIORITY.items()],
        else_=len(STATUS_PRIORITY) + 1,
    )
    query = _staff_filters(select(Application).join(Applicant), status, search)
    query = (
        query.options(selectinload(Application.applicant), selectinload(Application.scholarship))
        .order_by(priority, Application.updated_at.desc(), Application.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(query)

    return list(result.scalars().all()), total


async def count_by_status(db: AsyncSession) -> dict[ApplicationStatus, int]:
    """Application counts per status, drafts excluded."""
    result = await db.execute(
        select(Application.status, func.count())
        .where(Application.status != ApplicationStatus.DRAFT)
        .group_by(Application.status)
    )
    return {status: count for status, count in result.all()}


def build_transition_statement(
    application_id: int,
    sources: list[ApplicationStatus],
    target: ApplicationStatus,
    remarks: str | None = None,
) -> Update:
    """UPDATE applications SET status = :target WHERE id = :id AND status IN (:sources)"""
    values: dict = {"status": target}
    if remarks is not None:
        values["remarks"] = remarks
    return (
        update(Application)
        .where(Application.id == application_id, Application.status.in_(sources))
        .values(**values)
    )


async def transition_status(
    db: AsyncSession,
    application_id: int,
    sources: list[ApplicationStatus],
    target: ApplicationStatus,
    remarks: str | None = None,
) -> bool:
    """
    Compare-and-set the status.

    Returns:
        True if the row was still in one of the source statuses and was moved,
        False if another writer got there first
    """
    result = await db.execute(build_transition_statement(application_id, sources, target, remarks))
    return result.rowcount == 1


async def mark_slot_consumed(db: AsyncSession, application_id: int) -> bool:
    """
    Record that this application's approval consumed a slot.

    Returns:
        True the first time only
    """
    result = await db.execute(
        update(Application)
        .where(Application.id == application_id, Application.slot_consumed_at.is_(None))
        .values(slot_consumed_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def list_due_for_reminder(db: AsyncSession, sent_before: datetime) -> list[Application]:
    """Active applications not reminded since sent_before, with applicant loaded."""
    result = await db.execute(
        select(Application)
        .where(
            Application.status.in_(ACTIVE_STATUSES),
            or_(
                Application.last_reminder_sent_at.is_(None),
                Application.last_reminder_sent_at < sent_before,
            ),
        )
        .options(selectinload(Application.applicant))
        .order_by(Application.id)
    )
    return list(result.scalars().all())


async def mark_reminder_sent(db: AsyncSession, application_id: int) -> None:
    """Stamp the reminder time for idempotency."""
    await db.execute(
        update(Application)
        .where(Application.id == application_id)
        .values(last_reminder_sent_at=func.now())
        .execution_options(synchronize_session=False)
    )


# ============================================
# Validation audit log (append-only)
# ============================================


async def add_validation_record(
    db: AsyncSession,
    application_id: int,
    validator_id: int,
    action: ValidationAction,
    checklist: dict | None = None,
    notes: str | None = None,
) -> ValidationRecord:
    """Append an audit entry."""
    record = ValidationRecord(
        application_id=application_id,
        validator_id=validator_id,
        action=action,
        checklist=checklist,
        notes=notes,
    )
    db.add(record)
    await db.flush()
    return record


async def list_validation_records(db: AsyncSession, application_id: int) -> list[ValidationRecord]:
    """Audit history for an application, newest first."""
    result = await db.execute(
        select(ValidationRecord)
        .where(ValidationRecord.application_id == application_id)
        .order_by(ValidationRecord.created_at.desc(), ValidationRecord.id.desc())
    )
    return list(result.scalars().all())
