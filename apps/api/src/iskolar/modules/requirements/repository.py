"""
Requirement Submissions Repository

Database operations for requirement submissions. Functions flush or execute
but never commit; the calling service owns the transaction.
"""

from collections import defaultdict

from sqlalchemy import Insert, Update, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from .models import RequirementSubmission, SubmissionStatus

UNIQUE_CONSTRAINT = "uq_requirement_submissions_application_key"


def build_upsert_statement(
    application_id: int,
    requirement_key: str,
    file_name: str | None,
    file_url: str | None,
    notes: str | None,
) -> Insert:
    """
    INSERT ... ON CONFLICT (application_id, requirement_key) DO UPDATE

    A re-upload resets the row to pending and clears the validator metadata,
    starting a fresh review cycle.
    """
    stmt = pg_insert(RequirementSubmission).values(
        application_id=application_id,
        requirement_key=requirement_key,
        status=SubmissionStatus.PENDING,
        progress=100,
        file_name=file_name,
        file_url=file_url,
        notes=notes,
        uploaded_at=func.now(),
    )
    return stmt.on_conflict_do_update(
        constraint=UNIQUE_CONSTRAINT,
        set_={
            "status": stmt.excluded.status,
            "progress": stmt.excluded.progress,
            "file_name": stmt.excluded.file_name,
            "file_url": stmt.excluded.file_url,
            "notes": stmt.excluded.notes,
            "uploaded_at": func.now(),
            "validated_by": None,
            "validated_at": None,
            "validator_notes": None,
            "updated_at": func.now(),
        },
    ).returning(RequirementSubmission)


async def upsert_submission(
    db: AsyncSession,
    application_id: int,
    requirement_key: str,
    file_name: str | None,
    file_url: str | None,
    notes: str | None = None,
) -> RequirementSubmission:
    """Create or replace the submission for (application, key) in one statement."""
    stmt = build_upsert_statement(application_id, requirement_key, file_name, file_url, notes)
    result = await db.scalars(stmt, execution_options={"populate_existing": True})
    return result.one()


async def list_for_application(db: AsyncSession, application_id: int) -> list[RequirementSubmission]:
    """All submission rows for an application."""
    result = await db.execute(
        select(RequirementSubmission)
        .where(RequirementSubmission.application_id == application_id)
        .order_by(RequirementSubmission.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_application_id(db: AsyncSession, submission_id: int) -> int | None:
    """The application a submission belongs to, or None if the row is gone."""
    result = await db.execute(
        select(RequirementSubmission.application_id).where(RequirementSubmission.id == submission_id)
    )
    return result.scalar_one_or_none()


async def statuses_for_application(
    db: AsyncSession, application_id: int
) -> dict[str, SubmissionStatus]:
    """Map of requirement_key to status, read fresh from the database."""
    result = await db.execute(
        select(RequirementSubmission.requirement_key, RequirementSubmission.status).where(
            RequirementSubmission.application_id == application_id
        )
    )
    return {key: status for key, status in result.all()}


async def statuses_for_applications(
    db: AsyncSession, application_ids: list[int]
) -> dict[int, dict[str, SubmissionStatus]]:
    """Like statuses_for_application(), for a page of applications at once."""
    if not application_ids:
        return {}
    result = await db.execute(
        select(
            RequirementSubmission.application_id,
            RequirementSubmission.requirement_key,
            RequirementSubmission.status,
        ).where(RequirementSubmission.application_id.in_(application_ids))
    )
    statuses: dict[int, dict[str, SubmissionStatus]] = defaultdict(dict)
    for application_id, key, status in result.all():
        statuses[application_id][key] = status
    return dict(statuses)


def build_decision_statement(
    submission_id: int,
    status: SubmissionStatus,
    validator_id: int,
    notes: str | None,
) -> Update:
    return (
        update(RequirementSubmission)
        .where(RequirementSubmission.id == submission_id)
        .values(
            status=status,
            validated_by=validator_id,
            validated_at=func.now(),
            validator_notes=notes,
        )
        .returning(RequirementSubmission)
    )


async def record_decision(
    db: AsyncSession,
    submission_id: int,
    status: SubmissionStatus,
    validator_id: int,
    notes: str | None = None,
) -> RequirementSubmission | None:
    """Store a validator's verdict on one submission. None if the row is gone."""
    result = await db.scalars(
        build_decision_statement(submission_id, status, validator_id, notes),
        execution_options={"populate_existing": True},
    )
    return result.one_or_none()


def build_bulk_decision_statement(
    application_id: int,
    status: SubmissionStatus,
    validator_id: int,
    notes: str | None,
) -> Update:
    """Only pending rows are touched; earlier verdicts and missing documents stay as they are."""
    return (
        update(RequirementSubmission)
        .where(
            RequirementSubmission.application_id == application_id,
            RequirementSubmission.status == SubmissionStatus.PENDING,
        )
        .values(
            status=status,
            validated_by=validator_id,
            validated_at=func.now(),
            validator_notes=notes,
        )
        .execution_options(synchronize_session=False)
    )


async def bulk_record_decision(
    db: AsyncSession,
    application_id: int,
    status: SubmissionStatus,
    validator_id: int,
    notes: str | None = None,
) -> int:
    """Apply one verdict to every pending submission. Returns the affected row count."""
    result = await db.execute(
        build_bulk_decision_statement(application_id, status, validator_id, notes)
    )
    return result.rowcount
