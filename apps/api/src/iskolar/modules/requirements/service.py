"""
Requirements Service Layer

The requirement tracker: applicants upload documents against the catalog,
and completion is always computed from the catalog plus the stored rows.

A document uploaded to an application that is already approved or rejected
reopens it for review.
"""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from iskolar.core.config import settings
from iskolar.core.database import storage_guard
from iskolar.core.exceptions import NotFoundError, ValidationError
from iskolar.modules.applications import repository as application_repository
from iskolar.modules.applications.lifecycle import LifecycleAction
from iskolar.modules.applications.models import Application
from iskolar.modules.applications.service import apply_transition
from iskolar.modules.requirements import repository
from iskolar.modules.requirements.catalog import RequirementCatalog, RequirementDefinition
from iskolar.modules.requirements.completion import CompletionSummary, summarize
from iskolar.modules.requirements.models import RequirementSubmission

logger = logging.getLogger(__name__)


@dataclass
class RequirementView:
    """A catalog entry merged with the applicant's submission, if any."""

    definition: RequirementDefinition
    submission: RequirementSubmission | None


@dataclass
class RequirementsOverview:
    application: Application | None
    requirements: list[RequirementView]
    completion: CompletionSummary | None


async def completion_summary(
    db: AsyncSession, application_id: int, catalog: RequirementCatalog
) -> CompletionSummary:
    """Completion counts for an application, read fresh from the database. Does not commit."""
    statuses = await repository.statuses_for_application(db, application_id)
    return summarize(catalog, statuses)


async def list_requirements(
    db: AsyncSession, applicant_id: int, catalog: RequirementCatalog
) -> RequirementsOverview:
    """
    The applicant's current application with every catalog requirement.

    Returns an empty overview when the applicant has no application yet.
    """
    async with storage_guard(db, "load requirements"):
        application = await application_repository.get_latest_for_applicant(db, applicant_id)
        if application is None:
            return RequirementsOverview(application=None, requirements=[], completion=None)

        application = await application_repository.get_with_relations(db, application.id)
        submissions = await repository.list_for_application(db, application.id)

    by_key = {row.requirement_key: row for row in submissions}
    views = [RequirementView(item, by_key.get(item.key)) for item in catalog.requirements]
    completion = summarize(catalog, {key: row.status for key, row in by_key.items()})

    return RequirementsOverview(application=application, requirements=views, completion=completion)


async def submit_requirement(
    db: AsyncSession,
    applicant_id: int,
    requirement_key: str,
    catalog: RequirementCatalog,
    file_name: str | None = None,
    file_url: str | None = None,
    notes: str | None = None,
) -> RequirementSubmission:
    """
    Upload (or re-upload) a document for the applicant's current application.

    The submission is upserted to pending with validator metadata cleared.
    An approved or rejected application goes back to under review.

    Raises:
        ValidationError: If no file reference is given, or the key is unknown
            and unknown keys are configured to be rejected
        NotFoundError: If the applicant has no active application
    """
    if not file_name and not file_url:
        raise ValidationError("A file name or file URL is required", fields=["file_name", "file_url"])

    if not catalog.contains(requirement_key):
        if settings.reject_unknown_requirement_keys:
            raise ValidationError(
                f"Unknown requirement '{requirement_key}'", fields=["requirement_key"]
            )
        logger.warning(
            f"Applicant {applicant_id} submitted unknown requirement key '{requirement_key}'; "
            "it will be stored but never counted toward completion"
        )

    async with storage_guard(db, "submit requirement"):
        application = await application_repository.get_latest_for_applicant(db, applicant_id)
        if application is None:
            raise NotFoundError("Application for applicant", applicant_id)

        # Serializes with staff validation of the same application
        application = await application_repository.get_for_update(db, application.id)
        if application is None:
            raise NotFoundError("Application for applicant", applicant_id)

        submission = await repository.upsert_submission(
            db,
            application_id=application.id,
            requirement_key=requirement_key,
            file_name=file_name,
            file_url=file_url,
            notes=notes,
        )
        reopened = await apply_transition(db, application, LifecycleAction.REOPEN_REVIEW)
        await db.commit()

    logger.info(
        f"Applicant {applicant_id} submitted '{requirement_key}' for application {application.id}"
        + (" (review reopened)" if reopened else "")
    )
    return submission
