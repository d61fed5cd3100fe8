"""
Validation Service Layer

Staff review of requirement submissions.

- validate_one: a verdict on a single document. When every catalog
  requirement ends up approved the application is auto-approved; a rejection
  moves a freshly submitted application into review.
- validate_bulk: one verdict applied to every pending document at once. This
  is an explicit decision on the whole application, so the application status
  is set directly (approved, or back to under review) and one audit record
  summarizes the action.
"""

import enum
import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from iskolar.core.database import storage_guard
from iskolar.core.email import send_requirement_reviewed
from iskolar.core.exceptions import NotFoundError
from iskolar.modules.applications import lifecycle
from iskolar.modules.applications import repository as application_repository
from iskolar.modules.applications.lifecycle import LifecycleAction
from iskolar.modules.applications.models import ApplicationStatus, ValidationAction
from iskolar.modules.applications.service import apply_transition
from iskolar.modules.requirements import repository as requirement_repository
from iskolar.modules.requirements.catalog import RequirementCatalog
from iskolar.modules.requirements.completion import CompletionSummary
from iskolar.modules.requirements.models import RequirementSubmission, SubmissionStatus
from iskolar.modules.requirements.service import completion_summary

logger = logging.getLogger(__name__)

BULK_APPROVE_REMARKS = "All documents approved by staff"
BULK_REJECT_REMARKS = "Documents need revision"
AUTO_APPROVE_REMARKS = "All documents validated"


class ReviewAction(str, enum.Enum):
    """Verdict a validator can give a document."""

    APPROVED = "approved"
    REJECTED = "rejected"

    @property
    def submission_status(self) -> SubmissionStatus:
        return SubmissionStatus(self.value)


@dataclass
class ValidateOneResult:
    submission: RequirementSubmission
    completion: CompletionSummary
    application_status: ApplicationStatus


@dataclass
class ValidateBulkResult:
    application_id: int
    affected_count: int
    application_status: ApplicationStatus


async def _notify_reviewed(
    db: AsyncSession,
    submission: RequirementSubmission,
    catalog: RequirementCatalog,
    action: ReviewAction,
    notes: str | None,
) -> None:
    # Email is best effort and never fails the request
    try:
        application = await application_repository.get_with_relations(db, submission.application_id)
        if application is None:
            return
        definition = catalog.get(submission.requirement_key)
        await send_requirement_reviewed(
            to_email=application.applicant.email,
            applicant_name=application.applicant.full_name,
            requirement_name=definition.name if definition else submission.requirement_key,
            approved=action == ReviewAction.APPROVED,
            notes=notes,
        )
    except Exception as e:
        logger.error(f"Failed to send review email for submission {submission.id}: {e}", exc_info=True)


async def validate_one(
    db: AsyncSession,
    validator_id: int,
    submission_id: int,
    action: ReviewAction,
    catalog: RequirementCatalog,
    notes: str | None = None,
) -> ValidateOneResult:
    """
    Approve or reject one submission, then re-derive the application status.

    Re-validating an already approved document on an already approved
    application changes nothing: auto-approve has no entry for approved, and
    the slot was consumed the first time.

    The application row is locked before the verdict is written, so two
    validators finishing the last documents of one application are serialized
    and the later one sees every approval when it counts.

    Raises:
        NotFoundError: If the submission doesn't exist
    """
    logger.info(f"Validator {validator_id} marking submission {submission_id} as {action.value}")

    async with storage_guard(db, "validate requirement"):
        application_id = await requirement_repository.get_application_id(db, submission_id)
        if application_id is None:
            raise NotFoundError("Submission", submission_id)

        application = await application_repository.get_for_update(db, application_id)
        if application is None:
            raise NotFoundError("Application", application_id)

        submission = await requirement_repository.record_decision(
            db,
            submission_id=submission_id,
            status=action.submission_status,
            validator_id=validator_id,
            notes=notes,
        )
        if submission is None:
            raise NotFoundError("Submission", submission_id)

        completion = await completion_summary(db, application.id, catalog)

        new_status = None
        if completion.all_approved:
            new_status = await apply_transition(
                db, application, LifecycleAction.AUTO_APPROVE, remarks=AUTO_APPROVE_REMARKS
            )
        elif action == ReviewAction.REJECTED:
            new_status = await apply_transition(db, application, LifecycleAction.AUTO_RETURN_TO_REVIEW)

        application_status = new_status or application.status
        await db.commit()

    logger.info(
        f"Submission {submission_id} {action.value}; application {application.id} "
        f"{completion.approved}/{completion.total} approved, status {application_status.value}"
    )

    await _notify_reviewed(db, submission, catalog, action, notes)

    return ValidateOneResult(
        submission=submission, completion=completion, application_status=application_status
    )


async def validate_bulk(
    db: AsyncSession,
    validator_id: int,
    application_id: int,
    action: ReviewAction,
    notes: str | None = None,
) -> ValidateBulkResult:
    """
    Apply one verdict to every pending submission of an application.

    Submissions that are already approved, rejected or never uploaded are left
    alone. The application goes to approved (bulk approve, consuming a slot on
    its first approval) or under review (bulk reject).

    Raises:
        NotFoundError: If the application doesn't exist
        InvalidTransitionError: If the application has been withdrawn
    """
    lifecycle_action = (
        LifecycleAction.BULK_APPROVE if action == ReviewAction.APPROVED else LifecycleAction.BULK_REJECT
    )
    remarks = notes or (BULK_APPROVE_REMARKS if action == ReviewAction.APPROVED else BULK_REJECT_REMARKS)

    logger.info(f"Validator {validator_id} bulk-{action.value} on application {application_id}")

    async with storage_guard(db, "bulk validate requirements"):
        application = await application_repository.get_for_update(db, application_id)
        if application is None:
            raise NotFoundError("Application", application_id)

        # Refuse before touching any submission
        lifecycle.require_transition(application.status, lifecycle_action)

        affected = await requirement_repository.bulk_record_decision(
            db,
            application_id=application_id,
            status=action.submission_status,
            validator_id=validator_id,
            notes=notes,
        )
        await application_repository.add_validation_record(
            db,
            application_id=application_id,
            validator_id=validator_id,
            action=ValidationAction(action.value),
            notes=remarks,
        )
        new_status = await apply_transition(db, application, lifecycle_action, remarks=remarks)
        await db.commit()

    logger.info(
        f"Bulk {action.value} on application {application_id}: {affected} submission(s), "
        f"status {new_status.value}"
    )
    return ValidateBulkResult(
        application_id=application_id, affected_count=affected, application_status=new_status
    )
