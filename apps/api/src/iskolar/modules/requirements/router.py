"""
Requirements Router

- GET /me/requirements - The caller's application with every catalog requirement
- POST /me/requirements - Upload or re-upload a requirement document
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from iskolar.core.auth import CallerIdentity, get_current_applicant
from iskolar.core.database import get_db
from iskolar.core.exceptions import ServiceError, internal_error, service_error_to_http
from iskolar.modules.requirements import service
from iskolar.modules.requirements.catalog import RequirementCatalog, get_requirement_catalog
from iskolar.modules.requirements.models import SubmissionStatus
from iskolar.modules.requirements.schemas import (
    ApplicationSummary,
    CompletionCounts,
    RequirementItem,
    RequirementSubmitRequest,
    RequirementSubmitResponse,
    RequirementsResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_item(view: service.RequirementView) -> RequirementItem:
    definition, submission = view.definition, view.submission
    return RequirementItem(
        key=definition.key,
        name=definition.name,
        description=definition.description,
        group=definition.group,
        help_tip=definition.help_tip,
        sample_url=definition.sample_url,
        due_date=definition.due_date,
        status=submission.status if submission else SubmissionStatus.MISSING,
        progress=submission.progress if submission else 0,
        file_name=submission.file_name if submission else None,
        file_url=submission.file_url if submission else None,
        uploaded_at=submission.uploaded_at if submission else None,
        notes=submission.notes if submission else None,
        validator_notes=submission.validator_notes if submission else None,
        validated_at=submission.validated_at if submission else None,
    )


@router.get(
    "/requirements",
    response_model=RequirementsResponse,
    summary="My Requirements",
    description="""
The caller's most recent application with every catalog requirement merged
with its submission. Requirements never uploaded appear as `missing`.

An applicant with no application gets an empty response, not a 404.
""",
    responses={401: {"description": "Missing or malformed X-Applicant-Id"}},
)
async def get_my_requirements(
    db: AsyncSession = Depends(get_db),
    applicant: CallerIdentity = Depends(get_current_applicant),
    catalog: RequirementCatalog = Depends(get_requirement_catalog),
) -> RequirementsResponse:
    try:
        overview = await service.list_requirements(db, applicant.id, catalog)
        if overview.application is None:
            return RequirementsResponse(application=None, requirements=[], completion=None)

        application = overview.application
        return RequirementsResponse(
            application=ApplicationSummary(
                id=application.id,
                status=application.status,
                scholarship_name=application.scholarship.name,
                grantor=application.scholarship.grantor,
            ),
            requirements=[_to_item(view) for view in overview.requirements],
            completion=CompletionCounts(**overview.completion.to_dict()),
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error loading requirements for {applicant}: {e}")
        raise internal_error() from e


@router.post(
    "/requirements",
    response_model=RequirementSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Requirement",
    description="""
Upload a document against the caller's current application.

Re-uploading replaces the earlier file, resets the submission to `pending`
and clears any previous review. Uploading to an approved or rejected
application puts it back under review.
""",
    responses={
        401: {"description": "Missing or malformed X-Applicant-Id"},
        404: {"description": "The caller has no application"},
        422: {"description": "No file reference, or unknown requirement key"},
    },
)
async def submit_requirement(
    data: RequirementSubmitRequest,
    db: AsyncSession = Depends(get_db),
    applicant: CallerIdentity = Depends(get_current_applicant),
    catalog: RequirementCatalog = Depends(get_requirement_catalog),
) -> RequirementSubmitResponse:
    try:
        submission = await service.submit_requirement(
            db,
            applicant.id,
            data.requirement_key,
            catalog,
            file_name=data.file_name,
            file_url=data.file_url,
            notes=data.notes,
        )
        return RequirementSubmitResponse(
            submission_id=submission.id,
            application_id=submission.application_id,
            requirement_key=submission.requirement_key,
            status=submission.status,
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error submitting requirement '{data.requirement_key}' for {applicant}: {e}")
        raise internal_error() from e
