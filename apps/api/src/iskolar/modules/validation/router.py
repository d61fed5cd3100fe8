"""
Validation Router

Staff review of requirement documents.

- PUT /staff/validate - Approve or reject one submission
- POST /staff/validate - Approve or reject every pending submission of an application
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from iskolar.core.auth import CallerIdentity, get_current_validator
from iskolar.core.database import get_db
from iskolar.core.exceptions import ServiceError, internal_error, service_error_to_http
from iskolar.core.rate_limit import (
    STAFF_ACTION_LIMIT,
    STAFF_ACTION_WINDOW_SECONDS,
    enforce_rate_limit,
)
from iskolar.modules.requirements.catalog import RequirementCatalog, get_requirement_catalog
from iskolar.modules.requirements.schemas import CompletionCounts
from iskolar.modules.validation import service
from iskolar.modules.validation.schemas import (
    ValidateBulkRequest,
    ValidateBulkResponse,
    ValidateOneRequest,
    ValidateOneResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.put(
    "/validate",
    response_model=ValidateOneResponse,
    summary="Validate Requirement",
    description="""
Approve or reject a single submitted document.

When this leaves every catalog requirement approved, the application is
approved automatically (from submitted or under review). A rejection moves a
submitted application into review.
""",
    responses={
        401: {"description": "Missing or malformed X-Validator-Id"},
        404: {"description": "Submission not found"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def validate_requirement(
    data: ValidateOneRequest,
    db: AsyncSession = Depends(get_db),
    validator: CallerIdentity = Depends(get_current_validator),
    catalog: RequirementCatalog = Depends(get_requirement_catalog),
) -> ValidateOneResponse:
    await enforce_rate_limit(f"staff:{validator.id}", STAFF_ACTION_LIMIT, STAFF_ACTION_WINDOW_SECONDS)
    try:
        result = await service.validate_one(
            db, validator.id, data.submission_id, data.action, catalog, notes=data.notes
        )
        return ValidateOneResponse(
            submission_id=result.submission.id,
            status=result.submission.status,
            application_id=result.submission.application_id,
            application_status=result.application_status,
            completion=CompletionCounts(**result.completion.to_dict()),
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error validating submission {data.submission_id}: {e}")
        raise internal_error() from e


@router.post(
    "/validate",
    response_model=ValidateBulkResponse,
    summary="Bulk Validate Requirements",
    description="""
Apply one verdict to every `pending` document of an application.

- `approved`: pending documents are approved and the application is approved
- `rejected`: pending documents are rejected and the application goes back
  under review

Documents already reviewed are untouched. Withdrawn applications are refused.
""",
    responses={
        401: {"description": "Missing or malformed X-Validator-Id"},
        404: {"description": "Application not found"},
        409: {"description": "Application is withdrawn"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def validate_requirements_bulk(
    data: ValidateBulkRequest,
    db: AsyncSession = Depends(get_db),
    validator: CallerIdentity = Depends(get_current_validator),
) -> ValidateBulkResponse:
    await enforce_rate_limit(f"staff:{validator.id}", STAFF_ACTION_LIMIT, STAFF_ACTION_WINDOW_SECONDS)
    try:
        result = await service.validate_bulk(
            db, validator.id, data.application_id, data.action, notes=data.notes
        )
        return ValidateBulkResponse(
            application_id=result.application_id,
            affected_count=result.affected_count,
            application_status=result.application_status,
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error bulk validating application {data.application_id}: {e}")
        raise internal_error() from e
