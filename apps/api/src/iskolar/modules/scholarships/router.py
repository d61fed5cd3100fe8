"""
Scholarships Router

- GET /scholarships - List active scholarships
- GET /scholarships/{id}/eligibility - Check the caller against a scholarship
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from iskolar.core.auth import CallerIdentity, get_current_applicant
from iskolar.core.database import get_db
from iskolar.core.exceptions import ServiceError, internal_error, service_error_to_http
from iskolar.modules.applications import service as application_service
from iskolar.modules.applications.schemas import EligibilityResponse
from iskolar.modules.scholarships import service
from iskolar.modules.scholarships.schemas import ScholarshipItem, ScholarshipListResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=ScholarshipListResponse,
    summary="List Scholarships",
)
async def list_scholarships(db: AsyncSession = Depends(get_db)) -> ScholarshipListResponse:
    """List active scholarships with their thresholds and remaining slots."""
    try:
        scholarships = await service.list_active_scholarships(db)
        return ScholarshipListResponse(
            scholarships=[ScholarshipItem.model_validate(item) for item in scholarships]
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error listing scholarships: {e}")
        raise internal_error() from e


@router.get(
    "/{scholarship_id}/eligibility",
    response_model=EligibilityResponse,
    summary="Check Eligibility",
    description="""
Evaluate the calling applicant against a scholarship without applying.

Every criterion is checked; `reasons` lists one message per failed check and
`checks` reports each criterion (gpa, income, year_level, open_period,
slots_available) individually.
""",
    responses={
        401: {"description": "Missing or malformed X-Applicant-Id"},
        404: {"description": "Applicant or scholarship not found"},
    },
)
async def check_eligibility(
    scholarship_id: int,
    db: AsyncSession = Depends(get_db),
    applicant: CallerIdentity = Depends(get_current_applicant),
) -> EligibilityResponse:
    try:
        result = await application_service.get_eligibility(db, applicant.id, scholarship_id)
        return EligibilityResponse(
            scholarship_id=scholarship_id,
            eligible=result.eligible,
            reasons=result.reasons,
            checks=result.checks,
            failed_checks=result.failed_checks,
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error checking eligibility for scholarship {scholarship_id}: {e}")
        raise internal_error() from e
