"""
Applications Router

Applicant-facing endpoints.

Endpoints:
- POST /applications - Submit an application (eligibility gated)
- GET /applications - Paginated list with status/scholarship filters
- GET /applications/{id} - Application detail with validation history
"""

import logging

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from iskolar.core.auth import CallerIdentity, get_current_applicant
from iskolar.core.database import get_db
from iskolar.core.exceptions import ServiceError, internal_error, service_error_to_http
from iskolar.modules.applications import service
from iskolar.modules.applications.models import Application, ApplicationStatus
from iskolar.modules.applications.schemas import (
    ApplicationCreate,
    ApplicationCreatedResponse,
    ApplicationDetail,
    ApplicationDetailResponse,
    ApplicationListItem,
    ApplicationListResponse,
    ValidationRecordItem,
)

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Helper Functions
# ============================================


def application_base_fields(app: Application) -> dict:
    """Columns shared by every application view, flattened with display names."""
    return {
        "id": app.id,
        "applicant_id": app.applicant_id,
        "scholarship_id": app.scholarship_id,
        "status": app.status,
        "gpa_at_submission": app.gpa_at_submission,
        "income_at_submission": app.income_at_submission,
        "remarks": app.remarks,
        "submitted_at": app.submitted_at,
        "created_at": app.created_at,
        "updated_at": app.updated_at,
        "applicant_name": app.applicant.full_name,
        "student_number": app.applicant.student_number,
        "scholarship_name": app.scholarship.name,
        "grantor": app.scholarship.grantor,
    }


def application_detail_fields(app: Application) -> dict:
    return {
        **application_base_fields(app),
        "gpa": app.applicant.gpa,
        "year_level": app.applicant.year_level,
        "course": app.applicant.course,
        "college": app.applicant.college,
        "monthly_income": app.applicant.monthly_income,
        "min_gpa": app.scholarship.min_gpa,
        "max_monthly_income": app.scholarship.max_monthly_income,
    }


# ============================================
# Endpoints
# ============================================


@router.post(
    "",
    response_model=ApplicationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit Scholarship Application",
    description="""
Apply for a scholarship as the calling applicant.

The applicant is evaluated against every eligibility criterion first. GPA and
monthly income are frozen on the application at submission time.

**Errors:**
- 404 `NOT_FOUND`: unknown applicant, or unknown/inactive scholarship
- 409 `DUPLICATE_APPLICATION`: an active application for this scholarship exists
- 422 `NOT_ELIGIBLE`: one reason per failed criterion in `reasons`
""",
    responses={
        401: {"description": "Missing or malformed X-Applicant-Id"},
        404: {"description": "Applicant or scholarship not found"},
        409: {"description": "Duplicate application"},
        422: {"description": "Not eligible, or invalid body"},
    },
)
async def submit_application(
    data: ApplicationCreate,
    db: AsyncSession = Depends(get_db),
    applicant: CallerIdentity = Depends(get_current_applicant),
) -> ApplicationCreatedResponse:
    try:
        application = await service.submit_application(db, applicant.id, data.scholarship_id)
        return ApplicationCreatedResponse(
            id=application.id,
            status=application.status,
            submitted_at=application.submitted_at,
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error submitting application: {e}")
        raise internal_error() from e


@router.get(
    "",
    response_model=ApplicationListResponse,
    summary="List Applications",
    description="""
Paginated list of applications, most recently updated first.

`page` below 1 is treated as 1 and `limit` is clamped to 1-100 (default 20).
""",
)
async def list_applications(
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    scholarship_id: int | None = Query(None, gt=0),
    page: int = Query(1),
    limit: int = Query(service.DEFAULT_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
) -> ApplicationListResponse:
    try:
        result = await service.list_applications(
            db, page=page, limit=limit, status=status_filter, scholarship_id=scholarship_id
        )
        return ApplicationListResponse(
            rows=[ApplicationListItem(**application_base_fields(app)) for app in result["rows"]],
            total=result["total"],
            page=result["page"],
            limit=result["limit"],
            pages=result["pages"],
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error listing applications: {e}")
        raise internal_error() from e


@router.get(
    "/{application_id}",
    response_model=ApplicationDetailResponse,
    summary="Get Application",
    responses={404: {"description": "Application not found"}},
)
async def get_application(
    application_id: int,
    db: AsyncSession = Depends(get_db),
) -> ApplicationDetailResponse:
    """Application with applicant figures, scholarship thresholds and history."""
    try:
        application, history = await service.get_application_detail(db, application_id)
        return ApplicationDetailResponse(
            data=ApplicationDetail(**application_detail_fields(application)),
            history=[ValidationRecordItem.model_validate(record) for record in history],
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error getting application {application_id}: {e}")
        raise internal_error() from e
