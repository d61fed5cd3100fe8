"""
Staff Applications Router

Review queue and application decisions for staff validators.

Endpoints:
- GET /staff/applications - Review queue with search, status filter and counts
- GET /staff/applications/{id} - Full review view (requirements, completion, history)
- POST /staff/applications/{id}/start-review - Pick up a submitted/returned application
- PUT /staff/validations - Approve, reject, return or request more info
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from iskolar.core.auth import CallerIdentity, get_current_validator
from iskolar.core.database import get_db
from iskolar.core.exceptions import ServiceError, internal_error, service_error_to_http
from iskolar.core.rate_limit import (
    STAFF_ACTION_LIMIT,
    STAFF_ACTION_WINDOW_SECONDS,
    enforce_rate_limit,
)
from iskolar.modules.applications import service
from iskolar.modules.applications.models import ApplicationStatus
from iskolar.modules.applications.router import application_base_fields, application_detail_fields
from iskolar.modules.applications.schemas import (
    CompletionSummaryResponse,
    DecisionRequest,
    DecisionResponse,
    StaffApplicationDetail,
    StaffApplicationDetailResponse,
    StaffApplicationListItem,
    StaffApplicationListResponse,
    StartReviewResponse,
    SubmissionItem,
    ValidationRecordItem,
)
from iskolar.modules.requirements.catalog import RequirementCatalog, get_requirement_catalog

logger = logging.getLogger(__name__)

router = APIRouter()


async def _staff_rate_limit(validator: CallerIdentity) -> None:
    await enforce_rate_limit(
        f"staff:{validator.id}", STAFF_ACTION_LIMIT, STAFF_ACTION_WINDOW_SECONDS
    )


@router.get(
    "/applications",
    response_model=StaffApplicationListResponse,
    summary="Review Queue",
    description="""
Applications awaiting or past review, excluding drafts.

Ordered by review priority (submitted, under review, returned, approved,
rejected, withdrawn), newest submission first within a status. `search`
matches applicant name, student number or email. `summary` counts every
application by status regardless of filters.
""",
    responses={401: {"description": "Missing or malformed X-Validator-Id"}},
)
async def list_review_queue(
    status_filter: ApplicationStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=100),
    page: int = Query(1),
    limit: int = Query(service.DEFAULT_PAGE_SIZE),
    db: AsyncSession = Depends(get_db),
    validator: CallerIdentity = Depends(get_current_validator),
    catalog: RequirementCatalog = Depends(get_requirement_catalog),
) -> StaffApplicationListResponse:
    try:
        result = await service.staff_list_applications(
            db, catalog, page=page, limit=limit, status=status_filter, search=search
        )

        rows = []
        for app in result["rows"]:
            completion = result["completion"][app.id]
            rows.append(
                StaffApplicationListItem(
                    **application_base_fields(app),
                    course=app.applicant.course,
                    college=app.applicant.college,
                    year_level=app.applicant.year_level,
                    total_requirements=completion.total,
                    approved_requirements=completion.approved,
                    pending_requirements=completion.pending,
                )
            )

        return StaffApplicationListResponse(
            rows=rows,
            summary=result["summary"],
            total=result["total"],
            page=result["page"],
            limit=result["limit"],
            pages=result["pages"],
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error listing review queue for {validator}: {e}")
        raise internal_error() from e


@router.get(
    "/applications/{application_id}",
    response_model=StaffApplicationDetailResponse,
    summary="Review Application",
    responses={
        401: {"description": "Missing or malformed X-Validator-Id"},
        404: {"description": "Application not found"},
    },
)
async def get_review_detail(
    application_id: int,
    db: AsyncSession = Depends(get_db),
    validator: CallerIdentity = Depends(get_current_validator),
    catalog: RequirementCatalog = Depends(get_requirement_catalog),
) -> StaffApplicationDetailResponse:
    """Application, applicant profile, every submission and the audit trail."""
    try:
        view = await service.staff_get_application_detail(db, application_id, catalog)
        app = view.application

        requirements = []
        for submission in view.submissions:
            definition = catalog.get(submission.requirement_key)
            item = SubmissionItem.model_validate(submission)
            item.requirement_name = definition.name if definition else None
            requirements.append(item)

        return StaffApplicationDetailResponse(
            data=StaffApplicationDetail(
                **application_detail_fields(app),
                applicant_email=app.applicant.email,
                household_size=app.applicant.household_size,
                contact_number=app.applicant.contact_number,
                address=app.applicant.address,
                date_of_birth=app.applicant.date_of_birth,
                slots_available=app.scholarship.slots_available,
                slots_total=app.scholarship.slots_total,
            ),
            requirements=requirements,
            completion=CompletionSummaryResponse(**view.completion.to_dict()),
            history=[ValidationRecordItem.model_validate(record) for record in view.history],
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error loading application {application_id} for review: {e}")
        raise internal_error() from e


@router.post(
    "/applications/{application_id}/start-review",
    response_model=StartReviewResponse,
    summary="Start Review",
    responses={
        404: {"description": "Application not found"},
        409: {"description": "Application is not submitted or returned"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def start_review(
    application_id: int,
    db: AsyncSession = Depends(get_db),
    validator: CallerIdentity = Depends(get_current_validator),
) -> StartReviewResponse:
    await _staff_rate_limit(validator)
    try:
        new_status = await service.start_review(db, validator.id, application_id)
        return StartReviewResponse(
            application_id=application_id,
            status=new_status,
            message="Application is now under review",
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error starting review of application {application_id}: {e}")
        raise internal_error() from e


@router.put(
    "/validations",
    response_model=DecisionResponse,
    summary="Decide Application",
    description="""
Record a decision on a whole application.

| action | allowed from | result |
|--------|--------------|--------|
| approved | under_review | approved (consumes one slot) |
| rejected | under_review | rejected |
| returned | under_review | returned |
| requested_info | under_review | under_review (noted in history) |

Approval requires a `checklist` with every item set to `true`; otherwise the
request fails with 422 and nothing is written. Every decision is recorded in
the application's history.
""",
    responses={
        404: {"description": "Application not found"},
        409: {"description": "Action not allowed from the current status"},
        422: {"description": "Approval checklist incomplete"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def decide_application(
    data: DecisionRequest,
    db: AsyncSession = Depends(get_db),
    validator: CallerIdentity = Depends(get_current_validator),
) -> DecisionResponse:
    await _staff_rate_limit(validator)
    try:
        previous, new_status = await service.decide_application(
            db,
            validator.id,
            data.application_id,
            data.action,
            checklist=data.checklist.model_dump() if data.checklist else None,
            notes=data.notes,
        )
        return DecisionResponse(
            application_id=data.application_id,
            previous_status=previous,
            new_status=new_status,
            message=f"Application {new_status.value.replace('_', ' ')}",
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error recording decision on application {data.application_id}: {e}")
        raise internal_error() from e
