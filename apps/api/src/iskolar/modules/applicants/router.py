"""
Applicants Router

- GET /me - The caller's profile and the scholarships they applied for
- PUT /me/profile - Edit name, contact number and address
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from iskolar.core.auth import CallerIdentity, get_current_applicant
from iskolar.core.database import get_db
from iskolar.core.exceptions import ServiceError, internal_error, service_error_to_http
from iskolar.modules.applicants import service
from iskolar.modules.applicants.models import Applicant
from iskolar.modules.applicants.schemas import (
    LinkedScholarship,
    MeResponse,
    ProfileResponse,
    ProfileUpdateRequest,
    ProfileUpdateResponse,
)
from iskolar.modules.applications.models import ApplicationStatus

logger = logging.getLogger(__name__)

router = APIRouter()


def _to_profile(applicant: Applicant) -> ProfileResponse:
    first_name, last_name = service.split_name(applicant.full_name)
    return ProfileResponse(
        applicant_id=applicant.id,
        student_number=applicant.student_number,
        email=applicant.email,
        full_name=applicant.full_name,
        first_name=first_name,
        last_name=last_name,
        gpa=applicant.gpa,
        year_level=applicant.year_level,
        year_level_label=service.year_level_label(applicant.year_level),
        course=applicant.course,
        college=applicant.college,
        monthly_income=applicant.monthly_income,
        household_size=applicant.household_size,
        contact_number=applicant.contact_number,
        address=applicant.address,
        date_of_birth=applicant.date_of_birth,
        profile_completion=service.profile_completion(applicant),
    )


@router.get(
    "",
    response_model=MeResponse,
    summary="My Profile",
    description="""
The caller's applicant profile with a weighted `profile_completion`
percentage, and every scholarship they have applied for (newest first).
A scholarship shows as `active` once its application is approved.
""",
    responses={
        401: {"description": "Missing or malformed X-Applicant-Id"},
        404: {"description": "Applicant not found"},
    },
)
async def get_me(
    db: AsyncSession = Depends(get_db),
    applicant: CallerIdentity = Depends(get_current_applicant),
) -> MeResponse:
    try:
        profile = await service.get_profile(db, applicant.id)
        return MeResponse(
            profile=_to_profile(profile.applicant),
            scholarships=[
                LinkedScholarship(
                    application_id=application.id,
                    scholarship_id=application.scholarship_id,
                    name=application.scholarship.name,
                    grantor=application.scholarship.grantor,
                    application_status=application.status,
                    award_status="active" if application.status == ApplicationStatus.APPROVED else "pending",
                )
                for application in profile.applications
            ],
        )
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error loading profile for {applicant}: {e}")
        raise internal_error() from e


@router.put(
    "/profile",
    response_model=ProfileUpdateResponse,
    summary="Update My Profile",
    description="""
Edit the caller's name, contact number or address. Omitted fields are left
as they are; markup and unusual symbols are stripped from names and address.
""",
    responses={
        401: {"description": "Missing or malformed X-Applicant-Id"},
        404: {"description": "Applicant not found"},
    },
)
async def update_my_profile(
    data: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db),
    applicant: CallerIdentity = Depends(get_current_applicant),
) -> ProfileUpdateResponse:
    try:
        updated = await service.update_profile(db, applicant.id, data.model_dump(exclude_unset=True))
        return ProfileUpdateResponse(profile=_to_profile(updated))
    except ServiceError as e:
        raise service_error_to_http(e) from e
    except Exception as e:
        logger.exception(f"Error updating profile for {applicant}: {e}")
        raise internal_error() from e
