"""
Applicants Schemas

Pydantic schemas for the caller's own profile.
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, Field

from iskolar.modules.applications.models import ApplicationStatus


class ProfileResponse(BaseModel):
    applicant_id: int
    student_number: str
    email: str
    full_name: str
    first_name: str
    last_name: str
    gpa: Decimal
    year_level: int
    year_level_label: str
    course: str | None
    college: str | None
    monthly_income: Decimal
    household_size: int | None
    contact_number: str | None
    address: str | None
    date_of_birth: date | None
    profile_completion: int


class LinkedScholarship(BaseModel):
    """One of the caller's applications, as the profile page lists it."""

    application_id: int
    scholarship_id: int
    name: str
    grantor: str | None
    application_status: ApplicationStatus
    # "active" once approved, otherwise "pending"
    award_status: str


class MeResponse(BaseModel):
    """Response for GET /me."""

    profile: ProfileResponse
    scholarships: list[LinkedScholarship]


class ProfileUpdateRequest(BaseModel):
    """
    Request body for PUT /me/profile.

    Omitted fields are left unchanged. Academic and financial fields are not
    editable here.
    """

    first_name: str | None = Field(None, max_length=100)
    last_name: str | None = Field(None, max_length=100)
    contact_number: str | None = Field(None, max_length=20)
    address: str | None = Field(None, max_length=2000)


class ProfileUpdateResponse(BaseModel):
    message: str = "Profile updated successfully"
    profile: ProfileResponse
