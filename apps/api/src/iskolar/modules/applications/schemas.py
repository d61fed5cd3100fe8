"""
Applications Schemas

Pydantic schemas for request validation and response serialization.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

# Re-use enums from models (they work with Pydantic too!)
from iskolar.modules.applications.models import ApplicationStatus, ValidationAction
from iskolar.modules.requirements.models import SubmissionStatus


# ============================================
# Applicant-facing
# ============================================


class ApplicationCreate(BaseModel):
    """Request body for POST /applications."""

    scholarship_id: int = Field(..., gt=0)


class ApplicationCreatedResponse(BaseModel):
    """Response after submitting an application."""

    id: int
    status: ApplicationStatus
    submitted_at: datetime
    message: str = "Application submitted successfully"


class ApplicationListItem(BaseModel):
    """Row in the application list."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    applicant_id: int
    scholarship_id: int
    status: ApplicationStatus
    gpa_at_submission: Decimal
    income_at_submission: Decimal
    remarks: str | None
    submitted_at: datetime
    created_at: datetime
    updated_at: datetime
    applicant_name: str
    student_number: str
    scholarship_name: str
    grantor: str | None


class ApplicationListResponse(BaseModel):
    """Paginated list of applications."""

    rows: list[ApplicationListItem]
    total: int
    page: int
    limit: int
    pages: int


class ValidationRecordItem(BaseModel):
    """One entry of an application's audit history."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    validator_id: int
    action: ValidationAction
    checklist: dict | None
    notes: str | None
    created_at: datetime


class ApplicationDetail(ApplicationListItem):
    """Application with the applicant and scholarship figures it was judged on."""

    gpa: Decimal
    year_level: int
    course: str | None
    college: str | None
    monthly_income: Decimal
    min_gpa: Decimal
    max_monthly_income: Decimal | None


class ApplicationDetailResponse(BaseModel):
    data: ApplicationDetail
    history: list[ValidationRecordItem]


class EligibilityResponse(BaseModel):
    """Result of an eligibility pre-check."""

    scholarship_id: int
    eligible: bool
    reasons: list[str]
    checks: dict[str, bool]
    failed_checks: list[str]


# ============================================
# Staff-facing
# ============================================


class StaffApplicationListItem(ApplicationListItem):
    course: str | None
    college: str | None
    year_level: int
    total_requirements: int
    approved_requirements: int
    pending_requirements: int


class StaffApplicationListResponse(BaseModel):
    """Staff review queue with per-status counts."""

    rows: list[StaffApplicationListItem]
    summary: dict[str, int]
    total: int
    page: int
    limit: int
    pages: int


class StaffApplicationDetail(ApplicationDetail):
    applicant_email: str
    household_size: int | None
    contact_number: str | None
    address: str | None
    date_of_birth: date | None
    slots_available: int
    slots_total: int


class SubmissionItem(BaseModel):
    """A requirement submission as shown to reviewers."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    requirement_key: str
    requirement_name: str | None = None
    status: SubmissionStatus
    progress: int
    file_name: str | None
    file_url: str | None
    uploaded_at: datetime | None
    notes: str | None
    validated_by: int | None
    validated_at: datetime | None
    validator_notes: str | None


class CompletionSummaryResponse(BaseModel):
    total: int
    approved: int
    pending: int
    rejected: int
    missing: int
    in_progress: int
    all_approved: bool


class StaffApplicationDetailResponse(BaseModel):
    data: StaffApplicationDetail
    requirements: list[SubmissionItem]
    completion: CompletionSummaryResponse
    history: list[ValidationRecordItem]


class DecisionChecklist(BaseModel):
    """
    Staff attestation required before a final approval.

    Every field must be explicitly true for an approval to go through.
    """

    gpa_met: bool | None = None
    income_met: bool | None = None
    documents_complete: bool | None = None
    enrollment_verified: bool | None = None


class DecisionRequest(BaseModel):
    """Request body for PUT /staff/validations."""

    application_id: int = Field(..., gt=0)
    action: ValidationAction
    checklist: DecisionChecklist | None = None
    notes: str | None = Field(None, max_length=2000)


class DecisionResponse(BaseModel):
    application_id: int
    previous_status: ApplicationStatus
    new_status: ApplicationStatus
    message: str


class StartReviewResponse(BaseModel):
    application_id: int
    status: ApplicationStatus
    message: str
