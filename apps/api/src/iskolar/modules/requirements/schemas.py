"""
Requirements Schemas

Pydantic schemas for the applicant requirement endpoints.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field, model_validator

from iskolar.modules.applications.models import ApplicationStatus
from iskolar.modules.requirements.catalog import RequirementGroup
from iskolar.modules.requirements.models import SubmissionStatus


class RequirementSubmitRequest(BaseModel):
    """Request body for POST /me/requirements."""

    requirement_key: str = Field(..., min_length=1, max_length=100)
    file_name: str | None = Field(None, max_length=255)
    file_url: str | None = Field(None, max_length=2048)
    notes: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def validate_file_reference(self) -> "RequirementSubmitRequest":
        if not self.file_name and not self.file_url:
            raise ValueError("At least one of file_name or file_url is required")
        return self


class RequirementSubmitResponse(BaseModel):
    success: bool = True
    submission_id: int
    application_id: int
    requirement_key: str
    status: SubmissionStatus


class RequirementItem(BaseModel):
    """A catalog requirement merged with the applicant's submission."""

    key: str
    name: str
    description: str
    group: RequirementGroup
    help_tip: str | None
    sample_url: str | None
    due_date: date | None
    status: SubmissionStatus
    progress: int
    file_name: str | None
    file_url: str | None
    uploaded_at: datetime | None
    notes: str | None
    validator_notes: str | None
    validated_at: datetime | None


class ApplicationSummary(BaseModel):
    id: int
    status: ApplicationStatus
    scholarship_name: str
    grantor: str | None


class CompletionCounts(BaseModel):
    total: int
    approved: int
    pending: int
    rejected: int
    missing: int
    in_progress: int
    all_approved: bool


class RequirementsResponse(BaseModel):
    """Response for GET /me/requirements. Empty when there is no application yet."""

    application: ApplicationSummary | None
    requirements: list[RequirementItem]
    completion: CompletionCounts | None
