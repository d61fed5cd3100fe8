"""
Validation Schemas

Request and response bodies for staff document review.
"""

from pydantic import BaseModel, Field

from iskolar.modules.applications.models import ApplicationStatus
from iskolar.modules.requirements.models import SubmissionStatus
from iskolar.modules.requirements.schemas import CompletionCounts
from iskolar.modules.validation.service import ReviewAction


class ValidateOneRequest(BaseModel):
    """Request body for PUT /staff/validate."""

    submission_id: int = Field(..., gt=0)
    action: ReviewAction
    notes: str | None = Field(None, max_length=2000)


class ValidateOneResponse(BaseModel):
    submission_id: int
    status: SubmissionStatus
    application_id: int
    application_status: ApplicationStatus
    completion: CompletionCounts


class ValidateBulkRequest(BaseModel):
    """Request body for POST /staff/validate."""

    application_id: int = Field(..., gt=0)
    action: ReviewAction
    notes: str | None = Field(None, max_length=2000)


class ValidateBulkResponse(BaseModel):
    application_id: int
    affected_count: int
    application_status: ApplicationStatus
