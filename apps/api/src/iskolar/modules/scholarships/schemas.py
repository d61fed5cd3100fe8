"""
Scholarships Schemas
"""

from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict


class ScholarshipItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    grantor: str | None
    description: str | None
    min_gpa: Decimal
    max_monthly_income: Decimal | None
    max_year_level: int | None
    application_open: date
    application_close: date
    slots_total: int
    slots_available: int


class ScholarshipListResponse(BaseModel):
    scholarships: list[ScholarshipItem]
