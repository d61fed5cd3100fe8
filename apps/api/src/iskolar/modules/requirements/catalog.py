"""
Requirement Catalog

Read-only reference data: the documents every application must provide for
the current cycle. The catalog is the source of truth for the *set* of
required keys; submission rows only carry status.

The catalog is handed to the tracker as a value (FastAPI dependency or an
explicit argument), so a different catalog can be swapped in without touching
the tracking logic. Deployments override the built-in cycle catalog with a
JSON file via REQUIREMENT_CATALOG_PATH.
"""

import enum
import json
import logging
from datetime import date
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator

from iskolar.core.config import settings

logger = logging.getLogger(__name__)


class RequirementGroup(str, enum.Enum):
    ACADEMIC = "academic"
    FINANCIAL = "financial"
    PERSONAL = "personal"


class RequirementDefinition(BaseModel):
    """One required document."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9_]+$")
    name: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    group: RequirementGroup
    help_tip: str | None = Field(None, alias="helpTip")
    sample_url: str | None = Field(None, alias="sampleUrl")
    due_date: date | None = Field(None, alias="dueDate")


class RequirementCatalog(BaseModel):
    """An ordered, immutable collection of requirement definitions."""

    model_config = ConfigDict(frozen=True)

    requirements: tuple[RequirementDefinition, ...]

    @model_validator(mode="after")
    def _unique_keys(self) -> "RequirementCatalog":
        keys = [item.key for item in self.requirements]
        duplicates = sorted({key for key in keys if keys.count(key) > 1})
        if duplicates:
            raise ValueError(f"Duplicate requirement keys: {', '.join(duplicates)}")
        return self

    @property
    def keys(self) -> list[str]:
        return [item.key for item in self.requirements]

    def __len__(self) -> int:
        return len(self.requirements)

    def contains(self, key: str) -> bool:
        return any(item.key == key for item in self.requirements)

    def get(self, key: str) -> RequirementDefinition | None:
        return next((item for item in self.requirements if item.key == key), None)

    def due_within(self, today: date, days: int) -> list[RequirementDefinition]:
        """Requirements due between today and today + days, inclusive."""
        return [
            item
            for item in self.requirements
            if item.due_date is not None and 0 <= (item.due_date - today).days <= days
        ]

    @classmethod
    def from_definitions(cls, definitions: list[dict]) -> "RequirementCatalog":
        items = TypeAdapter(list[RequirementDefinition]).validate_python(definitions)
        return cls(requirements=tuple(items))

    @classmethod
    def from_json_file(cls, path: str | Path) -> "RequirementCatalog":
        with open(path, encoding="utf-8") as f:
            return cls.from_definitions(json.load(f))


DEFAULT_REQUIREMENTS: list[dict] = [
    # Academic
    {
        "key": "enrollment_cert",
        "name": "Enrollment Certificate",
        "description": "Official certificate from the registrar confirming current enrollment status.",
        "group": "academic",
        "helpTip": "Request this from your school's registrar office. Usually ready within 2-3 business days.",
        "sampleUrl": "#",
        "dueDate": "2026-03-10",
    },
    {
        "key": "certificate_of_grades",
        "name": "Certificate of Grades",
        "description": "Official transcript or grade report for the most recent semester.",
        "group": "academic",
        "helpTip": "Must show all subjects for the current semester with your general weighted average.",
        "sampleUrl": "#",
        "dueDate": "2026-03-15",
    },
    # Financial
    {
        "key": "income_tax_return",
        "name": "Income Tax Return (ITR)",
        "description": "Parent or guardian's latest ITR or Certificate of No Income.",
        "group": "financial",
        "helpTip": "If your parent/guardian has no income, submit a notarized Certificate of No Income instead.",
        "sampleUrl": "#",
        "dueDate": "2026-03-20",
    },
    # Personal
    {
        "key": "barangay_certificate",
        "name": "Barangay Certificate",
        "description": "Certificate of residency from your local barangay hall.",
        "group": "personal",
        "helpTip": "Visit your barangay hall with a valid ID. The certificate is usually free or minimal cost.",
        "sampleUrl": "#",
        "dueDate": "2026-03-25",
    },
    {
        "key": "community_service_log",
        "name": "Community Service Log",
        "description": "Completed community service hours with supervisor sign-off.",
        "group": "personal",
        "helpTip": "Log at least 20 hours of community service. Each entry needs a supervisor signature.",
        "dueDate": "2026-04-01",
    },
    {
        "key": "id_photo",
        "name": "2x2 ID Photo",
        "description": "Recent 2x2 ID photo with white background.",
        "group": "personal",
        "helpTip": "Must be taken within the last 6 months. White background, formal attire.",
        "dueDate": "2026-03-10",
    },
    {
        "key": "birth_certificate",
        "name": "Birth Certificate (PSA)",
        "description": "PSA-issued birth certificate. Photocopy is acceptable.",
        "group": "personal",
        "helpTip": "Must be PSA-issued (not local civil registrar). Order online at PSA Serbilis if needed.",
        "dueDate": "2026-03-10",
    },
    {
        "key": "guardian_consent",
        "name": "Parent/Guardian Consent",
        "description": "Signed consent form from parent or legal guardian.",
        "group": "personal",
        "helpTip": "Download the consent form template, have it signed and notarized.",
        "sampleUrl": "#",
        "dueDate": "2026-03-30",
    },
]


@lru_cache
def get_requirement_catalog() -> RequirementCatalog:
    """
    Load the catalog once per process.

    Also used as a FastAPI dependency; tests override it with their own catalog.
    """
    if settings.requirement_catalog_path:
        logger.info(f"Loading requirement catalog from {settings.requirement_catalog_path}")
        return RequirementCatalog.from_json_file(settings.requirement_catalog_path)
    return RequirementCatalog.from_definitions(DEFAULT_REQUIREMENTS)
