"""
Applicants Service Layer

The caller's own profile: what the portal shows on the "me" page, and the
handful of fields an applicant may change themselves.
"""

import logging
import re
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from iskolar.core.database import storage_guard
from iskolar.core.exceptions import NotFoundError
from iskolar.modules.applicants import repository
from iskolar.modules.applicants.models import Applicant
from iskolar.modules.applications import repository as application_repository
from iskolar.modules.applications.models import Application

logger = logging.getLogger(__name__)

MAX_TEXT_LENGTH = 2000

_TAGS = re.compile(r"<[^>]*>")
# Letters (accented included), digits, whitespace and common punctuation
_DISALLOWED = re.compile(r"[^\w\s.,;:\-()]")

# Weights sum to 100
COMPLETION_WEIGHTS = {
    "full_name": 20,
    "email": 15,
    "contact_number": 15,
    "address": 20,
    "gpa": 15,
    "course": 10,
    "college": 5,
}


def sanitize_text(value: str | None) -> str:
    """Strip markup and unusual symbols from free text, capped at MAX_TEXT_LENGTH."""
    if not isinstance(value, str):
        return ""
    cleaned = _DISALLOWED.sub("", _TAGS.sub("", value))
    return cleaned.strip()[:MAX_TEXT_LENGTH]


def split_name(full_name: str) -> tuple[str, str]:
    """First word, and the rest."""
    parts = full_name.split()
    if not parts:
        return "", ""
    return parts[0], " ".join(parts[1:])


def year_level_label(year_level: int) -> str:
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(year_level, "th")
    return f"{year_level}{suffix} Year"


def profile_completion(applicant: Applicant) -> int:
    """Percentage of the profile filled in, weighted by field."""
    filled = {
        "full_name": bool(applicant.full_name),
        "email": bool(applicant.email),
        "contact_number": bool(applicant.contact_number),
        "address": bool(applicant.address),
        "gpa": applicant.gpa is not None and applicant.gpa > 0,
        "course": bool(applicant.course),
        "college": bool(applicant.college),
    }
    return sum(weight for field, weight in COMPLETION_WEIGHTS.items() if filled[field])


@dataclass
class ApplicantProfile:
    applicant: Applicant
    applications: list[Application]

    @property
    def completion(self) -> int:
        return profile_completion(self.applicant)


async def get_profile(db: AsyncSession, applicant_id: int) -> ApplicantProfile:
    """
    The applicant's profile with every application they have made.

    Raises:
        NotFoundError: If the applicant doesn't exist
    """
    async with storage_guard(db, "load profile"):
        applicant = await repository.get_by_id(db, applicant_id)
        if applicant is None:
            raise NotFoundError("Applicant", applicant_id)

        applications = await application_repository.list_for_applicant(db, applicant_id)

    return ApplicantProfile(applicant=applicant, applications=applications)


async def update_profile(db: AsyncSession, applicant_id: int, changes: dict) -> Applicant:
    """
    Apply the applicant's own edits.

    Only keys present in changes are touched. first_name and last_name are
    merged into full_name, keeping whichever half was not given; when both
    come out empty the stored name is kept. An empty contact number or
    address clears the field.

    Args:
        changes: Any of first_name, last_name, contact_number, address

    Raises:
        NotFoundError: If the applicant doesn't exist
    """
    async with storage_guard(db, "update profile"):
        applicant = await repository.get_by_id(db, applicant_id)
        if applicant is None:
            raise NotFoundError("Applicant", applicant_id)

        values = {}
        if "first_name" in changes or "last_name" in changes:
            first, last = split_name(applicant.full_name)
            if "first_name" in changes:
                first = sanitize_text(changes["first_name"])
            if "last_name" in changes:
                last = sanitize_text(changes["last_name"])
            values["full_name"] = " ".join(part for part in (first, last) if part) or applicant.full_name

        if "contact_number" in changes:
            values["contact_number"] = (changes["contact_number"] or "").strip() or None

        if "address" in changes:
            values["address"] = sanitize_text(changes["address"]) or None

        if not values:
            return applicant

        updated = await repository.update_profile(db, applicant_id, values)
        if updated is None:
            raise NotFoundError("Applicant", applicant_id)
        await db.commit()

    logger.info(f"Applicant {applicant_id} updated profile fields {sorted(values)}")
    return updated
