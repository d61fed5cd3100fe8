"""
Applicants Repository

Database operations for applicant profiles. Functions flush or execute but
never commit; the calling service owns the transaction.
"""

from sqlalchemy import Update, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Applicant

# Columns an applicant may edit on their own profile
EDITABLE_COLUMNS = frozenset({"full_name", "contact_number", "address"})


async def get_by_id(db: AsyncSession, id: int) -> Applicant | None:
    """Get applicant by ID."""
    return await db.get(Applicant, id)


async def get_by_student_number(db: AsyncSession, student_number: str) -> Applicant | None:
    """Get applicant by student number."""
    result = await db.execute(select(Applicant).where(Applicant.student_number == student_number))
    return result.scalar_one_or_none()


def build_profile_update_statement(applicant_id: int, values: dict) -> Update:
    unknown = set(values) - EDITABLE_COLUMNS
    if unknown:
        raise ValueError(f"Not editable: {sorted(unknown)}")
    return (
        update(Applicant)
        .where(Applicant.id == applicant_id)
        .values(**values)
        .returning(Applicant)
    )


async def update_profile(db: AsyncSession, applicant_id: int, values: dict) -> Applicant | None:
    """Write the given editable columns. None if the applicant is gone."""
    result = await db.scalars(
        build_profile_update_statement(applicant_id, values),
        execution_options={"populate_existing": True},
    )
    return result.one_or_none()
