"""
Scholarships Repository

Database operations for scholarships, including the slot allocator.

The slot counter is only ever changed through decrement_slots(), a single
UPDATE that the database evaluates atomically. No read-then-write code path
exists for slots_available.
"""

from sqlalchemy import Update, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Scholarship


async def get_by_id(db: AsyncSession, id: int) -> Scholarship | None:
    """Get scholarship by ID."""
    return await db.get(Scholarship, id)


async def list_active(db: AsyncSession) -> list[Scholarship]:
    """List active scholarships, newest window first."""
    result = await db.execute(
        select(Scholarship)
        .where(Scholarship.is_active == True)  # noqa: E712
        .order_by(Scholarship.application_close.desc(), Scholarship.id)
    )
    return list(result.scalars().all())


def build_decrement_slots_statement(scholarship_id: int) -> Update:
    """
    UPDATE scholarships SET slots_available = slots_available - 1
    WHERE id = :id AND slots_available > 0 RETURNING slots_available
    """
    return (
        update(Scholarship)
        .where(Scholarship.id == scholarship_id, Scholarship.slots_available > 0)
        .values(slots_available=Scholarship.slots_available - 1)
        .returning(Scholarship.slots_available)
        .execution_options(synchronize_session=False)
    )


async def decrement_slots(db: AsyncSession, scholarship_id: int) -> int | None:
    """
    Consume one award slot.

    Returns:
        The remaining slot count, or None when the scholarship was already at
        zero (the counter is left at zero, never negative).
    """
    result = await db.execute(build_decrement_slots_statement(scholarship_id))
    return result.scalar_one_or_none()
