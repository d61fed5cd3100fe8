"""
Scholarships Service Layer
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from iskolar.core.database import storage_guard
from iskolar.modules.scholarships import repository
from iskolar.modules.scholarships.models import Scholarship

logger = logging.getLogger(__name__)


async def list_active_scholarships(db: AsyncSession) -> list[Scholarship]:
    """Scholarships currently accepting applications or listed for the cycle."""
    async with storage_guard(db, "list scholarships"):
        scholarships = await repository.list_active(db)
    logger.info(f"Listed {len(scholarships)} active scholarship(s)")
    return scholarships
