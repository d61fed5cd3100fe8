"""
Seed Demo Data

Creates a demo applicant, a CHED scholarship and an application under review
so the requirement and staff review flows can be tried locally.
Safe to run more than once.

Usage:
    cd apps/api
    python scripts/seed_demo.py
"""

import asyncio
import sys
from datetime import UTC, date, datetime
from decimal import Decimal
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from iskolar.core.config import settings
from iskolar.modules.applicants import repository as applicant_repository
from iskolar.modules.applicants.models import Applicant
from iskolar.modules.applications.models import Application, ApplicationStatus
from iskolar.modules.requirements.models import RequirementSubmission
from iskolar.modules.scholarships.models import Scholarship

STUDENT_NUMBER = "2026-DEMO-001"
SCHOLARSHIP_NAME = "CHED Study Now Pay Later"


async def _get_or_create_applicant(db: AsyncSession) -> Applicant:
    applicant = await applicant_repository.get_by_student_number(db, STUDENT_NUMBER)
    if applicant:
        print(f"Demo applicant already exists: {STUDENT_NUMBER} (ID {applicant.id})")
        return applicant

    applicant = Applicant(
        student_number=STUDENT_NUMBER,
        full_name="Juan Dela Cruz",
        email="demo@iskolar.local",
        contact_number="+63 917 123 4567",
        date_of_birth=date(2004, 6, 15),
        gpa=Decimal("1.82"),
        year_level=3,
        course="Bachelor of Science in Information Technology",
        college="College of Computing",
        monthly_income=Decimal("15000.00"),
        household_size=4,
    )
    db.add(applicant)
    await db.flush()
    print(f"Demo applicant created: {applicant.full_name} (ID {applicant.id})")
    return applicant


async def _get_or_create_scholarship(db: AsyncSession) -> Scholarship:
    result = await db.execute(select(Scholarship).where(Scholarship.name == SCHOLARSHIP_NAME))
    scholarship = result.scalar_one_or_none()
    if scholarship:
        print(f"Scholarship already exists: {SCHOLARSHIP_NAME} (ID {scholarship.id})")
        return scholarship

    today = date.today()
    scholarship = Scholarship(
        name=SCHOLARSHIP_NAME,
        grantor="Commission on Higher Education",
        description="Tuition assistance for students from low-income households.",
        min_gpa=Decimal("1.50"),
        max_monthly_income=Decimal("25000.00"),
        max_year_level=4,
        application_open=date(today.year, 1, 1),
        application_close=date(today.year, 12, 31),
        slots_total=50,
        slots_available=50,
    )
    db.add(scholarship)
    await db.flush()
    print(f"Scholarship created: {scholarship.name} (ID {scholarship.id})")
    return scholarship


async def seed_demo() -> None:
    """Seed the demo applicant, scholarship and application."""
    engine = create_async_engine(settings.database_url, echo=False)
    async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as db:
        applicant = await _get_or_create_applicant(db)
        scholarship = await _get_or_create_scholarship(db)

        result = await db.execute(
            select(Application).where(
                Application.applicant_id == applicant.id,
                Application.scholarship_id == scholarship.id,
            )
        )
        application = result.scalar_one_or_none()
        if application is None:
            application = Application(
                applicant_id=applicant.id,
                scholarship_id=scholarship.id,
                status=ApplicationStatus.UNDER_REVIEW,
                gpa_at_submission=applicant.gpa,
                income_at_submission=applicant.monthly_income,
                submitted_at=datetime.now(UTC),
            )
            db.add(application)
            await db.flush()
            print(f"Application created (ID {application.id})")

        # Every requirement starts as missing
        await db.execute(
            delete(RequirementSubmission).where(
                RequirementSubmission.application_id == application.id
            )
        )
        await db.commit()
        print("Requirement submissions cleared, all requirements start as missing")

    await engine.dispose()

    print()
    print("Demo data seeded successfully!")
    print(f"  X-Applicant-Id: {applicant.id}")
    print(f"  Application ID: {application.id}")


if __name__ == "__main__":
    asyncio.run(seed_demo())
