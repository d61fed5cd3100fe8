"""
Applicant Models

Student profile data used for eligibility screening. The profile is owned by
an external user identity; applicants may edit their name and contact
details, while the academic and financial fields are maintained upstream.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from iskolar.core.database import Base


class Applicant(Base):
    """A student who can apply for scholarships."""

    __tablename__ = "applicants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity
    student_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    contact_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    date_of_birth: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Academic
    gpa: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)
    year_level: Mapped[int] = mapped_column(Integer, nullable=False)
    course: Mapped[str | None] = mapped_column(String(200), nullable=True)
    college: Mapped[str | None] = mapped_column(String(200), nullable=True)

    # Financial
    monthly_income: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    household_size: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
