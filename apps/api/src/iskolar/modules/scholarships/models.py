"""
Scholarship Models

A scholarship carries its eligibility thresholds, its application window and
its award capacity. Capacity is bounded by database CHECK constraints.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from iskolar.core.database import Base


class Scholarship(Base):
    """A scholarship program open for applications."""

    __tablename__ = "scholarships"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    grantor: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Eligibility thresholds
    min_gpa: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)
    max_monthly_income: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    max_year_level: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Application window (calendar dates, close date inclusive)
    application_open: Mapped[date] = mapped_column(Date, nullable=False)
    application_close: Mapped[date] = mapped_column(Date, nullable=False)

    # Award capacity
    slots_total: Mapped[int] = mapped_column(Integer, nullable=False)
    slots_available: Mapped[int] = mapped_column(Integer, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("slots_available >= 0", name="ck_scholarships_slots_non_negative"),
        CheckConstraint(
            "slots_available <= slots_total", name="ck_scholarships_slots_within_total"
        ),
        CheckConstraint(
            "application_close >= application_open", name="ck_scholarships_window_order"
        ),
    )
