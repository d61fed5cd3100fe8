"""
Requirement Submission Models

One row per (application, requirement key). A catalog key with no row is
implicitly "missing".
"""

import enum
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from iskolar.core.database import Base

if TYPE_CHECKING:
    from iskolar.modules.applications.models import Application


class SubmissionStatus(str, enum.Enum):
    """Review state of one requirement submission."""

    MISSING = "missing"
    IN_PROGRESS = "in_progress"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RequirementSubmission(Base):
    """An applicant's document for one requirement of one application."""

    __tablename__ = "requirement_submissions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    application_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    requirement_key: Mapped[str] = mapped_column(String(100), nullable=False)

    status: Mapped[SubmissionStatus] = mapped_column(
        Enum(SubmissionStatus, name="submission_status"),
        nullable=False,
        default=SubmissionStatus.MISSING,
    )
    progress: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Document reference handed over by the storage collaborator
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    uploaded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Validator metadata, cleared on every re-upload
    validated_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    validated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    validator_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    application: Mapped["Application"] = relationship(
        "Application", back_populates="submissions", lazy="raise"
    )

    __table_args__ = (
        UniqueConstraint(
            "application_id",
            "requirement_key",
            name="uq_requirement_submissions_application_key",
        ),
        CheckConstraint(
            "progress >= 0 AND progress <= 100", name="ck_requirement_submissions_progress"
        ),
    )
