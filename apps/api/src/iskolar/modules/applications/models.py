"""
Application Models

Scholarship applications and the append-only validation audit log.

An application belongs to exactly one (applicant, scholarship) pair. At most
one non-withdrawn application may exist per pair; the partial unique index
below is the authoritative guard. Applications are never physically deleted.
"""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from iskolar.core.database import Base
from iskolar.modules.applicants.models import Applicant
from iskolar.modules.requirements.models import RequirementSubmission
from iskolar.modules.scholarships.models import Scholarship


class ApplicationStatus(str, enum.Enum):
    """Status of a scholarship application."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"
    WITHDRAWN = "withdrawn"


class ValidationAction(str, enum.Enum):
    """Staff decision recorded in the audit log."""

    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"
    REQUESTED_INFO = "requested_info"


class Application(Base):
    """A student's application for one scholarship."""

    __tablename__ = "applications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    applicant_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("applicants.id", ondelete="RESTRICT"), nullable=False
    )
    scholarship_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scholarships.id", ondelete="RESTRICT"), nullable=False
    )

    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status"),
        nullable=False,
        default=ApplicationStatus.SUBMITTED,
    )

    # Frozen at submission time, never updated from the live profile
    gpa_at_submission: Mapped[Decimal] = mapped_column(Numeric(4, 2), nullable=False)
    income_at_submission: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Set once, when the approval consumed a scholarship slot
    slot_consumed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Reminder tracking
    last_reminder_sent_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    applicant: Mapped[Applicant] = relationship(Applicant, lazy="raise")
    scholarship: Mapped[Scholarship] = relationship(Scholarship, lazy="raise")
    submissions: Mapped[list[RequirementSubmission]] = relationship(
        RequirementSubmission,
        back_populates="application",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_applications_status", "status"),
        Index("ix_applications_scholarship_id", "scholarship_id"),
        Index("ix_applications_applicant_id", "applicant_id"),
        Index(
            "uq_applications_active_pair",
            "applicant_id",
            "scholarship_id",
            unique=True,
            postgresql_where=text("status <> 'WITHDRAWN'"),
            sqlite_where=text("status <> 'WITHDRAWN'"),
        ),
    )


class ValidationRecord(Base):
    """
    Audit entry for a staff decision.

    Append-only: the repository exposes insert and read, nothing else.
    """

    __tablename__ = "validations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Referential only. validator_id points at an identity owned upstream
    application_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("applications.id", ondelete="RESTRICT"), nullable=False
    )
    validator_id: Mapped[int] = mapped_column(Integer, nullable=False)
    action: Mapped[ValidationAction] = mapped_column(
        Enum(ValidationAction, name="validation_action"), nullable=False
    )
    checklist: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_validations_application_id", "application_id"),)
