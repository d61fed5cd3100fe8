"""initial scholarship schema

Revision ID: 3f1a9c2e7b10
Revises:
Create Date: 2026-09-28 09:00:00.000000

This migration creates:
1. applicants and scholarships (slot counters bounded by CHECK constraints)
2. applications with a partial unique index allowing one non-withdrawn
   application per (applicant, scholarship)
3. requirement_submissions, one row per (application, requirement key)
4. validations, the append-only audit log of staff decisions

Enum types store member NAMES, matching SQLAlchemy's default Enum mapping.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3f1a9c2e7b10"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

application_status_enum = postgresql.ENUM(
    "DRAFT",
    "SUBMITTED",
    "UNDER_REVIEW",
    "APPROVED",
    "REJECTED",
    "RETURNED",
    "WITHDRAWN",
    name="application_status",
    create_type=False,
)
submission_status_enum = postgresql.ENUM(
    "MISSING",
    "IN_PROGRESS",
    "PENDING",
    "APPROVED",
    "REJECTED",
    name="submission_status",
    create_type=False,
)
validation_action_enum = postgresql.ENUM(
    "APPROVED",
    "REJECTED",
    "RETURNED",
    "REQUESTED_INFO",
    name="validation_action",
    create_type=False,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
    ]


def upgrade() -> None:
    """Create the scholarship application schema."""
    bind = op.get_bind()
    application_status_enum.create(bind, checkfirst=True)
    submission_status_enum.create(bind, checkfirst=True)
    validation_action_enum.create(bind, checkfirst=True)

    op.create_table(
        "applicants",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("student_number", sa.String(length=50), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("contact_number", sa.String(length=20), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("gpa", sa.Numeric(4, 2), nullable=False),
        sa.Column("year_level", sa.Integer(), nullable=False),
        sa.Column("course", sa.String(length=200), nullable=True),
        sa.Column("college", sa.String(length=200), nullable=True),
        sa.Column("monthly_income", sa.Numeric(12, 2), nullable=False),
        sa.Column("household_size", sa.Integer(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("student_number"),
    )

    op.create_table(
        "scholarships",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("grantor", sa.String(length=200), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("min_gpa", sa.Numeric(4, 2), nullable=False),
        sa.Column("max_monthly_income", sa.Numeric(12, 2), nullable=True),
        sa.Column("max_year_level", sa.Integer(), nullable=True),
        sa.Column("application_open", sa.Date(), nullable=False),
        sa.Column("application_close", sa.Date(), nullable=False),
        sa.Column("slots_total", sa.Integer(), nullable=False),
        sa.Column("slots_available", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default="true", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("slots_available >= 0", name="ck_scholarships_slots_non_negative"),
        sa.CheckConstraint(
            "slots_available <= slots_total", name="ck_scholarships_slots_within_total"
        ),
        sa.CheckConstraint(
            "application_close >= application_open", name="ck_scholarships_window_order"
        ),
    )

    op.create_table(
        "applications",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("applicant_id", sa.Integer(), nullable=False),
        sa.Column("scholarship_id", sa.Integer(), nullable=False),
        sa.Column("status", application_status_enum, server_default="SUBMITTED", nullable=False),
        sa.Column("gpa_at_submission", sa.Numeric(4, 2), nullable=False),
        sa.Column("income_at_submission", sa.Numeric(12, 2), nullable=False),
        sa.Column("remarks", sa.Text(), nullable=True),
        sa.Column(
            "submitted_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.Column("slot_consumed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_reminder_sent_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["applicant_id"], ["applicants.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["scholarship_id"], ["scholarships.id"], ondelete="RESTRICT"),
    )
    op.create_index("ix_applications_status", "applications", ["status"])
    op.create_index("ix_applications_scholarship_id", "applications", ["scholarship_id"])
    op.create_index("ix_applications_applicant_id", "applications", ["applicant_id"])
    # One live application per pair; withdrawn rows don't count
    op.create_index(
        "uq_applications_active_pair",
        "applications",
        ["applicant_id", "scholarship_id"],
        unique=True,
        postgresql_where=sa.text("status <> 'WITHDRAWN'"),
    )

    op.create_table(
        "requirement_submissions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("application_id", sa.Integer(), nullable=False),
        sa.Column("requirement_key", sa.String(length=100), nullable=False),
        sa.Column("status", submission_status_enum, server_default="MISSING", nullable=False),
        sa.Column("progress", sa.Integer(), server_default="0", nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("file_url", sa.Text(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("validated_by", sa.Integer(), nullable=True),
        sa.Column("validated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("validator_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.UniqueConstraint(
            "application_id",
            "requirement_key",
            name="uq_requirement_submissions_application_key",
        ),
        sa.CheckConstraint(
            "progress >= 0 AND progress <= 100", name="ck_requirement_submissions_progress"
        ),
    )

    op.create_table(
        "validations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("application_id", sa.Integer(), nullable=False),
        sa.Column("validator_id", sa.Integer(), nullable=False),
        sa.Column("action", validation_action_enum, nullable=False),
        sa.Column("checklist", sa.JSON(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="RESTRICT"),
    )
    op.create_index("ix_validations_application_id", "validations", ["application_id"])


def downgrade() -> None:
    """Drop the scholarship application schema."""
    op.drop_index("ix_validations_application_id", table_name="validations")
    op.drop_table("validations")
    op.drop_table("requirement_submissions")
    op.drop_index("uq_applications_active_pair", table_name="applications")
    op.drop_index("ix_applications_applicant_id", table_name="applications")
    op.drop_index("ix_applications_scholarship_id", table_name="applications")
    op.drop_index("ix_applications_status", table_name="applications")
    op.drop_table("applications")
    op.drop_table("scholarships")
    op.drop_table("applicants")

    bind = op.get_bind()
    validation_action_enum.drop(bind, checkfirst=True)
    submission_status_enum.drop(bind, checkfirst=True)
    application_status_enum.drop(bind, checkfirst=True)
