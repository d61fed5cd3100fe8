"""
Eligibility Evaluation

Pure rule evaluation: no database access and no clock reads. The caller
passes in immutable snapshots and the current time.

Every rule is evaluated, so a failing applicant gets one reason per failed
criterion rather than only the first.
"""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, tzinfo
from decimal import Decimal
from typing import Any

CHECK_NAMES = ("gpa", "income", "year_level", "open_period", "slots_available")


@dataclass(frozen=True)
class ApplicantSnapshot:
    """The applicant values eligibility is judged on."""

    gpa: Decimal
    monthly_income: Decimal
    year_level: int

    @classmethod
    def from_model(cls, applicant: Any) -> "ApplicantSnapshot":
        return cls(
            gpa=Decimal(str(applicant.gpa)),
            monthly_income=Decimal(str(applicant.monthly_income)),
            year_level=int(applicant.year_level),
        )


@dataclass(frozen=True)
class ScholarshipTerms:
    """A scholarship's thresholds, window and remaining capacity."""

    min_gpa: Decimal
    max_monthly_income: Decimal | None
    max_year_level: int | None
    application_open: date
    application_close: date
    slots_available: int

    @classmethod
    def from_model(cls, scholarship: Any) -> "ScholarshipTerms":
        return cls(
            min_gpa=Decimal(str(scholarship.min_gpa)),
            max_monthly_income=(
                Decimal(str(scholarship.max_monthly_income))
                if scholarship.max_monthly_income is not None
                else None
            ),
            max_year_level=scholarship.max_year_level,
            application_open=scholarship.application_open,
            application_close=scholarship.application_close,
            slots_available=int(scholarship.slots_available),
        )


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reasons: list[str] = field(default_factory=list)
    checks: dict[str, bool] = field(default_factory=dict)

    @property
    def failed_checks(self) -> list[str]:
        return [name for name in CHECK_NAMES if not self.checks.get(name, False)]


def _peso(amount: Decimal) -> str:
    return f"₱{amount:,.2f}"


def window_bounds(open_date: date, close_date: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """
    The application window as aware datetimes.

    Opens at midnight of open_date and stays open through 23:59:59.999 of
    close_date, both in the given timezone.
    """
    start = datetime.combine(open_date, time.min, tzinfo=tz)
    end = datetime.combine(close_date, time(23, 59, 59, 999000), tzinfo=tz)
    return start, end


def evaluate(
    applicant: ApplicantSnapshot,
    scholarship: ScholarshipTerms,
    now: datetime,
    tz: tzinfo = UTC,
) -> EligibilityResult:
    """
    Check an applicant against a scholarship.

    Args:
        applicant: Snapshot of the applicant's profile
        scholarship: The scholarship's terms
        now: Current time. A naive value is read as wall time in tz
        tz: Timezone the calendar dates of the window are expressed in

    Returns:
        EligibilityResult with one reason per failing rule
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=tz)

    reasons: list[str] = []

    gpa_ok = applicant.gpa >= scholarship.min_gpa
    if not gpa_ok:
        reasons.append(
            f"GPA {applicant.gpa:.2f} is below the required minimum of {scholarship.min_gpa:.2f}"
        )

    # No cap means any income qualifies
    income_ok = (
        scholarship.max_monthly_income is None
        or applicant.monthly_income <= scholarship.max_monthly_income
    )
    if not income_ok:
        reasons.append(
            f"Monthly family income {_peso(applicant.monthly_income)} exceeds the cap of "
            f"{_peso(scholarship.max_monthly_income)}"
        )

    year_ok = scholarship.max_year_level is None or applicant.year_level <= scholarship.max_year_level
    if not year_ok:
        reasons.append(
            f"Year level {applicant.year_level} exceeds the maximum allowed year level of "
            f"{scholarship.max_year_level}"
        )

    opens_at, closes_at = window_bounds(
        scholarship.application_open, scholarship.application_close, tz
    )
    period_ok = opens_at <= now <= closes_at
    if not period_ok:
        state = "not yet open" if now < opens_at else "already closed"
        reasons.append(f"Application period is {state}")

    slots_ok = scholarship.slots_available > 0
    if not slots_ok:
        reasons.append("No available slots remaining for this scholarship")

    checks = {
        "gpa": gpa_ok,
        "income": income_ok,
        "year_level": year_ok,
        "open_period": period_ok,
        "slots_available": slots_ok,
    }
    return EligibilityResult(eligible=all(checks.values()), reasons=reasons, checks=checks)
