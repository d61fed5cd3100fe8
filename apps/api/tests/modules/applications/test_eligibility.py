"""
Unit tests for eligibility evaluation.

These tests cover:
- Every rule evaluated, one reason per failure
- Inclusive thresholds (GPA minimum, income cap, year level)
- Application window bounds in the scholarship timezone
- Slot availability
"""

from dataclasses import replace
from datetime import UTC, date, datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from iskolar.modules.applications.eligibility import (
    CHECK_NAMES,
    ApplicantSnapshot,
    ScholarshipTerms,
    evaluate,
    window_bounds,
)

MANILA = ZoneInfo("Asia/Manila")
MID_WINDOW = datetime(2026, 3, 1, 4, 0, tzinfo=UTC)


@pytest.fixture
def applicant():
    return ApplicantSnapshot(gpa=Decimal("1.82"), monthly_income=Decimal("15000"), year_level=3)


@pytest.fixture
def terms():
    return ScholarshipTerms(
        min_gpa=Decimal("1.50"),
        max_monthly_income=Decimal("25000"),
        max_year_level=4,
        application_open=date(2026, 1, 1),
        application_close=date(2026, 12, 31),
        slots_available=5,
    )


class TestEvaluate:
    """Tests for evaluate()."""

    def test_eligible_applicant_has_no_reasons(self, applicant, terms):
        result = evaluate(applicant, terms, MID_WINDOW, MANILA)

        assert result.eligible is True
        assert result.reasons == []
        assert result.failed_checks == []
        assert set(result.checks) == set(CHECK_NAMES)

    def test_every_failed_rule_is_reported(self, terms):
        """GPA, income and year level all fail: three reasons, not just the first."""
        applicant = ApplicantSnapshot(
            gpa=Decimal("1.20"), monthly_income=Decimal("30000"), year_level=5
        )

        result = evaluate(applicant, terms, MID_WINDOW, MANILA)

        assert result.eligible is False
        assert len(result.reasons) == 3
        assert result.failed_checks == ["gpa", "income", "year_level"]
        assert result.reasons[0] == "GPA 1.20 is below the required minimum of 1.50"
        assert result.reasons[1] == (
            "Monthly family income ₱30,000.00 exceeds the cap of ₱25,000.00"
        )
        assert result.reasons[2] == "Year level 5 exceeds the maximum allowed year level of 4"

    def test_low_gpa_high_income_closed_window(self, terms):
        applicant = ApplicantSnapshot(
            gpa=Decimal("1.0"), monthly_income=Decimal("40000"), year_level=2
        )
        closed = replace(
            terms,
            min_gpa=Decimal("2.0"),
            application_open=date(2025, 6, 1),
            application_close=date(2025, 12, 31),
        )

        result = evaluate(applicant, closed, MID_WINDOW, MANILA)

        assert result.eligible is False
        assert len(result.reasons) == 3
        assert result.failed_checks == ["gpa", "income", "open_period"]
        assert result.reasons[2] == "Application period is already closed"

    def test_thresholds_are_inclusive(self, terms):
        applicant = ApplicantSnapshot(
            gpa=Decimal("1.50"), monthly_income=Decimal("25000"), year_level=4
        )

        result = evaluate(applicant, terms, MID_WINDOW, MANILA)

        assert result.eligible is True

    def test_missing_caps_accept_any_value(self, terms):
        applicant = ApplicantSnapshot(
            gpa=Decimal("2.00"), monthly_income=Decimal("999999"), year_level=6
        )
        uncapped = replace(terms, max_monthly_income=None, max_year_level=None)

        result = evaluate(applicant, uncapped, MID_WINDOW, MANILA)

        assert result.checks["income"] is True
        assert result.checks["year_level"] is True

    def test_no_slots_fails(self, applicant, terms):
        result = evaluate(applicant, replace(terms, slots_available=0), MID_WINDOW, MANILA)

        assert result.eligible is False
        assert result.failed_checks == ["slots_available"]
        assert result.reasons == ["No available slots remaining for this scholarship"]

    def test_snapshot_from_model_coerces_to_decimal(self, sample_applicant, sample_scholarship):
        sample_applicant.gpa = 1.82
        snapshot = ApplicantSnapshot.from_model(sample_applicant)
        terms = ScholarshipTerms.from_model(sample_scholarship)

        assert snapshot.gpa == Decimal("1.82")
        assert terms.max_monthly_income == Decimal("25000.00")


class TestApplicationWindow:
    """The window runs from local midnight on open to 23:59:59.999 on close."""

    def test_window_bounds_in_timezone(self):
        start, end = window_bounds(date(2026, 1, 1), date(2026, 12, 31), MANILA)

        assert start == datetime(2026, 1, 1, 0, 0, tzinfo=MANILA)
        assert end == datetime(2026, 12, 31, 23, 59, 59, 999000, tzinfo=MANILA)

    @pytest.mark.parametrize(
        "now, is_open",
        [
            # 00:00 Manila on the open date
            (datetime(2025, 12, 31, 16, 0, tzinfo=UTC), True),
            (datetime(2025, 12, 31, 15, 59, 59, tzinfo=UTC), False),
            # 23:59:59.999 Manila on the close date
            (datetime(2026, 12, 31, 15, 59, 59, 999000, tzinfo=UTC), True),
            (datetime(2026, 12, 31, 16, 0, tzinfo=UTC), False),
        ],
    )
    def test_boundaries(self, applicant, terms, now, is_open):
        result = evaluate(applicant, terms, now, MANILA)

        assert result.checks["open_period"] is is_open

    def test_not_yet_open_reason(self, applicant, terms):
        result = evaluate(applicant, terms, datetime(2025, 6, 1, tzinfo=UTC), MANILA)

        assert result.reasons == ["Application period is not yet open"]

    def test_closed_reason(self, applicant, terms):
        result = evaluate(applicant, terms, datetime(2027, 1, 2, tzinfo=UTC), MANILA)

        assert result.reasons == ["Application period is already closed"]

    def test_naive_now_is_read_as_local_wall_time(self, applicant, terms):
        result = evaluate(applicant, terms, datetime(2026, 12, 31, 23, 0), MANILA)

        assert result.checks["open_period"] is True
