"""
Concurrency tests for submission, slot consumption and document validation.

An in-memory stand-in plays the database: its writes are atomic the way a
single UPDATE or a unique index is, and every call yields to the event loop
so concurrent requests interleave. Validation flows run against the shared
ReadCommittedDatabase, where uncommitted writes stay invisible to other
sessions.
"""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from iskolar.core.exceptions import DuplicateApplicationError
from iskolar.modules.applications.lifecycle import LifecycleAction
from iskolar.modules.applications.models import ApplicationStatus
from iskolar.modules.applications.service import apply_transition, submit_application
from iskolar.modules.requirements.models import SubmissionStatus
from iskolar.modules.requirements.service import submit_requirement
from iskolar.modules.validation.service import ReviewAction, validate_one

SERVICE = "iskolar.modules.applications.service"
NOW = datetime(2026, 3, 1, 4, 0, tzinfo=UTC)


class FakeApplicationStore:
    """Applications table with the partial unique index and compare-and-set updates."""

    def __init__(self, make_application):
        self._make = make_application
        self.rows = {}
        self.slot_consumed = set()

    async def get_active_for_pair(self, db, applicant_id, scholarship_id):
        await asyncio.sleep(0)
        return next(
            (
                row
                for row in self.rows.values()
                if (row.applicant_id, row.scholarship_id) == (applicant_id, scholarship_id)
                and row.status != ApplicationStatus.WITHDRAWN
            ),
            None,
        )

    async def create(self, db, applicant_id, scholarship_id, **snapshot):
        await asyncio.sleep(0)
        if any(
            (row.applicant_id, row.scholarship_id) == (applicant_id, scholarship_id)
            and row.status != ApplicationStatus.WITHDRAWN
            for row in self.rows.values()
        ):
            raise IntegrityError("INSERT", {}, Exception("uq_applications_active_pair"))
        row = self._make(ApplicationStatus.SUBMITTED, id=len(self.rows) + 1)
        self.rows[row.id] = row
        return row

    async def transition_status(self, db, application_id, sources, target, remarks=None):
        await asyncio.sleep(0)
        row = self.rows[application_id]
        if row.status not in sources:
            return False
        row.status = target
        return True

    async def mark_slot_consumed(self, db, application_id):
        await asyncio.sleep(0)
        if application_id in self.slot_consumed:
            return False
        self.slot_consumed.add(application_id)
        return True


class FakeScholarshipStore:
    def __init__(self, slots_available):
        self.slots_available = slots_available
        self.decrement_calls = 0

    async def decrement_slots(self, db, scholarship_id):
        await asyncio.sleep(0)
        self.decrement_calls += 1
        if self.slots_available <= 0:
            return None
        self.slots_available -= 1
        return self.slots_available


@pytest.mark.asyncio
async def test_concurrent_duplicate_submissions_create_one_application(
    mock_db, sample_applicant, sample_scholarship, make_application
):
    store = FakeApplicationStore(make_application)

    with (
        patch(f"{SERVICE}.applicant_repository") as mock_applicants,
        patch(f"{SERVICE}.scholarship_repository") as mock_scholarships,
        patch(f"{SERVICE}.repository", store),
    ):
        mock_applicants.get_by_id = AsyncMock(return_value=sample_applicant)
        mock_scholarships.get_by_id = AsyncMock(return_value=sample_scholarship)

        results = await asyncio.gather(
            *[submit_application(mock_db, 1, 10, now=NOW) for _ in range(5)],
            return_exceptions=True,
        )

    created = [r for r in results if not isinstance(r, BaseException)]
    duplicates = [r for r in results if isinstance(r, DuplicateApplicationError)]
    assert len(created) == 1
    assert len(duplicates) == 4
    assert len(store.rows) == 1


@pytest.mark.asyncio
async def test_concurrent_approvals_never_drive_slots_negative(mock_db, make_application):
    store = FakeApplicationStore(make_application)
    for i in range(1, 6):
        store.rows[i] = make_application(ApplicationStatus.UNDER_REVIEW, id=i)
    scholarships = FakeScholarshipStore(slots_available=2)

    with (
        patch(f"{SERVICE}.repository", store),
        patch(f"{SERVICE}.scholarship_repository", scholarships),
    ):
        results = await asyncio.gather(
            *[
                apply_transition(mock_db, row, LifecycleAction.APPROVE)
                for row in list(store.rows.values())
            ]
        )

    assert results == [ApplicationStatus.APPROVED] * 5
    assert scholarships.slots_available == 0
    assert scholarships.decrement_calls == 5


@pytest.mark.asyncio
async def test_same_application_approved_twice_consumes_one_slot(mock_db, make_application):
    store = FakeApplicationStore(make_application)
    row = make_application(ApplicationStatus.SUBMITTED, id=1)
    store.rows[1] = row
    scholarships = FakeScholarshipStore(slots_available=10)

    with (
        patch(f"{SERVICE}.repository", store),
        patch(f"{SERVICE}.scholarship_repository", scholarships),
    ):
        first = await apply_transition(mock_db, row, LifecycleAction.AUTO_APPROVE)
        reopened = await apply_transition(mock_db, row, LifecycleAction.REOPEN_REVIEW)
        second = await apply_transition(mock_db, row, LifecycleAction.AUTO_APPROVE)

    assert first == second == ApplicationStatus.APPROVED
    assert reopened == ApplicationStatus.UNDER_REVIEW
    assert scholarships.slots_available == 9


def _two_left(database):
    database.seed_application(100, ApplicationStatus.UNDER_REVIEW)
    database.seed_submission(1, 100, "enrollment_cert", SubmissionStatus.APPROVED)
    database.seed_submission(2, 100, "grades", SubmissionStatus.PENDING)
    database.seed_submission(3, 100, "income_cert", SubmissionStatus.PENDING)


@pytest.mark.asyncio
async def test_uncommitted_verdicts_are_invisible_to_other_sessions(committed_db):
    _two_left(committed_db)
    first, second = committed_db.session(), committed_db.session()

    await committed_db.requirements.record_decision(first, 2, SubmissionStatus.APPROVED, validator_id=7)
    seen_before = await committed_db.requirements.statuses_for_application(second, 100)
    await first.commit()
    seen_after = await committed_db.requirements.statuses_for_application(second, 100)

    assert seen_before["grades"] == SubmissionStatus.PENDING
    assert seen_after["grades"] == SubmissionStatus.APPROVED


@pytest.mark.asyncio
async def test_concurrent_final_approvals_auto_approve_once(committed_db, small_catalog):
    """Two validators approve the last two documents at the same moment."""
    _two_left(committed_db)

    with committed_db.installed():
        results = await asyncio.gather(
            validate_one(committed_db.session(), 7, 2, ReviewAction.APPROVED, small_catalog),
            validate_one(committed_db.session(), 8, 3, ReviewAction.APPROVED, small_catalog),
        )

    assert sorted((r.completion.approved, r.completion.total) for r in results) == [(2, 3), (3, 3)]
    assert committed_db.transitions == [ApplicationStatus.APPROVED]
    assert committed_db.status_of(100) == ApplicationStatus.APPROVED
    assert committed_db.scholarships.scholarship.slots_available == 49
    assert committed_db.scholarships.decrement_calls == 1


@pytest.mark.asyncio
async def test_upload_waits_for_validation_of_same_application(committed_db, small_catalog):
    """An upload queued behind the final approval reopens review once that approval commits."""
    committed_db.seed_application(100, ApplicationStatus.UNDER_REVIEW)
    committed_db.seed_submission(1, 100, "enrollment_cert", SubmissionStatus.APPROVED)
    committed_db.seed_submission(2, 100, "grades", SubmissionStatus.APPROVED)
    committed_db.seed_submission(3, 100, "income_cert", SubmissionStatus.PENDING)

    with committed_db.installed():
        await asyncio.gather(
            validate_one(committed_db.session(), 7, 3, ReviewAction.APPROVED, small_catalog),
            submit_requirement(committed_db.session(), 1, "grades", small_catalog, file_name="grades-v2.pdf"),
        )

    assert committed_db.transitions == [ApplicationStatus.APPROVED, ApplicationStatus.UNDER_REVIEW]
    assert committed_db.status_of(100) == ApplicationStatus.UNDER_REVIEW
    assert committed_db.scholarships.decrement_calls == 1
