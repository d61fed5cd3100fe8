"""
Shared fixtures for Iskolar API tests.

Models are MagicMock(spec=...) stand-ins and the database session is an
AsyncMock, so no database is needed to run the suite. Multi-step and
concurrent flows use ReadCommittedDatabase, an in-memory stand-in with
PostgreSQL's default isolation.
"""

import asyncio
import contextlib
from datetime import UTC, date, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import IntegrityError

from iskolar.modules.applicants.models import Applicant
from iskolar.modules.applications.models import Application, ApplicationStatus
from iskolar.modules.requirements.catalog import RequirementCatalog
from iskolar.modules.requirements.models import RequirementSubmission, SubmissionStatus
from iskolar.modules.scholarships.models import Scholarship


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.flush = AsyncMock()
    db.refresh = AsyncMock()
    db.get = AsyncMock()
    db.execute = AsyncMock()
    db.scalars = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def sample_applicant():
    """Juan, a third-year IT student well within the CHED thresholds."""
    applicant = MagicMock(spec=Applicant)
    applicant.id = 1
    applicant.student_number = "2026-DEMO-001"
    applicant.full_name = "Juan Dela Cruz"
    applicant.email = "demo@iskolar.local"
    applicant.contact_number = "+63 917 123 4567"
    applicant.address = None
    applicant.date_of_birth = date(2004, 6, 15)
    applicant.gpa = Decimal("1.82")
    applicant.year_level = 3
    applicant.course = "Bachelor of Science in Information Technology"
    applicant.college = "College of Computing"
    applicant.monthly_income = Decimal("15000.00")
    applicant.household_size = 4
    return applicant


@pytest.fixture
def sample_scholarship():
    scholarship = MagicMock(spec=Scholarship)
    scholarship.id = 10
    scholarship.name = "CHED Study Now Pay Later"
    scholarship.grantor = "Commission on Higher Education"
    scholarship.description = None
    scholarship.min_gpa = Decimal("1.50")
    scholarship.max_monthly_income = Decimal("25000.00")
    scholarship.max_year_level = 4
    scholarship.application_open = date(2026, 1, 1)
    scholarship.application_close = date(2026, 12, 31)
    scholarship.slots_total = 50
    scholarship.slots_available = 50
    scholarship.is_active = True
    return scholarship


@pytest.fixture
def make_application(sample_applicant, sample_scholarship):
    """Factory for application stand-ins in a given status."""

    def _make(status: ApplicationStatus = ApplicationStatus.SUBMITTED, id: int = 100):
        app = MagicMock(spec=Application)
        app.id = id
        app.applicant_id = sample_applicant.id
        app.scholarship_id = sample_scholarship.id
        app.status = status
        app.gpa_at_submission = sample_applicant.gpa
        app.income_at_submission = sample_applicant.monthly_income
        app.remarks = None
        app.submitted_at = datetime(2026, 3, 1, 8, 0, tzinfo=UTC)
        app.created_at = app.submitted_at
        app.updated_at = app.submitted_at
        app.slot_consumed_at = None
        app.last_reminder_sent_at = None
        app.applicant = sample_applicant
        app.scholarship = sample_scholarship
        return app

    return _make


@pytest.fixture
def small_catalog():
    """A three-item catalog keeps completion arithmetic readable."""
    return RequirementCatalog.from_definitions(
        [
            {"key": "enrollment_cert", "name": "Enrollment Certificate", "group": "academic"},
            {
                "key": "grades",
                "name": "Certified True Copy of Grades",
                "group": "academic",
                "dueDate": "2026-03-10",
            },
            {
                "key": "income_cert",
                "name": "Certificate of Indigency",
                "group": "financial",
                "dueDate": "2026-03-20",
            },
        ]
    )


@pytest.fixture
def client(mock_db):
    """TestClient over the full app with the database dependency overridden."""
    from fastapi.testclient import TestClient

    from iskolar.core.database import get_db
    from iskolar.main import app

    async def _get_db():
        yield mock_db

    app.dependency_overrides[get_db] = _get_db
    # Not entered as a context manager: lifespan (Redis, DB, scheduler) stays off
    yield TestClient(app)
    app.dependency_overrides.clear()



# ============================================
# In-memory database for multi-step flows
# ============================================


class FakeSession:
    """One transaction. Its writes stay private until commit."""

    def __init__(self, database: "ReadCommittedDatabase"):
        self.database = database
        self.pending: dict[tuple[str, int], dict] = {}
        self.held: list[asyncio.Lock] = []

    async def flush(self):
        await asyncio.sleep(0)

    async def commit(self):
        await asyncio.sleep(0)
        for (table, row_id), changes in self.pending.items():
            self.database.tables[table].setdefault(row_id, {}).update(changes)
        self._end()

    async def rollback(self):
        self._end()

    def _end(self):
        self.pending = {}
        for lock in self.held:
            lock.release()
        self.held = []

    async def lock(self, table: str, row_id: int):
        """Row lock held until commit or rollback, like FOR UPDATE or an UPDATE."""
        lock = self.database.locks.setdefault((table, row_id), asyncio.Lock())
        if lock not in self.held:
            await lock.acquire()
            self.held.append(lock)

    def read(self, table: str, row_id: int) -> dict | None:
        committed = self.database.tables[table].get(row_id)
        own = self.pending.get((table, row_id))
        if committed is None and own is None:
            return None
        return {**(committed or {}), **(own or {})}

    def write(self, table: str, row_id: int, **changes):
        self.pending.setdefault((table, row_id), {}).update(changes)

    def rows(self, table: str) -> dict[int, dict]:
        ids = set(self.database.tables[table]) | {i for t, i in self.pending if t == table}
        return {row_id: self.read(table, row_id) for row_id in sorted(ids)}


class FakeApplicationRepository:
    def __init__(self, database: "ReadCommittedDatabase"):
        self.database = database

    def _row(self, row_id: int, row: dict | None):
        if row is None:
            return None
        application = self.database.make_application(row["status"], id=row_id)
        application.applicant_id = row["applicant_id"]
        application.scholarship_id = row["scholarship_id"]
        return application

    async def get_by_id(self, db, id):
        await asyncio.sleep(0)
        return self._row(id, db.read("applications", id))

    async def get_for_update(self, db, id):
        await asyncio.sleep(0)
        await db.lock("applications", id)
        return self._row(id, db.read("applications", id))

    async def get_with_relations(self, db, id):
        # Relations are not modelled, so notifications are skipped
        await asyncio.sleep(0)
        return None

    async def get_active_for_pair(self, db, applicant_id, scholarship_id):
        await asyncio.sleep(0)
        for row_id, row in db.rows("applications").items():
            if (row["applicant_id"], row["scholarship_id"]) == (applicant_id, scholarship_id) and (
                row["status"] != ApplicationStatus.WITHDRAWN
            ):
                return self._row(row_id, row)
        return None

    async def get_latest_for_applicant(self, db, applicant_id):
        await asyncio.sleep(0)
        mine = {i: row for i, row in db.rows("applications").items() if row["applicant_id"] == applicant_id}
        if not mine:
            return None
        latest = max(mine)
        return self._row(latest, mine[latest])

    async def create(self, db, applicant_id, scholarship_id, **snapshot):
        await asyncio.sleep(0)
        if await self.get_active_for_pair(db, applicant_id, scholarship_id) is not None:
            raise IntegrityError("INSERT", {}, Exception("uq_applications_active_pair"))
        row_id = max(db.rows("applications"), default=0) + 1
        db.write(
            "applications",
            row_id,
            applicant_id=applicant_id,
            scholarship_id=scholarship_id,
            status=ApplicationStatus.SUBMITTED,
            slot_consumed=False,
        )
        return self._row(row_id, db.read("applications", row_id))

    async def list_paginated(self, db, offset, limit, status=None, scholarship_id=None, applicant_id=None):
        await asyncio.sleep(0)
        matching = [
            self._row(row_id, row)
            for row_id, row in db.rows("applications").items()
            if (status is None or row["status"] == status)
            and (scholarship_id is None or row["scholarship_id"] == scholarship_id)
            and (applicant_id is None or row["applicant_id"] == applicant_id)
        ]
        return matching[offset : offset + limit], len(matching)

    async def transition_status(self, db, application_id, sources, target, remarks=None):
        await asyncio.sleep(0)
        await db.lock("applications", application_id)
        if db.read("applications", application_id)["status"] not in sources:
            return False
        db.write("applications", application_id, status=target, remarks=remarks)
        self.database.transitions.append(target)
        return True

    async def mark_slot_consumed(self, db, application_id):
        await asyncio.sleep(0)
        await db.lock("applications", application_id)
        if db.read("applications", application_id).get("slot_consumed"):
            return False
        db.write("applications", application_id, slot_consumed=True)
        return True

    async def add_validation_record(self, db, application_id, validator_id, action, checklist=None, notes=None):
        await asyncio.sleep(0)
        row_id = max(db.rows("validation_records"), default=0) + 1
        db.write(
            "validation_records",
            row_id,
            application_id=application_id,
            validator_id=validator_id,
            action=action,
            notes=notes,
        )


class FakeRequirementRepository:
    def __init__(self, database: "ReadCommittedDatabase"):
        self.database = database

    @staticmethod
    def _row(row_id: int, row: dict):
        submission = MagicMock(spec=RequirementSubmission)
        submission.id = row_id
        submission.application_id = row["application_id"]
        submission.requirement_key = row["requirement_key"]
        submission.status = row["status"]
        submission.validated_by = row.get("validated_by")
        return submission

    async def get_application_id(self, db, submission_id):
        await asyncio.sleep(0)
        row = db.read("submissions", submission_id)
        return row["application_id"] if row else None

    async def statuses_for_application(self, db, application_id):
        await asyncio.sleep(0)
        return {
            row["requirement_key"]: row["status"]
            for row in db.rows("submissions").values()
            if row["application_id"] == application_id
        }

    async def upsert_submission(self, db, application_id, requirement_key, file_name, file_url, notes):
        await asyncio.sleep(0)
        existing = [
            row_id
            for row_id, row in db.rows("submissions").items()
            if (row["application_id"], row["requirement_key"]) == (application_id, requirement_key)
        ]
        row_id = existing[0] if existing else max(db.rows("submissions"), default=0) + 1
        await db.lock("submissions", row_id)
        db.write(
            "submissions",
            row_id,
            application_id=application_id,
            requirement_key=requirement_key,
            status=SubmissionStatus.PENDING,
            file_name=file_name,
            validated_by=None,
        )
        return self._row(row_id, db.read("submissions", row_id))

    async def record_decision(self, db, submission_id, status, validator_id, notes=None):
        await asyncio.sleep(0)
        if db.read("submissions", submission_id) is None:
            return None
        await db.lock("submissions", submission_id)
        db.write("submissions", submission_id, status=status, validated_by=validator_id)
        return self._row(submission_id, db.read("submissions", submission_id))

    async def bulk_record_decision(self, db, application_id, status, validator_id, notes=None):
        await asyncio.sleep(0)
        affected = 0
        for row_id, row in db.rows("submissions").items():
            if row["application_id"] == application_id and row["status"] == SubmissionStatus.PENDING:
                await db.lock("submissions", row_id)
                db.write("submissions", row_id, status=status, validated_by=validator_id)
                affected += 1
        return affected


class FakeScholarshipRepository:
    """Single scholarship whose slot counter is decremented atomically with a floor of zero."""

    def __init__(self, scholarship):
        self.scholarship = scholarship
        self.decrement_calls = 0

    async def get_by_id(self, db, id):
        await asyncio.sleep(0)
        return self.scholarship if id == self.scholarship.id else None

    async def decrement_slots(self, db, scholarship_id):
        await asyncio.sleep(0)
        self.decrement_calls += 1
        if self.scholarship.slots_available <= 0:
            return None
        self.scholarship.slots_available -= 1
        return self.scholarship.slots_available


class FakeApplicantRepository:
    def __init__(self, applicant):
        self.applicant = applicant

    async def get_by_id(self, db, id):
        await asyncio.sleep(0)
        return self.applicant if id == self.applicant.id else None


class ReadCommittedDatabase:
    """
    In-memory tables with READ COMMITTED visibility.

    Each session sees committed rows plus its own uncommitted writes. Row
    locks taken by FOR UPDATE or by an UPDATE are held until the session
    commits or rolls back, and every call yields to the event loop so
    concurrent requests interleave.
    """

    def __init__(self, make_application, applicant, scholarship):
        self.make_application = make_application
        self.tables: dict[str, dict[int, dict]] = {
            "applications": {},
            "submissions": {},
            "validation_records": {},
        }
        self.locks: dict[tuple[str, int], asyncio.Lock] = {}
        self.transitions: list[ApplicationStatus] = []
        self.applications = FakeApplicationRepository(self)
        self.requirements = FakeRequirementRepository(self)
        self.scholarships = FakeScholarshipRepository(scholarship)
        self.applicants = FakeApplicantRepository(applicant)

    def session(self) -> FakeSession:
        return FakeSession(self)

    def seed_application(self, row_id: int, status: ApplicationStatus):
        self.tables["applications"][row_id] = {
            "applicant_id": self.applicants.applicant.id,
            "scholarship_id": self.scholarships.scholarship.id,
            "status": status,
            "slot_consumed": False,
        }

    def seed_submission(self, row_id: int, application_id: int, key: str, status: SubmissionStatus):
        self.tables["submissions"][row_id] = {
            "application_id": application_id,
            "requirement_key": key,
            "status": status,
        }

    def status_of(self, application_id: int) -> ApplicationStatus:
        return self.tables["applications"][application_id]["status"]

    @contextlib.contextmanager
    def installed(self):
        """Route every service's repositories to this database."""
        with (
            patch("iskolar.modules.applications.service.repository", self.applications),
            patch("iskolar.modules.applications.service.applicant_repository", self.applicants),
            patch("iskolar.modules.applications.service.scholarship_repository", self.scholarships),
            patch("iskolar.modules.requirements.service.repository", self.requirements),
            patch("iskolar.modules.requirements.service.application_repository", self.applications),
            patch("iskolar.modules.validation.service.requirement_repository", self.requirements),
            patch("iskolar.modules.validation.service.application_repository", self.applications),
        ):
            yield self


@pytest.fixture
def committed_db(make_application, sample_applicant, sample_scholarship):
    return ReadCommittedDatabase(make_application, sample_applicant, sample_scholarship)
