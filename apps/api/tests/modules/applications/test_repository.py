"""
Unit tests for the applications and scholarships repositories.

The statements that guard concurrency are compiled for PostgreSQL and
checked for their guard clauses; execution is against a mock session.
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from iskolar.modules.applications import repository
from iskolar.modules.applications.models import ApplicationStatus
from iskolar.modules.scholarships import repository as scholarship_repository


def _compile(stmt):
    return stmt.compile(dialect=postgresql.dialect())


class TestTransitionStatement:
    """The status change is a compare-and-set, never read-then-write."""

    def test_guards_on_id_and_source_statuses(self):
        compiled = _compile(
            repository.build_transition_statement(
                7,
                [ApplicationStatus.SUBMITTED, ApplicationStatus.RETURNED],
                ApplicationStatus.UNDER_REVIEW,
            )
        )
        sql = str(compiled)

        assert sql.startswith("UPDATE applications SET status=")
        assert "WHERE applications.id = " in sql
        assert "applications.status IN" in sql
        assert "remarks" not in sql
        assert 7 in compiled.params.values()

    def test_remarks_written_when_given(self):
        sql = str(
            _compile(
                repository.build_transition_statement(
                    7, [ApplicationStatus.UNDER_REVIEW], ApplicationStatus.APPROVED, "Looks good"
                )
            )
        )

        assert "remarks=" in sql

    @pytest.mark.asyncio
    async def test_transition_status_reports_rowcount(self, mock_db):
        mock_db.execute.return_value = MagicMock(rowcount=1)
        assert await repository.transition_status(
            mock_db, 7, [ApplicationStatus.UNDER_REVIEW], ApplicationStatus.APPROVED
        )

        mock_db.execute.return_value = MagicMock(rowcount=0)
        assert not await repository.transition_status(
            mock_db, 7, [ApplicationStatus.UNDER_REVIEW], ApplicationStatus.APPROVED
        )


class TestLockStatement:
    def test_selects_one_row_for_update(self):
        sql = str(_compile(repository.build_lock_statement(7)))

        assert sql.startswith("SELECT applications.")
        assert "WHERE applications.id = " in sql
        assert sql.endswith("FOR UPDATE")

    @pytest.mark.asyncio
    async def test_get_for_update_executes_lock(self, mock_db, make_application):
        application = make_application()
        mock_db.execute.return_value = MagicMock(
            scalar_one_or_none=MagicMock(return_value=application)
        )

        assert await repository.get_for_update(mock_db, 100) is application

        sql = str(_compile(mock_db.execute.call_args.args[0]))
        assert sql.endswith("FOR UPDATE")
        mock_db.commit.assert_not_called()


class TestSlotStatements:
    """Slots are decremented by one guarded UPDATE."""

    def test_decrement_has_floor_guard_and_returning(self):
        sql = str(_compile(scholarship_repository.build_decrement_slots_statement(3)))

        assert "slots_available=(scholarships.slots_available - " in sql
        assert "scholarships.slots_available > " in sql
        assert sql.endswith("RETURNING scholarships.slots_available")

    @pytest.mark.asyncio
    async def test_decrement_returns_remaining(self, mock_db):
        mock_db.execute.return_value = MagicMock(scalar_one_or_none=MagicMock(return_value=4))

        assert await scholarship_repository.decrement_slots(mock_db, 3) == 4

    @pytest.mark.asyncio
    async def test_decrement_at_floor_returns_none(self, mock_db):
        mock_db.execute.return_value = MagicMock(scalar_one_or_none=MagicMock(return_value=None))

        assert await scholarship_repository.decrement_slots(mock_db, 3) is None

    @pytest.mark.asyncio
    async def test_mark_slot_consumed_only_once(self, mock_db):
        mock_db.execute.return_value = MagicMock(rowcount=1)
        assert await repository.mark_slot_consumed(mock_db, 7) is True

        mock_db.execute.return_value = MagicMock(rowcount=0)
        assert await repository.mark_slot_consumed(mock_db, 7) is False

        sql = str(_compile(mock_db.execute.call_args.args[0]))
        assert "applications.slot_consumed_at IS NULL" in sql


class TestValidationRecords:
    @pytest.mark.asyncio
    async def test_add_validation_record_flushes_without_commit(self, mock_db):
        from iskolar.modules.applications.models import ValidationAction

        record = await repository.add_validation_record(
            mock_db,
            application_id=7,
            validator_id=2,
            action=ValidationAction.RETURNED,
            notes="Blurry scan",
        )

        assert record.application_id == 7
        assert record.action == ValidationAction.RETURNED
        mock_db.add.assert_called_once_with(record)
        mock_db.flush.assert_awaited_once()
        mock_db.commit.assert_not_called()
