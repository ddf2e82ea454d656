"""Tests for the database handle and storage deadlines."""

import asyncio

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError

from payroll_settlement.database import Database, dialect_insert, with_deadline
from payroll_settlement.errors import StorageUnavailable
from payroll_settlement.models import Company


class TestWithDeadline:
    """Test conversion of storage hangs and outages."""

    async def test_returns_result(self):
        async def op():
            return 42

        assert await with_deadline(op(), timeout=1) == 42

    async def test_timeout_becomes_storage_unavailable(self):
        async def hang():
            await asyncio.sleep(5)

        with pytest.raises(StorageUnavailable) as exc_info:
            await with_deadline(hang(), timeout=0.01)

        assert exc_info.value.retryable is True
        assert "deadline" in str(exc_info.value)

    async def test_operational_error_becomes_storage_unavailable(self):
        async def op():
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        with pytest.raises(StorageUnavailable, match="database is locked"):
            await with_deadline(op(), timeout=1)

    async def test_integrity_error_propagates(self):
        async def op():
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))

        with pytest.raises(IntegrityError):
            await with_deadline(op(), timeout=1)


class TestDatabase:
    """Test the explicit database handle."""

    async def test_closed_handle_refuses_sessions(self, settings):
        database = Database(settings.database_url)

        with pytest.raises(RuntimeError):
            database.session_factory

    async def test_open_is_idempotent(self, settings):
        database = Database(settings.database_url).open()
        engine = database.engine
        try:
            assert database.open().engine is engine
            assert database.is_sqlite
        finally:
            await database.close()

    async def test_session_rolls_back_on_error(self, database, data):
        with pytest.raises(RuntimeError):
            async with database.session() as session:
                await session.execute(update(Company).values(name="Renamed"))
                raise RuntimeError("abort")

        async with database.session() as session:
            company = await session.get(Company, data.company_id)
        assert company.name != "Renamed"

    async def test_dialect_insert_for_sqlite(self, database):
        async with database.session() as session:
            stmt = dialect_insert(session, Company)

        assert hasattr(stmt, "on_conflict_do_nothing")
