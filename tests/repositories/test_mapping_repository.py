"""Tests for the mapping repository."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event

from hashurl.models.mapping import URLMapping, URLMappingCreate
from hashurl.repositories.base import DuplicateEntityError
from hashurl.repositories.mapping_repository import MappingRepository
from tests.utils import create_test_mapping, random_url


@pytest.mark.repository
class TestMappingRepository:
    """Tests for the mapping repository."""

    @pytest.fixture
    def repository(self):
        """Return a mapping repository instance."""
        return MappingRepository()

    @pytest.mark.asyncio
    async def test_save_assigns_id(self, test_db, repository):
        url = random_url()
        mapping = await repository.save(test_db, URLMapping(code="abc123", long_url=url))
        await test_db.commit()

        assert mapping.id is not None
        assert mapping.code == "abc123"
        assert mapping.long_url == url
        assert mapping.click_count == 0
        assert mapping.is_active is True

    @pytest.mark.asyncio
    async def test_save_duplicate_code(self, test_db, repository):
        await create_test_mapping(test_db, code="dupdup")

        with pytest.raises(DuplicateEntityError) as excinfo:
            await repository.save(test_db, URLMapping(code="dupdup", long_url=random_url()))

        assert excinfo.value.field_name == "code"
        assert "dupdup" in str(excinfo.value)
        await test_db.rollback()

    @pytest.mark.asyncio
    async def test_create_from_schema(self, test_db, repository):
        mapping = await repository.create(
            test_db, URLMappingCreate(code="schema", long_url="https://example.com/schema")
        )
        await test_db.commit()

        assert mapping.id is not None
        assert await repository.get_by_id(test_db, mapping.id) is not None

    @pytest.mark.asyncio
    async def test_find_by_code(self, test_db, repository):
        created = await create_test_mapping(test_db, code="find01", is_active=False)

        found = await repository.find_by_code(test_db, "find01")

        assert found is not None
        assert found.id == created.id
        assert await repository.find_by_code(test_db, "nope00") is None

    @pytest.mark.asyncio
    async def test_find_active_by_code_filters_inactive_and_expired(self, test_db, repository):
        now = datetime.now(timezone.utc)
        await create_test_mapping(test_db, code="active")
        await create_test_mapping(test_db, code="future", expires_at=now + timedelta(days=1))
        await create_test_mapping(test_db, code="gone00", is_active=False)
        await create_test_mapping(test_db, code="past00", expires_at=now - timedelta(seconds=1))

        assert await repository.find_active_by_code(test_db, "active") is not None
        assert await repository.find_active_by_code(test_db, "future") is not None
        assert await repository.find_active_by_code(test_db, "gone00") is None
        assert await repository.find_active_by_code(test_db, "past00") is None

    @pytest.mark.asyncio
    async def test_exists_by_code_includes_inactive(self, test_db, repository):
        await create_test_mapping(test_db, code="taken0", is_active=False)

        assert await repository.exists_by_code(test_db, "taken0") is True
        assert await repository.exists_by_code(test_db, "free00") is False

    @pytest.mark.asyncio
    async def test_increment_click_count(self, test_db, repository):
        await create_test_mapping(test_db, code="click0", click_count=5)

        assert await repository.increment_click_count(test_db, "click0") == 6
        assert await repository.increment_click_count(test_db, "click0") == 7
        await test_db.commit()

        mapping = await repository.find_by_code(test_db, "click0")
        assert mapping.click_count == 7

    @pytest.mark.asyncio
    async def test_increment_unknown_code(self, test_db, repository):
        assert await repository.increment_click_count(test_db, "ghost0") is None

    @pytest.mark.asyncio
    async def test_increments_from_separate_transactions_accumulate(self, transaction_factory, test_db, repository):
        """The increment is computed in SQL, so no transaction overwrites another."""
        await create_test_mapping(test_db, code="race00")

        for _ in range(20):
            async with transaction_factory() as db:
                await repository.increment_click_count(db, "race00")

        mapping = await repository.find_by_code(test_db, "race00")
        assert mapping.click_count == 20

    @pytest.mark.asyncio
    async def test_increment_ignores_stale_snapshot(self, test_engine, session_maker, test_db, repository):
        """A session holding an old read still adds to the committed count."""
        await create_test_mapping(test_db, code="stale0")
        statements = []

        def record(conn, cursor, statement, parameters, context, executemany):
            statements.append(statement)

        event.listen(test_engine.sync_engine, "before_cursor_execute", record)
        try:
            async with session_maker() as session_a:
                snapshot = await repository.find_by_code(session_a, "stale0")
                assert snapshot.click_count == 0

                async with session_maker() as session_b:
                    assert await repository.increment_click_count(session_b, "stale0") == 1
                    await session_b.commit()

                assert snapshot.click_count == 0
                assert await repository.increment_click_count(session_a, "stale0") == 2
                await session_a.commit()
        finally:
            event.remove(test_engine.sync_engine, "before_cursor_execute", record)

        async with session_maker() as fresh:
            assert (await repository.find_by_code(fresh, "stale0")).click_count == 2

        updates = [s for s in statements if s.lstrip().upper().startswith("UPDATE")]
        assert len(updates) == 2
        for statement in updates:
            assert "SET click_count=" in statement
            assert "urls.click_count + ?" in statement
            assert "RETURNING" in statement

    @pytest.mark.asyncio
    async def test_deactivate(self, test_db, repository):
        await create_test_mapping(test_db, code="deact0")

        assert await repository.deactivate(test_db, "deact0") is True
        await test_db.commit()
        # A second deactivation finds no active mapping
        assert await repository.deactivate(test_db, "deact0") is False
        assert await repository.deactivate(test_db, "ghost0") is False

        mapping = await repository.find_by_code(test_db, "deact0")
        assert mapping.is_active is False

    @pytest.mark.asyncio
    async def test_deactivate_expired(self, test_db, repository):
        now = datetime.now(timezone.utc)
        await create_test_mapping(test_db, code="old001", expires_at=now - timedelta(hours=1))
        await create_test_mapping(test_db, code="old002", expires_at=now - timedelta(minutes=1))
        await create_test_mapping(test_db, code="new001", expires_at=now + timedelta(hours=1))
        await create_test_mapping(test_db, code="never0")

        codes = await repository.deactivate_expired(test_db, now=now)
        await test_db.commit()

        assert sorted(codes) == ["old001", "old002"]
        # Rows are kept, only deactivated
        old = await repository.find_by_code(test_db, "old001")
        assert old is not None
        assert old.is_active is False
        assert (await repository.find_by_code(test_db, "new001")).is_active is True
        assert await repository.deactivate_expired(test_db, now=now) == []

    @pytest.mark.asyncio
    async def test_count_active(self, test_db, repository):
        now = datetime.now(timezone.utc)
        await create_test_mapping(test_db, code="cnt001")
        await create_test_mapping(test_db, code="cnt002", is_active=False)
        await create_test_mapping(test_db, code="cnt003", expires_at=now - timedelta(days=1))

        assert await repository.count_active(test_db) == 1
        assert await repository.count(test_db) == 3
