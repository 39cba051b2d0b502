"""
Migrator (migrator.py)

Tests ledger-based idempotency, outcome messages and sweep ordering.
"""

import pytest

from paspages.migrator import MIGRATION_TABLE, MigrationStatus, Migrator
from paspages.registry import SchemaRecord

PAGES_SQL = "CREATE TABLE static_pages (id INTEGER PRIMARY KEY, title TEXT)"


class TestApplyMigration:

    @pytest.mark.asyncio
    async def test_success_then_skip(self, db):
        migrator = Migrator(db)
        first = await migrator.apply_migration("pages-manager", "1.0.2", PAGES_SQL)
        second = await migrator.apply_migration("pages-manager", "1.0.2", PAGES_SQL)

        assert first.status is MigrationStatus.SUCCESS
        assert first.message.startswith("[SUCCESS] pages-manager v1.0.2 applied in ")
        assert first.message.endswith("ms")
        assert second.status is MigrationStatus.SKIP
        assert second.message == "[SKIP] pages-manager v1.0.2 is already applied."

        # Not re-executed: a second CREATE TABLE would have failed
        rows = await db.find_all(f'SELECT * FROM "{MIGRATION_TABLE}"')
        assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_new_version_applies(self, db):
        migrator = Migrator(db)
        await migrator.apply_migration("blog", "1.0.0", "CREATE TABLE a (id INTEGER)")
        outcome = await migrator.apply_migration("blog", "1.1.0", "CREATE TABLE b (id INTEGER)")
        assert outcome.status is MigrationStatus.SUCCESS
        assert [r["version"] for r in await migrator.get_applied()] == ["1.0.0", "1.1.0"]

    @pytest.mark.asyncio
    async def test_failed_sql_not_recorded(self, db):
        migrator = Migrator(db)
        outcome = await migrator.apply_migration("broken", "1.0.0", "CREATE TABLE (")
        assert outcome.status is MigrationStatus.ERROR
        assert outcome.message.startswith("[ERROR] SQL Execution failed for broken v1.0.0: ")
        assert not outcome.ok
        assert await migrator.is_applied("broken", "1.0.0") is False

    @pytest.mark.asyncio
    async def test_retry_after_failure(self, db):
        migrator = Migrator(db)
        await migrator.apply_migration("m", "1.0.0", "CREATE TABLE (")
        outcome = await migrator.apply_migration("m", "1.0.0", "CREATE TABLE m (id INTEGER)")
        assert outcome.status is MigrationStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_fatal_failure_caught(self, db):
        await db.run(f'CREATE TABLE "{MIGRATION_TABLE}" (slug TEXT)')
        outcome = await Migrator(db).apply_migration("x", "1.0.0", "SELECT 1")
        assert outcome.status is MigrationStatus.ERROR
        assert outcome.message.startswith("[ERROR] Fatal failure for x: ")

    @pytest.mark.asyncio
    async def test_outcome_str_is_message(self, db):
        outcome = await Migrator(db).apply_migration("s", "1", "SELECT 1")
        assert str(outcome) == outcome.message
        assert outcome.duration_ms >= 0


class TestSweep:

    @pytest.mark.asyncio
    async def test_sweep_in_order_and_continues_after_error(self, db):
        schemas = [
            SchemaRecord("a", "1.0.0", "CREATE TABLE a (id INTEGER)"),
            SchemaRecord("bad", "1.0.0", "CREATE TABLE ("),
            SchemaRecord("c", "1.0.0", "CREATE TABLE c (id INTEGER)"),
            SchemaRecord("a", "1.0.0", "CREATE TABLE a (id INTEGER)"),
        ]
        outcomes = await Migrator(db).sweep(schemas)
        assert [o.slug for o in outcomes] == ["a", "bad", "c", "a"]
        assert [o.status for o in outcomes] == [
            MigrationStatus.SUCCESS,
            MigrationStatus.ERROR,
            MigrationStatus.SUCCESS,
            MigrationStatus.SKIP,
        ]

    @pytest.mark.asyncio
    async def test_empty_sweep(self, db):
        assert await Migrator(db).sweep([]) == []
