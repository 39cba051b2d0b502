"""
Database facade (db/engine.py, db/sqlite.py)

Tests connection handling, the statement-splitting executor and the
parameterized query helpers.
"""

import pytest

from paspages.db import Database, split_statements
from paspages.faults import DatabaseConnectionFault, QueryFault


# ============================================================================
# Statement splitting
# ============================================================================

class TestSplitStatements:

    def test_trims_and_drops_empty(self):
        sql = "  CREATE TABLE a (id INTEGER);\n\n ; CREATE TABLE b (id INTEGER);  "
        assert split_statements(sql) == [
            "CREATE TABLE a (id INTEGER)",
            "CREATE TABLE b (id INTEGER)",
        ]

    def test_empty_text(self):
        assert split_statements("") == []
        assert split_statements(" ;; ") == []


# ============================================================================
# Connection
# ============================================================================

class TestConnection:

    def test_rejects_non_sqlite_url(self):
        with pytest.raises(DatabaseConnectionFault):
            Database("postgresql://localhost/db")

    @pytest.mark.asyncio
    async def test_connect_disconnect(self):
        db = Database("sqlite:///:memory:")
        assert db.is_connected is False
        await db.connect()
        await db.connect()
        assert db.is_connected is True
        await db.disconnect()
        await db.disconnect()
        assert db.is_connected is False

    @pytest.mark.asyncio
    async def test_lazy_connect_on_first_query(self):
        db = Database("sqlite:///:memory:")
        try:
            assert await db.find_one("SELECT 1 AS one") == {"one": 1}
            assert db.is_connected
        finally:
            await db.disconnect()

    @pytest.mark.asyncio
    async def test_file_database(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'site.db'}"
        db = Database(url)
        try:
            await db.run("CREATE TABLE t (id INTEGER)")
            assert await db.table_exists("t")
            assert db.url == url
        finally:
            await db.disconnect()
        assert (tmp_path / "site.db").exists()


# ============================================================================
# Executor
# ============================================================================

class TestExecute:

    @pytest.mark.asyncio
    async def test_runs_every_statement(self, db):
        result = await db.execute(
            "CREATE TABLE a (id INTEGER); CREATE TABLE b (id INTEGER); "
            "INSERT INTO a (id) VALUES (1);"
        )
        assert result.success is True
        assert result.count == 3
        assert result.duration >= 0
        assert await db.table_exists("b")

    @pytest.mark.asyncio
    async def test_empty_batch(self, db):
        result = await db.execute("  ;  ")
        assert result.success is True
        assert result.count == 0

    @pytest.mark.asyncio
    async def test_failure_reported_not_raised(self, db):
        result = await db.execute(
            "CREATE TABLE a (id INTEGER); NOT VALID SQL; CREATE TABLE c (id INTEGER)"
        )
        assert result.success is False
        assert result.count == 1
        assert "syntax error" in result.error
        # Earlier statements stay applied, later ones never ran
        assert await db.table_exists("a")
        assert not await db.table_exists("c")


# ============================================================================
# Queries
# ============================================================================

class TestQueries:

    @pytest.mark.asyncio
    async def test_run_find_one_find_all(self, db):
        await db.run("CREATE TABLE posts (id INTEGER PRIMARY KEY, title TEXT)")
        first = await db.run("INSERT INTO posts (title) VALUES (?)", ["Hello"])
        await db.run("INSERT INTO posts (title) VALUES (?)", ["World"])
        assert first.changes == 1
        assert first.last_row_id == 1

        assert await db.find_one("SELECT title FROM posts WHERE id = ?", [1]) == {"title": "Hello"}
        assert await db.find_one("SELECT * FROM posts WHERE id = ?", [99]) is None
        rows = await db.find_all("SELECT title FROM posts ORDER BY id")
        assert rows == [{"title": "Hello"}, {"title": "World"}]

    @pytest.mark.asyncio
    async def test_missing_table_raises_query_fault(self, db):
        with pytest.raises(QueryFault) as exc_info:
            await db.find_one("SELECT * FROM core_settings")
        fault = exc_info.value
        assert fault.code == "QUERY_FAILED"
        assert "no such table" in fault.message
        assert fault.metadata["sql"] == "SELECT * FROM core_settings"

    @pytest.mark.asyncio
    async def test_run_raises_query_fault(self, db):
        with pytest.raises(QueryFault):
            await db.run("INSERT INTO nowhere VALUES (1)")
