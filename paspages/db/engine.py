"""
PasPages Database Engine - async facade over the backend adapter.

Provides:
- Database: lazily connected connection manager
- execute(): the statement-splitting executor used for schema text; it
  reports failures as values
- find_one/find_all/run: parameterized queries that raise QueryFault
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
import time
from typing import Any, Dict, List, Optional, Sequence

from ..faults import DatabaseConnectionFault, QueryFault
from .sqlite import SQLiteAdapter

logger = logging.getLogger("paspages.db")


@dataclass(frozen=True)
class ExecResult:
    """Outcome of a batch executed through ``Database.execute``."""

    count: int
    duration: float
    success: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class RunResult:
    """Outcome of a single write executed through ``Database.run``."""

    changes: int
    last_row_id: Optional[int]
    duration: float


def split_statements(sql: str) -> List[str]:
    """
    Split raw SQL text on ``;`` into trimmed, non-empty statements.

    The split is naive: a semicolon inside a string literal also splits.
    """
    return [part.strip() for part in (sql or "").split(";") if part.strip()]


class Database:
    """
    Async database engine for PasPages.

    Usage:
        db = Database("sqlite:///paspages.db")
        result = await db.execute("CREATE TABLE a (id INTEGER); CREATE TABLE b (id INTEGER)")
        row = await db.find_one("SELECT * FROM a WHERE id = ?", [1])
        await db.disconnect()
    """

    def __init__(self, url: str = "sqlite:///paspages.db"):
        if not url.startswith("sqlite"):
            raise DatabaseConnectionFault(
                url=url,
                reason=f"Unsupported database URL scheme: {url}",
            )
        self._url = url
        self._adapter = SQLiteAdapter()
        self._connected = False
        self._lock = asyncio.Lock()

    # ── Connection management ────────────────────────────────────────

    async def connect(self) -> None:
        """Open the database connection."""
        if self._connected:
            return
        async with self._lock:
            if self._connected:
                return
            try:
                await self._adapter.connect(self._url)
            except Exception as exc:
                raise DatabaseConnectionFault(url=self._url, reason=str(exc)) from exc
            self._connected = True
            logger.info("Database connected")

    async def disconnect(self) -> None:
        """Close the database connection."""
        if not self._connected:
            return
        async with self._lock:
            if not self._connected:
                return
            try:
                await self._adapter.disconnect()
            except Exception as exc:
                raise DatabaseConnectionFault(
                    url=self._url,
                    reason=f"Disconnect failed: {exc}",
                ) from exc
            finally:
                self._connected = False
            logger.info("Database disconnected")

    async def ensure_connected(self) -> None:
        """Ensure a live connection exists, reconnecting if needed."""
        if not self._connected:
            await self.connect()
        elif not self._adapter.is_connected:
            self._connected = False
            await self.connect()

    # ── Statement-splitting executor ─────────────────────────────────

    async def execute(self, sql: str) -> ExecResult:
        """
        Execute raw SQL text, possibly holding several statements.

        Statements run in order and each is committed as it runs; a failing
        statement stops the batch and earlier statements stay applied.

        Returns:
            ExecResult with the number of statements that ran. Failures are
            reported in ``success``/``error`` and never raised.
        """
        statements = split_statements(sql)
        start = time.perf_counter()
        if not statements:
            return ExecResult(count=0, duration=0.0, success=True)

        executed = 0
        try:
            await self.ensure_connected()
            for statement in statements:
                await self._adapter.execute(statement)
                executed += 1
        except Exception as exc:
            duration = (time.perf_counter() - start) * 1000
            logger.error(f"Batch failed at statement {executed + 1}/{len(statements)}: {exc}")
            return ExecResult(
                count=executed,
                duration=duration,
                success=False,
                error=str(exc),
            )

        duration = (time.perf_counter() - start) * 1000
        return ExecResult(count=executed, duration=duration, success=True)

    # ── Parameterized queries ────────────────────────────────────────

    async def find_one(
        self, query: str, params: Optional[Sequence[Any]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Execute query and return first row as dict, or None.

        Raises:
            QueryFault: When query execution fails
        """
        await self.ensure_connected()
        try:
            return await self._adapter.fetch_one(query, params or [])
        except Exception as exc:
            raise QueryFault(
                operation="find_one",
                reason=str(exc),
                metadata={"sql": query[:200]},
            ) from exc

    async def find_all(
        self, query: str, params: Optional[Sequence[Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Execute query and return all rows as dicts.

        Raises:
            QueryFault: When query execution fails
        """
        await self.ensure_connected()
        try:
            return await self._adapter.fetch_all(query, params or [])
        except Exception as exc:
            raise QueryFault(
                operation="find_all",
                reason=str(exc),
                metadata={"sql": query[:200]},
            ) from exc

    async def run(self, query: str, params: Optional[Sequence[Any]] = None) -> RunResult:
        """
        Execute a single write statement.

        Raises:
            QueryFault: When query execution fails
        """
        await self.ensure_connected()
        start = time.perf_counter()
        try:
            cursor = await self._adapter.execute(query, params or [])
        except Exception as exc:
            raise QueryFault(
                operation="run",
                reason=str(exc),
                metadata={"sql": query[:200]},
            ) from exc
        return RunResult(
            changes=cursor.rowcount,
            last_row_id=cursor.lastrowid,
            duration=(time.perf_counter() - start) * 1000,
        )

    async def table_exists(self, table_name: str) -> bool:
        """Check if a table exists in the database."""
        await self.ensure_connected()
        return await self._adapter.table_exists(table_name)

    # ── Properties ───────────────────────────────────────────────────

    @property
    def is_connected(self) -> bool:
        return self._connected and self._adapter.is_connected

    @property
    def url(self) -> str:
        return self._url
