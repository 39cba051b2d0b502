"""
PasPages DB Backend - SQLite adapter via aiosqlite.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

import aiosqlite

logger = logging.getLogger("paspages.db.sqlite")

__all__ = ["SQLiteAdapter"]


class SQLiteAdapter:
    """
    SQLite adapter using aiosqlite.

    Every statement is committed as soon as it runs; there is no transaction
    spanning several statements.
    """

    def __init__(self):
        self._connection: Optional[aiosqlite.Connection] = None
        self._connected = False
        self._lock = asyncio.Lock()

    async def connect(self, url: str) -> None:
        if self._connected:
            return
        async with self._lock:
            if self._connected:
                return
            db_path = self._parse_url(url)
            self._connection = await aiosqlite.connect(db_path)
            if db_path != ":memory:":
                await self._connection.execute("PRAGMA journal_mode=WAL")
            self._connection.row_factory = aiosqlite.Row
            self._connected = True
            logger.info(f"SQLite connected: {db_path}")

    async def disconnect(self) -> None:
        if not self._connected:
            return
        async with self._lock:
            if self._connection:
                await self._connection.close()
                self._connection = None
            self._connected = False
            logger.info("SQLite disconnected")

    async def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        if not self._connected:
            raise RuntimeError("Not connected")
        cursor = await self._connection.execute(sql, params or [])
        await self._connection.commit()
        return cursor

    async def fetch_all(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        if not self._connected:
            raise RuntimeError("Not connected")
        cursor = await self._connection.execute(sql, params or [])
        rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    async def fetch_one(self, sql: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        if not self._connected:
            raise RuntimeError("Not connected")
        cursor = await self._connection.execute(sql, params or [])
        row = await cursor.fetchone()
        if row is None:
            return None
        return dict(row)

    async def table_exists(self, table_name: str) -> bool:
        row = await self.fetch_one(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            [table_name],
        )
        return row is not None

    @property
    def is_connected(self) -> bool:
        return self._connected

    @staticmethod
    def _parse_url(url: str) -> str:
        """Extract file path from sqlite URL."""
        for prefix in ("sqlite:///", "sqlite://"):
            if url.startswith(prefix):
                path = url[len(prefix):]
                return path or ":memory:"
        return url.replace("sqlite:", "").lstrip("/") or ":memory:"
