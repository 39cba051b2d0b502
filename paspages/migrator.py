"""
PasPages Migrator - applies module schema text exactly once per (slug, version).

Applied pairs are recorded in the ``_migrations`` ledger table, which is
created lazily and never deleted. A failed application is not recorded, so it
is retried on the next sweep.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
import time
from typing import Iterable, List

from .db import Database
from .registry import SchemaRecord

logger = logging.getLogger("paspages.migrator")

MIGRATION_TABLE = "_migrations"


class MigrationStatus(str, Enum):
    SUCCESS = "SUCCESS"
    SKIP = "SKIP"
    ERROR = "ERROR"


@dataclass(frozen=True)
class MigrationOutcome:
    """Result of one ``apply_migration`` call."""

    status: MigrationStatus
    slug: str
    version: str
    message: str
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status is not MigrationStatus.ERROR

    def __str__(self) -> str:
        return self.message


class Migrator:
    """
    Applies and tracks module schemas against a Database.

    Usage:
        migrator = Migrator(db)
        outcome = await migrator.apply_migration("pages-manager", "1.0.0", sql)
        outcomes = await migrator.sweep(registry.get_schemas())
    """

    def __init__(self, db: Database):
        self.db = db

    async def ensure_tracking_table(self) -> None:
        """Create the ledger table if it doesn't exist."""
        await self.db.run(
            f"""
            CREATE TABLE IF NOT EXISTS "{MIGRATION_TABLE}" (
                "id" INTEGER PRIMARY KEY AUTOINCREMENT,
                "slug" TEXT NOT NULL,
                "version" TEXT NOT NULL,
                "applied_at" DATETIME DEFAULT CURRENT_TIMESTAMP,
                UNIQUE("slug", "version")
            )
            """
        )

    async def is_applied(self, slug: str, version: str) -> bool:
        row = await self.db.find_one(
            f'SELECT "id" FROM "{MIGRATION_TABLE}" WHERE "slug" = ? AND "version" = ?',
            [slug, version],
        )
        return row is not None

    async def get_applied(self) -> List[dict]:
        """Ledger rows in application order."""
        await self.ensure_tracking_table()
        return await self.db.find_all(
            f'SELECT "slug", "version", "applied_at" FROM "{MIGRATION_TABLE}" ORDER BY "id"'
        )

    async def apply_migration(self, slug: str, version: str, sql: str) -> MigrationOutcome:
        """
        Apply ``sql`` for ``(slug, version)`` unless the ledger already holds it.

        Never raises; every failure becomes an ERROR outcome.
        """
        try:
            await self.ensure_tracking_table()

            if await self.is_applied(slug, version):
                message = f"[SKIP] {slug} v{version} is already applied."
                logger.info(message)
                return MigrationOutcome(MigrationStatus.SKIP, slug, version, message)

            start = time.perf_counter()
            result = await self.db.execute(sql)
            if not result.success:
                message = f"[ERROR] SQL Execution failed for {slug} v{version}: {result.error}"
                logger.error(message)
                return MigrationOutcome(MigrationStatus.ERROR, slug, version, message)

            await self.db.run(
                f'INSERT INTO "{MIGRATION_TABLE}" ("slug", "version") VALUES (?, ?)',
                [slug, version],
            )
            duration = (time.perf_counter() - start) * 1000
            message = f"[SUCCESS] {slug} v{version} applied in {duration:.4f}ms"
            logger.info(message)
            return MigrationOutcome(MigrationStatus.SUCCESS, slug, version, message, duration)

        except Exception as exc:
            message = f"[ERROR] Fatal failure for {slug}: {exc}"
            logger.error(message, exc_info=True)
            return MigrationOutcome(MigrationStatus.ERROR, slug, version, message)

    async def sweep(self, schemas: Iterable[SchemaRecord]) -> List[MigrationOutcome]:
        """Apply every schema in order; earlier failures do not stop the sweep."""
        outcomes = []
        for record in schemas:
            outcomes.append(
                await self.apply_migration(record.slug, record.version, record.sql)
            )
        return outcomes
