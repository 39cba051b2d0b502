"""
PasPages Database - async persistence facade.

Provides:
- Database: lazily connected facade with a statement-splitting executor
- SQLiteAdapter: aiosqlite-backed adapter (the only shipped backend)
- Structured faults (DatabaseConnectionFault, QueryFault)
"""

from .engine import Database, ExecResult, RunResult, split_statements
from .sqlite import SQLiteAdapter

from ..faults import DatabaseConnectionFault, QueryFault

__all__ = [
    "Database",
    "ExecResult",
    "RunResult",
    "split_statements",
    "SQLiteAdapter",
    "DatabaseConnectionFault",
    "QueryFault",
]
