"""SQLite-backed key-value store for named JSON records.

Each record is a name (e.g. ``cmd_lists``) mapped to one JSON object.
Callers fetch a record, mutate its ``data`` dict in place, and commit
it back. Blocking sqlite calls run in a worker thread.
"""

import asyncio
import json
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import structlog

from .exceptions import DatabaseError

logger = structlog.get_logger("cmdgate.database")


@dataclass
class DatabaseRecord:
    """A fetched record.

    ``data`` is None when the store could not be read; callers treat
    that as "no data", not as an empty record.
    """
    name: str
    data: Optional[dict]


class DatabaseSystem:
    """Manages the SQLite connection and record operations."""

    def __init__(self, db_path: Path):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    async def initialize(self) -> None:
        """Open the database and create the schema."""
        await asyncio.to_thread(self._initialize_sync)

    def _initialize_sync(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS databases (
                name TEXT PRIMARY KEY,
                data TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)
        self._conn.commit()
        logger.info("database_initialized", path=str(self.db_path))

    async def close(self) -> None:
        if self._conn is not None:
            await asyncio.to_thread(self._conn.close)
            self._conn = None

    # ========== Record Operations ==========

    async def get_database(self, name: str) -> DatabaseRecord:
        """Fetch a named record.

        A name never committed reads as ``{}``. An unopened or failing
        store reads as ``data=None`` and the failure is logged.
        """
        try:
            data = await asyncio.to_thread(self._read_sync, name)
        except DatabaseError as e:
            logger.error("database_read_failed", record=name, error=str(e))
            return DatabaseRecord(name=name, data=None)
        return DatabaseRecord(name=name, data=data)

    def _read_sync(self, name: str) -> dict:
        if self._conn is None:
            raise DatabaseError("Database not initialized", operation="read", table=name)
        try:
            row = self._conn.execute(
                "SELECT data FROM databases WHERE name = ?", (name,)
            ).fetchone()
        except sqlite3.Error as e:
            raise DatabaseError(str(e), operation="read", table=name) from e
        if row is None:
            return {}
        try:
            data = json.loads(row["data"])
        except json.JSONDecodeError as e:
            raise DatabaseError("Stored record is not valid JSON", operation="read", table=name) from e
        if not isinstance(data, dict):
            raise DatabaseError("Stored record is not an object", operation="read", table=name)
        return data

    async def commit(self, record: DatabaseRecord) -> None:
        """Persist a record's data, replacing what was stored under its name."""
        if record.data is None:
            raise DatabaseError("Cannot commit a record without data", operation="commit", table=record.name)
        try:
            await asyncio.to_thread(self._write_sync, record.name, record.data)
        except DatabaseError as e:
            logger.error("database_commit_failed", record=record.name, error=str(e))
            raise
        logger.debug("database_committed", record=record.name)

    def _write_sync(self, name: str, data: dict) -> None:
        if self._conn is None:
            raise DatabaseError("Database not initialized", operation="commit", table=name)
        try:
            self._conn.execute(
                """
                INSERT INTO databases (name, data, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(name) DO UPDATE SET
                    data = excluded.data,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (name, json.dumps(data)),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise DatabaseError(str(e), operation="commit", table=name) from e
