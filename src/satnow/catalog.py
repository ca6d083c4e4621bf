"""Persistent catalog of element records keyed by NORAD number.

The rest of satnow depends only on the ``CatalogStore`` contract: upsert by
catalog number, full scan, and the status of the last operation.
``SQLiteCatalog`` is the one engine behind it.

Every statement is parameterized; record fields are never spliced into SQL.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Protocol

from .elements import ElementRecord
from .errors import CatalogError

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = "./.satnow.sql3"

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS tle (
    timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    norad INTEGER PRIMARY KEY,
    name TEXT,
    line1 TEXT,
    line2 TEXT
)
"""

_UPSERT = """
INSERT INTO tle (norad, name, line1, line2) VALUES (?, ?, ?, ?)
ON CONFLICT(norad) DO UPDATE SET
    timestamp = CURRENT_TIMESTAMP,
    name = excluded.name,
    line1 = excluded.line1,
    line2 = excluded.line2
"""

_SELECT_ALL = "SELECT name, line1, line2 FROM tle"


class CatalogStore(Protocol):
    """What satnow needs from a catalog backend."""

    def upsert(self, record: ElementRecord) -> None:
        """Insert ``record``, replacing any row with the same catalog number."""

    def fetch_all(self) -> list[ElementRecord]:
        """Return every stored record, in no particular order."""

    def ok(self) -> bool:
        """Whether the most recent operation succeeded."""

    def error_message(self) -> str:
        """Message from the most recent failure, or ``""``."""

    def close(self) -> None:
        ...


class SQLiteCatalog:
    """Catalog stored in a single SQLite table.

    Args:
        path: Database file (created if missing), or ``":memory:"``.

    Raises:
        CatalogError: If the database cannot be opened or initialized.
    """

    def __init__(self, path: str | Path = DEFAULT_DB_PATH):
        self.path = str(path)
        self._error = ""
        try:
            self._conn = sqlite3.connect(self.path)
            with self._conn:
                self._conn.execute(_CREATE_TABLE)
        except sqlite3.Error as e:
            raise CatalogError(f"Error opening database '{self.path}': {e}") from e
        logger.debug(f"Opened catalog {self.path}")

    def upsert(self, record: ElementRecord) -> None:
        """Insert or replace ``record`` in one transaction.

        Raises:
            CatalogError: If the write fails. Nothing is written in that case.
            ValueError: If the record has no parseable catalog number.
        """
        try:
            norad_id = record.catalog_id
        except ValueError as e:
            self._error = str(e)
            raise
        params = (norad_id, record.name or "", record.line1, record.line2)
        try:
            with self._conn:
                self._conn.execute(_UPSERT, params)
        except sqlite3.Error as e:
            self._error = str(e)
            raise CatalogError(
                f"Error storing {record.catalog_id} ({record.display_name}): {e}"
            ) from e
        self._error = ""

    def fetch_all(self) -> list[ElementRecord]:
        """Return every stored record.

        Raises:
            CatalogError: If the table cannot be read.
        """
        try:
            rows = self._conn.execute(_SELECT_ALL).fetchall()
        except sqlite3.Error as e:
            self._error = str(e)
            raise CatalogError(f"Error querying database: {e}") from e
        self._error = ""
        return [
            ElementRecord(name=name or None, line1=line1, line2=line2)
            for name, line1, line2 in rows
        ]

    def count(self) -> int:
        try:
            (n,) = self._conn.execute("SELECT COUNT(*) FROM tle").fetchone()
        except sqlite3.Error as e:
            self._error = str(e)
            raise CatalogError(f"Error querying database: {e}") from e
        self._error = ""
        return n

    def ok(self) -> bool:
        return not self._error

    def error_message(self) -> str:
        return self._error

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> SQLiteCatalog:
        return self

    def __exit__(self, *exc) -> None:
        self.close()
