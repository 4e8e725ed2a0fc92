"""SQLite connection handling for the document store."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

# foreign_keys must be on for chunk and embedding cascades.
CONNECTION_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA foreign_keys=ON;",
)


class SQLiteDatabase:
    """Single shared connection to the documents database.

    Every task on the event loop uses the same connection; statements are
    short and each repository call commits before yielding control.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path).expanduser()
        self._connection: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        if self._connection is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(self.db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            for pragma in CONNECTION_PRAGMAS:
                conn.execute(pragma)
            self._connection = conn
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        return self.connect().execute(sql, params or [])

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
        return self.execute(sql, params).fetchall()

    def scalar(self, sql: str, params: Sequence[Any] | None = None) -> Any:
        """First column of the first row, or ``None``."""
        row = self.execute(sql, params).fetchone()
        return row[0] if row else None

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Cursor whose statements commit together, or roll back on error."""
        conn = self.connect()
        cursor = conn.cursor()
        try:
            yield cursor
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            cursor.close()

    def ensure_schema(self) -> None:
        self.connect().executescript(SCHEMA_PATH.read_text(encoding="utf-8"))


def iter_rows(cursor: sqlite3.Cursor) -> Iterator[sqlite3.Row]:
    """Yield rows from a cursor lazily."""
    while True:
        row = cursor.fetchone()
        if row is None:
            break
        yield row


__all__ = ["SQLiteDatabase", "iter_rows"]
