"""SQLite storage for raw layer text."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Any, Iterator, Sequence

from layer_atlas.models.entities import RawLayer

DEFAULT_PRAGMAS = (
    "PRAGMA journal_mode=WAL;",
    "PRAGMA synchronous=NORMAL;",
    "PRAGMA temp_store=MEMORY;",
)


class SQLiteDatabase:
    """Thin wrapper around sqlite3 providing pragmatic defaults."""

    def __init__(self, db_path: Path, read_only: bool = False) -> None:
        self.db_path = db_path.expanduser()
        self.read_only = read_only
        self._connection: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        if self._connection is None:
            if self.read_only:
                uri = f"file:{self.db_path}?mode=ro"
                self._connection = sqlite3.connect(uri, uri=True, check_same_thread=False)
            else:
                self.db_path.parent.mkdir(parents=True, exist_ok=True)
                self._connection = sqlite3.connect(self.db_path, check_same_thread=False)
            self._connection.row_factory = sqlite3.Row
            for pragma in DEFAULT_PRAGMAS:
                self._connection.execute(pragma)
        return self._connection

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def __enter__(self) -> "SQLiteDatabase":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def execute(self, sql: str, params: Sequence[Any] | None = None) -> sqlite3.Cursor:
        conn = self.connect()
        return conn.execute(sql, params or [])

    def query(self, sql: str, params: Sequence[Any] | None = None) -> list[sqlite3.Row]:
        cursor = self.execute(sql, params)
        return cursor.fetchall()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
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

    def ensure_schema(self, schema_sql: str | None = None) -> None:
        if schema_sql is None:
            schema_path = Path(__file__).with_name("schema.sql")
            schema_sql = schema_path.read_text(encoding="utf-8")
        self.connect().executescript(schema_sql)


class LayerStore:
    """Append-only access to the ``tl_layer`` table.

    Errors from sqlite3 propagate unchanged to the caller.
    """

    def __init__(self, database: SQLiteDatabase) -> None:
        self.db = database

    def ensure_schema(self) -> None:
        self.db.ensure_schema()

    def get_all(self) -> list[RawLayer]:
        rows = self.db.query("SELECT layer_id, layer, release_date FROM tl_layer ORDER BY layer_id")
        return [_row_to_layer(row) for row in rows]

    def get_ids(self) -> list[int]:
        rows = self.db.query("SELECT layer_id FROM tl_layer ORDER BY layer_id")
        return [int(row["layer_id"]) for row in rows]

    def add(self, layer: RawLayer) -> None:
        """Insert a new layer; re-adding an existing id raises ``sqlite3.IntegrityError``."""
        with self.db.transaction() as cursor:
            cursor.execute(
                "INSERT INTO tl_layer (layer_id, layer, release_date) VALUES (?, ?, ?)",
                [layer.layer_id, layer.text, layer.release_date.isoformat()],
            )


def _row_to_layer(row: sqlite3.Row) -> RawLayer:
    return RawLayer(
        layer_id=int(row["layer_id"]),
        release_date=date.fromisoformat(row["release_date"][:10]),
        text=row["layer"],
    )


__all__ = ["SQLiteDatabase", "LayerStore"]
