"""SQLite document store."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional, List, Dict, Any, Tuple, Generator

from ..core.errors import PersistenceError, ConflictError, OpportunityNotFound, ValidationError
from .port import DocumentStore, deep_merge, with_version

logger = logging.getLogger(__name__)


class SQLiteDocumentStore(DocumentStore):
    """One row per document; the JSON body plus its version."""

    def __init__(self, db_path: Optional[Path] = None):
        """Initialize database connection."""
        if db_path is None:
            db_path = Path.home() / ".deal-pipeline" / "deals.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._init_db()

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Get a database connection with row factory."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=10)
        except sqlite3.Error as e:
            raise PersistenceError(f"Cannot open {self.db_path}: {e}", cause=e) from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise PersistenceError(f"Database error: {e}", cause=e) from e
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    path TEXT PRIMARY KEY,
                    data_json TEXT NOT NULL,
                    version INTEGER NOT NULL DEFAULT 1,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

    def _row_to_record(self, row: sqlite3.Row) -> Dict[str, Any]:
        """Convert a database row to a record dict."""
        return with_version(json.loads(row["data_json"]), row["version"])

    def _read(self, conn: sqlite3.Connection, path: str) -> Optional[Dict[str, Any]]:
        row = conn.execute(
            "SELECT data_json, version FROM documents WHERE path = ?", (path,)
        ).fetchone()
        return self._row_to_record(row) if row else None

    def _write(self, conn: sqlite3.Connection, path: str, record: Dict[str, Any], version: int):
        conn.execute("""
            INSERT INTO documents (path, data_json, version, updated_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(path) DO UPDATE SET
                data_json = excluded.data_json,
                version = excluded.version,
                updated_at = excluded.updated_at
        """, (path, json.dumps(with_version(record, version)), version, datetime.now().isoformat()))

    def get(self, path: str) -> Optional[Dict[str, Any]]:
        with self._get_connection() as conn:
            return self._read(conn, path)

    def set(self, path: str, record: Dict[str, Any], merge: bool = False) -> int:
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            current = self._read(conn, path)
            version = (current or {}).get("version", 0) + 1
            if merge and current is not None:
                record = deep_merge(current, record)
            self._write(conn, path, record, version)
            return version

    def append_to_list(self, path: str, field: str, item: Any) -> int:
        with self._get_connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            current = self._read(conn, path)
            if current is None:
                raise OpportunityNotFound(path)
            items = current.get(field) or []
            if not isinstance(items, list):
                raise ValidationError(field, "is not a list", items)
            current[field] = items + [item]
            version = current["version"] + 1
            self._write(conn, path, current, version)
            return version

    def compare_and_set(self, path: str, record: Dict[str, Any], expected_version: int) -> int:
        version = expected_version + 1
        body = json.dumps(with_version(record, version))
        now = datetime.now().isoformat()

        with self._get_connection() as conn:
            if expected_version == 0:
                try:
                    conn.execute(
                        "INSERT INTO documents (path, data_json, version, updated_at) VALUES (?, ?, ?, ?)",
                        (path, body, version, now),
                    )
                    return version
                except sqlite3.IntegrityError:
                    actual = self._read(conn, path)
                    raise ConflictError(path, expected_version, actual["version"] if actual else None)

            cursor = conn.execute(
                "UPDATE documents SET data_json = ?, version = ?, updated_at = ? WHERE path = ? AND version = ?",
                (body, version, now, path, expected_version),
            )
            if cursor.rowcount == 0:
                actual = self._read(conn, path)
                raise ConflictError(path, expected_version, actual["version"] if actual else None)
            return version

    def list(self, prefix: str) -> List[Tuple[str, Dict[str, Any]]]:
        with self._get_connection() as conn:
            rows = conn.execute(
                "SELECT path, data_json, version FROM documents WHERE substr(path, 1, ?) = ? ORDER BY path",
                (len(prefix), prefix),
            ).fetchall()
            return [(row["path"], self._row_to_record(row)) for row in rows]

