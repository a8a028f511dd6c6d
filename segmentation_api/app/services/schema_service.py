"""
Schema guard for the segmentation tables.

Before the engine serves any request the database must expose the
``segments`` and ``user_segment_relations`` tables with the expected
columns.  ``SchemaService.ensure`` optionally creates the tables and
then verifies them; any mismatch is raised as a ``SchemaError`` that
lists every offending table, and the application refuses to start.
"""

import logging
import sqlite3
from typing import Dict, List

from segmentation_api.app.core.db import Database
from segmentation_api.app.core.exceptions import SchemaError


logger = logging.getLogger(__name__)

# Expected column name -> declared type, per table.
EXPECTED_TABLES: Dict[str, Dict[str, str]] = {
    "segments": {"id": "INTEGER", "slug": "TEXT"},
    "user_segment_relations": {
        "user_id": "INTEGER",
        "segment_id": "INTEGER",
        "expires_at": "TIMESTAMP",
    },
}

CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS segments (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    slug TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS user_segment_relations (
    user_id INTEGER NOT NULL,
    segment_id INTEGER NOT NULL,
    expires_at TIMESTAMP,
    CONSTRAINT unique_user_segment UNIQUE (user_id, segment_id),
    FOREIGN KEY(segment_id) REFERENCES segments(id)
);

CREATE INDEX IF NOT EXISTS idx_user_segment_relations_expires_at
    ON user_segment_relations(expires_at);

-- Best-effort history of membership changes; not checked by the guard.
CREATE TABLE IF NOT EXISTS segment_logs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    slug TEXT NOT NULL,
    event_type TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_segment_logs_created_at ON segment_logs(created_at);
"""


def describe_table(table: str, columns: Dict[str, str]) -> str:
    body = "; ".join(f"{name} {type_}" for name, type_ in columns.items())
    return f"'{table}' table is not ok: proper '{table}' table is {{ {body} }}"


class SchemaService:
    """Create and verify the tables the engine relies on."""

    def __init__(self, db: Database):
        self.db = db

    def create_tables(self) -> None:
        """Create the engine's tables if they do not exist yet.

        All statements are idempotent, so calling this against an
        already initialised database is a no-op.
        """
        try:
            conn = self.db.connect()
        except sqlite3.Error as exc:
            raise SchemaError([f"error while creating tables: {exc}"]) from exc
        try:
            conn.executescript(CREATE_TABLES_SQL)
        except sqlite3.Error as exc:
            raise SchemaError([f"error while creating tables: {exc}"]) from exc
        finally:
            conn.close()
        logger.info("Segmentation tables are in place at %s", self.db.path)

    def verify(self) -> None:
        """Check that every expected table has the expected columns.

        Each expected column must exist with the expected declared
        type; additional columns are allowed.  A missing table is
        reported like a malformed one.  Raises ``SchemaError`` naming
        every mismatched table.
        """
        problems: List[str] = []
        try:
            conn = self.db.connect()
        except sqlite3.Error as exc:
            raise SchemaError([f"error while checking tables: {exc}"]) from exc
        try:
            for table, expected in EXPECTED_TABLES.items():
                try:
                    rows = conn.execute(f"PRAGMA table_info({table})").fetchall()
                except sqlite3.Error as exc:
                    problems.append(f"error while checking '{table}' table: {exc}")
                    continue
                actual = {row["name"]: (row["type"] or "").upper() for row in rows}
                if any(actual.get(name) != type_ for name, type_ in expected.items()):
                    problems.append(describe_table(table, expected))
        finally:
            conn.close()

        if problems:
            raise SchemaError(problems)

    def ensure(self, create_tables: bool = False) -> None:
        """Optionally create the tables, then verify them."""
        if create_tables:
            self.create_tables()
        self.verify()
