"""
SQLite database integration.

This module provides the ``Database`` storage handle shared by every
service of the segmentation engine.  The handle holds no open
connection: each operation obtains a short-lived connection through
``connect`` or runs inside ``transaction``, so the only state shared
between concurrent requests and the tidy sweeper is the database
file itself.  SQLite's own locking is the only concurrency control.

Timestamps are stored as UTC text in ISO-8601 form
(``YYYY-MM-DD HH:MM:SS.ffffff``), which sorts lexicographically in
time order so that ``expires_at <= ?`` comparisons work on plain
strings.
"""

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from .exceptions import TransactionError

DEFAULT_BUSY_TIMEOUT = 5.0


def resolve_database_path(database_url: str) -> str:
    """Compute the path to the SQLite database file.

    Absolute paths are used as is; relative paths are resolved
    against the project root (the directory holding the
    ``segmentation_api`` package).
    """
    if os.path.isabs(database_url):
        return database_url
    base_dir = Path(__file__).resolve().parent.parent.parent.parent
    return str((base_dir / database_url).resolve())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_db_timestamp(value: datetime) -> str:
    """Render ``value`` in the stored timestamp format.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat(sep=" ", timespec="microseconds")


def from_db_timestamp(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


class Database:
    """Handle to the SQLite database used by the engine."""

    def __init__(self, path: str, timeout: float = DEFAULT_BUSY_TIMEOUT):
        self.path = path
        # Seconds a statement waits for a lock held by another connection.
        self.timeout = timeout

    @classmethod
    def from_url(cls, database_url: str) -> "Database":
        return cls(resolve_database_path(database_url))

    def connect(self) -> sqlite3.Connection:
        """Create and return a new SQLite connection.

        The connection runs in autocommit mode (``isolation_level=None``)
        so that transactions are only ever opened explicitly by
        ``transaction``.  Rows are returned as ``sqlite3.Row`` objects
        keyed by column name, and foreign key enforcement is enabled
        for the lifetime of the connection.
        """
        conn = sqlite3.connect(self.path, timeout=self.timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Run the enclosed block inside one write transaction.

        The write lock is taken when the transaction begins, so a
        database locked by another writer surfaces as a
        ``TransactionError`` before any statement of the block runs.

        The transaction is committed when the block exits normally and
        rolled back when it raises.  Failures to open or commit the
        transaction are raised as ``TransactionError``; exceptions
        raised by the block itself propagate unchanged.
        """
        try:
            conn = self.connect()
        except sqlite3.Error as exc:
            raise TransactionError(f"error while starting transaction: {exc}") from exc

        try:
            try:
                conn.execute("BEGIN IMMEDIATE")
            except sqlite3.Error as exc:
                raise TransactionError(f"error while starting transaction: {exc}") from exc

            try:
                yield conn.cursor()
            except Exception:
                conn.rollback()
                raise

            try:
                conn.commit()
            except sqlite3.Error as exc:
                conn.rollback()
                raise TransactionError(f"error while committing transaction: {exc}") from exc
        finally:
            conn.close()
