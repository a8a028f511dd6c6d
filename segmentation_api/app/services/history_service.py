"""
History service for recording and querying membership events.

Every append or remove applied by ``MembershipService.modify_user`` is
written to the ``segment_logs`` table.  Writes are best effort: they
happen after the membership transaction has committed and a failure
is only logged, never surfaced to the caller, so the history may miss
entries but never blocks a membership change.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from segmentation_api.app.core.db import Database, from_db_timestamp, to_db_timestamp, utcnow
from segmentation_api.app.core.exceptions import StoreError, wrap_store_error


logger = logging.getLogger(__name__)

EVENT_APPEND = "append"
EVENT_REMOVE = "remove"


class HistoryService:
    """Service class for writing and retrieving membership history."""

    def __init__(self, db: Database):
        self.db = db

    def record(self, events: Iterable[Tuple[int, str, str]]) -> None:
        """Append ``(user_id, slug, event_type)`` entries to the log.

        All entries share the same timestamp.  Nothing is raised if
        the write fails.
        """
        created_at = to_db_timestamp(utcnow())
        rows = [(user_id, slug, event_type, created_at) for user_id, slug, event_type in events]
        if not rows:
            return
        try:
            with self.db.transaction() as cursor:
                cursor.executemany(
                    """
                    INSERT INTO segment_logs (user_id, slug, event_type, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    rows,
                )
        except (sqlite3.Error, StoreError) as exc:
            logger.warning("Could not write %d history entries: %s", len(rows), exc)

    def list_entries(
        self,
        user_id: Optional[int] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve history entries with optional filters and pagination.

        ``start`` is inclusive and ``end`` exclusive.  Entries are
        ordered by time, oldest first.
        """
        where_clauses: List[str] = []
        params: List[Any] = []
        if user_id is not None:
            where_clauses.append("user_id = ?")
            params.append(user_id)
        if start is not None:
            where_clauses.append("created_at >= ?")
            params.append(to_db_timestamp(start))
        if end is not None:
            where_clauses.append("created_at < ?")
            params.append(to_db_timestamp(end))
        query = "SELECT id, user_id, slug, event_type, created_at FROM segment_logs"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY created_at, id LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        try:
            conn = self.db.connect()
            try:
                rows = conn.execute(query, tuple(params)).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise wrap_store_error("error while getting segment logs from the database", exc) from exc

        return [
            {
                "id": row["id"],
                "user_id": row["user_id"],
                "slug": row["slug"],
                "event_type": row["event_type"],
                "created_at": from_db_timestamp(row["created_at"]),
            }
            for row in rows
        ]
