"""
Business logic for user memberships.

``MembershipService.modify_user`` applies a batch of appends and
removes for one user inside a single transaction.  Items are
independent units of work: each runs in its own savepoint, a failing
item is rolled back to that savepoint and recorded, and the remaining
items still run.  The transaction is committed once at the end even
when some items failed, and the failures are then raised together as
a ``BatchModificationError``.  Only a failure to begin or commit the
transaction aborts the whole batch.

Expiration is stored as ``NULL`` for memberships that never expire.
A membership is current while ``expires_at`` is ``NULL`` or in the
future; expired rows are invisible to ``get_user_relations`` even
before the tidy sweeper deletes them.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Sequence, Tuple, Union

from segmentation_api.app.core.db import Database, to_db_timestamp, utcnow
from segmentation_api.app.core.exceptions import (
    BatchModificationError,
    ConstraintError,
    ItemFailure,
    StoreError,
    wrap_store_error,
)
from segmentation_api.app.schemas.user import SegmentAppend
from segmentation_api.app.services.history_service import EVENT_APPEND, EVENT_REMOVE, HistoryService


logger = logging.getLogger(__name__)


def normalize_expiration(expires_at: Optional[datetime]) -> Optional[str]:
    """Return the stored form of an expiration.

    ``None`` and the zero time (year 1) both mean "never expires" and
    are stored as ``NULL``, as is an aware time so close to
    ``datetime.max`` that it cannot be expressed in UTC.
    """
    if expires_at is None or expires_at.year <= 1:
        return None
    try:
        return to_db_timestamp(expires_at)
    except OverflowError:
        # Past datetime.max once shifted to UTC.
        return None


@contextmanager
def savepoint(cursor: sqlite3.Cursor, name: str = "membership_item") -> Iterator[None]:
    """Undo everything the enclosed block did if it raises."""
    cursor.execute(f"SAVEPOINT {name}")
    try:
        yield
    except Exception:
        cursor.execute(f"ROLLBACK TO SAVEPOINT {name}")
        cursor.execute(f"RELEASE SAVEPOINT {name}")
        raise
    cursor.execute(f"RELEASE SAVEPOINT {name}")


class MembershipService:
    """Service for changing and reading a user's segments."""

    def __init__(self, db: Database, history: Optional[HistoryService] = None):
        self.db = db
        self.history = history

    def modify_user(
        self,
        user_id: int,
        appends: Sequence[Union[SegmentAppend, str]] = (),
        removes: Sequence[str] = (),
    ) -> None:
        """Add a user to ``appends`` and remove it from ``removes``.

        Appends are processed before removes, each in the given
        order.  A plain string in ``appends`` is a segment the user
        joins without expiration.

        Raises
        ------
        TransactionError
            The transaction could not be started or committed;
            nothing was applied.
        BatchModificationError
            At least one item failed.  Every other item has been
            committed.
        """
        now = to_db_timestamp(utcnow())
        failures: List[ItemFailure] = []
        applied: List[Tuple[int, str, str]] = []

        with self.db.transaction() as cursor:
            for item in appends:
                slug = item if isinstance(item, str) else item.slug
                try:
                    if isinstance(item, str):
                        item = SegmentAppend(slug=item)
                    expires_at = normalize_expiration(item.expires_at)
                    with savepoint(cursor):
                        self._append(cursor, user_id, slug, expires_at, now)
                except (sqlite3.Error, StoreError, ValueError) as exc:
                    # ValueError covers pydantic validation of plain slugs.
                    failures.append(
                        ItemFailure(
                            action=EVENT_APPEND,
                            user_id=user_id,
                            slug=slug,
                            message=f'error while adding user {user_id} to the segment "{slug}": {exc}',
                        )
                    )
                else:
                    applied.append((user_id, slug, EVENT_APPEND))

            for slug in removes:
                try:
                    with savepoint(cursor):
                        removed = self._remove(cursor, user_id, slug)
                except (sqlite3.Error, StoreError) as exc:
                    failures.append(
                        ItemFailure(
                            action=EVENT_REMOVE,
                            user_id=user_id,
                            slug=slug,
                            message=f'error while removing user {user_id} from the segment "{slug}": {exc}',
                        )
                    )
                else:
                    if removed:
                        applied.append((user_id, slug, EVENT_REMOVE))

        if self.history is not None:
            self.history.record(applied)

        if failures:
            logger.warning(
                "User %s modified with %d of %d item(s) failed",
                user_id,
                len(failures),
                len(appends) + len(removes),
            )
            raise BatchModificationError(failures)

    @staticmethod
    def _append(
        cursor: sqlite3.Cursor,
        user_id: int,
        slug: str,
        expires_at: Optional[str],
        now: str,
    ) -> None:
        row = cursor.execute("SELECT id FROM segments WHERE slug = ?", (slug,)).fetchone()
        if row is None:
            raise ConstraintError(f'segment "{slug}" does not exist')
        segment_id = row["id"]
        # An expired membership the sweeper has not reached yet must not
        # block joining the segment again.
        cursor.execute(
            """
            DELETE FROM user_segment_relations
            WHERE user_id = ? AND segment_id = ?
              AND expires_at IS NOT NULL AND expires_at <= ?
            """,
            (user_id, segment_id, now),
        )
        cursor.execute(
            "INSERT INTO user_segment_relations (user_id, segment_id, expires_at) VALUES (?, ?, ?)",
            (user_id, segment_id, expires_at),
        )

    @staticmethod
    def _remove(cursor: sqlite3.Cursor, user_id: int, slug: str) -> bool:
        cursor.execute(
            """
            DELETE FROM user_segment_relations
            WHERE user_id = ? AND segment_id = (SELECT id FROM segments WHERE slug = ?)
            """,
            (user_id, slug),
        )
        return cursor.rowcount > 0

    def get_user_relations(self, user_id: int) -> List[str]:
        """Return the slugs of the user's current segments.

        A user without memberships gets an empty list.
        """
        query = """
            SELECT s.slug
            FROM user_segment_relations r
            JOIN segments s ON s.id = r.segment_id
            WHERE r.user_id = ? AND (r.expires_at IS NULL OR r.expires_at > ?)
            ORDER BY s.slug
        """
        try:
            conn = self.db.connect()
            try:
                rows = conn.execute(query, (user_id, to_db_timestamp(utcnow()))).fetchall()
            finally:
                conn.close()
        except sqlite3.Error as exc:
            raise wrap_store_error(
                f"error while getting user {user_id}'s segments from the database", exc
            ) from exc
        return [row["slug"] for row in rows]
