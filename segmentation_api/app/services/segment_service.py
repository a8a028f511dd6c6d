"""
Business logic for segment definitions.

The ``SegmentService`` creates and deletes segments.  Both operations
run inside a single transaction: a failed statement rolls the whole
transaction back, so a segment is never half-created and a deleted
segment never leaves membership relations pointing at it.
"""

import logging
import sqlite3

from segmentation_api.app.core.db import Database
from segmentation_api.app.core.exceptions import wrap_store_error


logger = logging.getLogger(__name__)


class SegmentService:
    """Service for creating and deleting segments."""

    def __init__(self, db: Database):
        self.db = db

    def add_segment(self, slug: str) -> int:
        """Create a segment and return its generated id.

        Raises ``ConstraintError`` when a segment with the same slug
        already exists and ``TransactionError`` when the transaction
        cannot be started or committed.
        """
        with self.db.transaction() as cursor:
            try:
                cursor.execute("INSERT INTO segments (slug) VALUES (?)", (slug,))
            except sqlite3.Error as exc:
                raise wrap_store_error(f"error while adding segment {slug} to the database", exc) from exc
            segment_id = cursor.lastrowid
        logger.info("Segment %r created with id %s", slug, segment_id)
        return segment_id

    def delete_segment(self, slug: str) -> None:
        """Delete a segment together with all of its memberships.

        Deleting a slug that does not exist is not an error.
        """
        error_text = f"error while deleting segment with slug = {slug} from the database"
        with self.db.transaction() as cursor:
            try:
                cursor.execute(
                    """
                    DELETE FROM user_segment_relations
                    WHERE segment_id = (SELECT id FROM segments WHERE slug = ?)
                    """,
                    (slug,),
                )
                relations_deleted = cursor.rowcount
                cursor.execute("DELETE FROM segments WHERE slug = ?", (slug,))
                segments_deleted = cursor.rowcount
            except sqlite3.Error as exc:
                raise wrap_store_error(error_text, exc) from exc
        if segments_deleted:
            logger.info("Segment %r deleted with %s membership(s)", slug, relations_deleted)
        else:
            logger.debug("Segment %r did not exist, nothing deleted", slug)
