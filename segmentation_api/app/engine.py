"""
The segment membership engine.

``SegmentationEngine`` bundles the services that share one
``Database`` handle and exposes the five engine operations.  Building
an engine runs the schema guard, so an engine that was constructed
successfully always talks to a database with the expected tables.
"""

from datetime import datetime
from typing import List, Optional, Sequence, Union

from .core.db import Database
from .schemas.user import SegmentAppend
from .services.history_service import HistoryService
from .services.membership_service import MembershipService
from .services.schema_service import SchemaService
from .services.segment_service import SegmentService
from .services.tidy_service import DEFAULT_TIDY_INTERVAL, TidyService, TidySweeper


class SegmentationEngine:
    """Entry point to segment and membership operations.

    Parameters
    ----------
    db : Database
        Storage handle shared by all services.
    create_tables : bool
        Create missing tables before verifying the schema.

    Raises
    ------
    SchemaError
        The database does not have the expected tables.
    """

    def __init__(self, db: Database, create_tables: bool = False):
        self.db = db
        SchemaService(db).ensure(create_tables=create_tables)
        self.history = HistoryService(db)
        self.segments = SegmentService(db)
        self.memberships = MembershipService(db, history=self.history)
        self.tidy = TidyService(db)

    def add_segment(self, slug: str) -> int:
        return self.segments.add_segment(slug)

    def delete_segment(self, slug: str) -> None:
        self.segments.delete_segment(slug)

    def modify_user(
        self,
        user_id: int,
        appends: Sequence[Union[SegmentAppend, str]] = (),
        removes: Sequence[str] = (),
    ) -> None:
        self.memberships.modify_user(user_id, appends, removes)

    def get_user_relations(self, user_id: int) -> List[str]:
        return self.memberships.get_user_relations(user_id)

    def tidy_relations(self, now: Optional[datetime] = None) -> int:
        return self.tidy.tidy_relations(now)

    def create_sweeper(self, interval: float = DEFAULT_TIDY_INTERVAL) -> TidySweeper:
        """Return a sweeper for this engine; the caller starts and stops it."""
        return TidySweeper(self.tidy, interval)
