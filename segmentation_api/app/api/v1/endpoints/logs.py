"""
Membership history endpoint for API v1.

Returns the best-effort log of appends and removes, optionally
filtered by user and time range.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from segmentation_api.app.api.deps import get_engine
from segmentation_api.app.core.exceptions import StoreError
from segmentation_api.app.engine import SegmentationEngine
from segmentation_api.app.schemas.segment import LogEntryRead

router = APIRouter()


@router.get("", response_model=List[LogEntryRead])
def list_logs(
    user_id: Optional[int] = Query(None, description="Filter by user ID"),
    start: Optional[datetime] = Query(None, description="Start of the period (inclusive, ISO format)"),
    end: Optional[datetime] = Query(None, description="End of the period (exclusive, ISO format)"),
    limit: int = Query(100, ge=1, le=1000, description="Maximum number of entries to return"),
    offset: int = Query(0, ge=0, description="Number of entries to skip"),
    engine: SegmentationEngine = Depends(get_engine),
) -> List[dict]:
    """Retrieve membership history ordered by time, oldest first."""
    try:
        return engine.history.list_entries(user_id=user_id, start=start, end=end, limit=limit, offset=offset)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
