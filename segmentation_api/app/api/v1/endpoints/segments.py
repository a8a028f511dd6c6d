"""
Segment endpoints for API v1.

These routes create and delete segments through the engine.  Store
failures (for example a duplicate slug) are reported as HTTP 500 with
the engine's error message.
"""

from fastapi import APIRouter, Body, Depends, HTTPException, status

from segmentation_api.app.api.deps import get_engine
from segmentation_api.app.core.exceptions import StoreError
from segmentation_api.app.engine import SegmentationEngine
from segmentation_api.app.schemas.segment import SegmentCreate, SegmentId


router = APIRouter()


@router.post("", response_model=SegmentId, status_code=status.HTTP_201_CREATED)
def create_segment(
    segment: SegmentCreate,
    engine: SegmentationEngine = Depends(get_engine),
) -> SegmentId:
    """Create a segment with the given slug and return its id."""
    try:
        segment_id = engine.add_segment(segment.slug)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return SegmentId(id=segment_id)


@router.delete("")
def delete_segment(
    segment: SegmentCreate = Body(...),
    engine: SegmentationEngine = Depends(get_engine),
) -> str:
    """Delete a segment and every membership in it.

    Deleting a slug that does not exist succeeds.
    """
    try:
        engine.delete_segment(segment.slug)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return "OK"
