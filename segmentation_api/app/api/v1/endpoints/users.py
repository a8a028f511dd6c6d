"""
User membership endpoints for API v1.

``PATCH /users`` applies a batch of appends and removes.  When some
items fail the others are still committed, and the response is HTTP
500 whose ``detail`` holds the aggregated message and the list of
failed items.
"""

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, status

from segmentation_api.app.api.deps import get_engine
from segmentation_api.app.core.exceptions import BatchModificationError, StoreError
from segmentation_api.app.engine import SegmentationEngine
from segmentation_api.app.schemas.segment import SegmentRead
from segmentation_api.app.schemas.user import UserModification


router = APIRouter()


@router.patch("")
def modify_user(
    modification: UserModification,
    engine: SegmentationEngine = Depends(get_engine),
) -> str:
    """Add the user to the ``append`` segments and remove it from the ``remove`` ones."""
    try:
        engine.modify_user(
            modification.id,
            modification.append,
            [segment.slug for segment in modification.remove],
        )
    except BatchModificationError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": str(e), "failures": [failure.to_dict() for failure in e.failures]},
        )
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return "OK"


@router.get("/{user_id}", response_model=List[SegmentRead])
def get_user_relations(
    user_id: int = Path(..., description="ID of the user"),
    engine: SegmentationEngine = Depends(get_engine),
) -> List[SegmentRead]:
    """List the segments the user currently belongs to."""
    try:
        slugs = engine.get_user_relations(user_id)
    except StoreError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return [SegmentRead(slug=slug) for slug in slugs]
