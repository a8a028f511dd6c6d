"""Dependencies shared by the API endpoints."""

from fastapi import HTTPException, Request, status

from segmentation_api.app.engine import SegmentationEngine


def get_engine(request: Request) -> SegmentationEngine:
    """Return the engine created at application startup."""
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Engine is not ready")
    return engine
