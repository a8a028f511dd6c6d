"""
Top-level router for version 1 of the API.
"""

from fastapi import APIRouter

from .endpoints import logs, segments, users

router = APIRouter()

router.include_router(segments.router, prefix="/segments", tags=["segments"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(logs.router, prefix="/logs", tags=["logs"])
