"""
Pydantic models for segments and the membership history.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class SegmentCreate(BaseModel):
    """Schema for creating or deleting a segment by slug."""

    slug: str = Field(..., min_length=1, examples=["AVITO_VOICE_MESSAGES"])

    model_config = {
        "extra": "forbid",
    }


class SegmentId(BaseModel):
    id: int


class SegmentRead(BaseModel):
    slug: str


class LogEntryRead(BaseModel):
    id: int
    user_id: int
    slug: str
    event_type: str
    created_at: datetime
