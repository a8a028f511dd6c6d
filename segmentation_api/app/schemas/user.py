"""
Pydantic models for user memberships.

``SegmentAppend`` is shared by the HTTP layer and the engine: it is
the unit of work ``MembershipService.modify_user`` accepts for an
append.  On the wire the expiration is called ``expires``, as in the
request template ``{"slug": "vip", "expires": "2030-01-01T00:00:00Z"}``.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class SegmentRef(BaseModel):
    slug: str = Field(..., min_length=1, examples=["AVITO_VOICE_MESSAGES"])


class SegmentAppend(SegmentRef):
    """A segment to add a user to.

    ``expires_at`` left unset (or set to the zero time
    ``0001-01-01T00:00:00Z``) means the membership never expires.
    """

    expires_at: Optional[datetime] = Field(default=None, alias="expires")

    model_config = {
        "populate_by_name": True,
    }


class UserModification(BaseModel):
    """Schema for changing a user's memberships in one call."""

    id: int
    append: List[SegmentAppend] = Field(default_factory=list)
    remove: List[SegmentRef] = Field(default_factory=list)

    model_config = {
        "extra": "forbid",
    }
