"""
Pydantic schema definitions for API payloads.

Schemas are separated from the storage layer to decouple the API
representation from the tables.  ``user.SegmentAppend`` is also the
unit of work the membership service accepts.
"""
