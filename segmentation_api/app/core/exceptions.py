"""
Exception hierarchy of the segmentation engine.

Services raise these instead of raw ``sqlite3`` errors so that callers
(the HTTP layer, the tidy sweeper) can react to a failure category
without inspecting driver internals.  The driver's message text is
kept in the exception message.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass
from typing import List, Sequence


class SegmentationError(Exception):
    """Base exception for the segmentation engine"""


class SchemaError(SegmentationError):
    """The database does not expose the expected tables and columns.

    ``problems`` holds one message per mismatched table.
    """

    def __init__(self, problems: Sequence[str]):
        self.problems: List[str] = list(problems)
        super().__init__("\n".join(self.problems))


class StoreError(SegmentationError):
    """A statement or query against the store failed"""


class TransactionError(StoreError):
    """A transaction could not be started or committed"""


class ConstraintError(StoreError):
    """A statement violated a table constraint"""


def wrap_store_error(message: str, exc: sqlite3.Error) -> StoreError:
    """Translate a driver error into the engine's exception type."""
    if isinstance(exc, sqlite3.IntegrityError):
        return ConstraintError(f"{message}: {exc}")
    return StoreError(f"{message}: {exc}")


@dataclass(frozen=True)
class ItemFailure:
    """A single failed append or remove inside a batch modification."""

    action: str
    user_id: int
    slug: str
    message: str

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "user_id": self.user_id,
            "slug": self.slug,
            "message": self.message,
        }


class BatchModificationError(SegmentationError):
    """Some items of a committed batch modification failed.

    The successful items are already committed.  ``failures`` lists
    the failed ones in the order they were processed.
    """

    def __init__(self, failures: Sequence[ItemFailure]):
        self.failures: List[ItemFailure] = list(failures)
        super().__init__("\n".join(failure.message for failure in self.failures))
