"""
Outcome of projecting one source mutation onto the derived store (ephemeral).
"""

from typing import Literal

from pydantic import BaseModel

from .flattened_record import FlattenedRecord

SkipReason = Literal[
    "unresolvable_key",
    "empty_document",
    "transform_failure",
    "stale_event",
    "write_failure",
]


class Flattened(BaseModel):
    """The record was transformed and written."""

    kind: Literal["flattened"] = "flattened"
    key: str
    record: FlattenedRecord


class Skipped(BaseModel):
    """
    The mutation was not projected; any existing flattened record is untouched.

    Attributes:
        key: Resolved key, if one could be resolved
        reason: Why the mutation was skipped
        detail: Human-readable cause (exception message for failures)
    """

    kind: Literal["skipped"] = "skipped"
    key: str | None = None
    reason: SkipReason
    detail: str | None = None


class Deleted(BaseModel):
    """
    A delete was applied.

    Attributes:
        key: Resolved key, None when the key hint was unusable
        removed: Whether a flattened record actually existed
    """

    kind: Literal["deleted"] = "deleted"
    key: str | None = None
    removed: bool = False


ProjectionResult = Flattened | Skipped | Deleted
