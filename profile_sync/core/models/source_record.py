"""
SourceRecord and ChangeEvent models describing rows of the source-of-truth store.
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_validator


class SourceRecord(BaseModel):
    """
    One row of the source document store (public_profiles).

    Note: SourceRecord is observed, never written, by the sync engine.
    The key may be absent and derived from the document instead.

    Attributes:
        key: Authoritative record key (public_profiles.id)
        document: Untyped profile payload (legacy flat or nested shape)
        label: Optional batch label copied onto the flattened record
        source_version: Commit timestamp of the source row, used for ordering
    """

    key: str | None = None
    document: Any = None
    label: str | None = None
    source_version: datetime | None = None

    @field_validator("key", mode="before")
    @classmethod
    def stringify_key(cls, v):
        """Numeric ids (e.g. serial primary keys) are keyed by their text form."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("source_version")
    @classmethod
    def assume_utc(cls, v):
        """Naive versions are taken as UTC so all versions stay comparable."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "key": "p1",
                "document": {
                    "name": "Jane Smith",
                    "headline": "Product Manager",
                    "work_experience": [
                        {
                            "company": "BigTech Corp",
                            "title": "Senior PM",
                            "start_date": "2021-03",
                            "end_date": "current"
                        }
                    ]
                },
                "label": "Q4 2024 Product Candidates",
                "source_version": "2024-11-17T12:00:00Z"
            }
        }
    )


class ChangeEvent(BaseModel):
    """
    A single source mutation delivered to the change propagator.

    For deletes, record is the outgoing row and only serves as a key hint.
    """

    operation: Literal["insert", "update", "delete"]
    record: SourceRecord
