"""
Core data models for the profile sync engine.

All models use Pydantic for runtime validation and type safety.
"""

from .flattened_record import COLLECTION_FIELDS, FlattenedRecord, SearchRepresentation
from .projection_result import Deleted, Flattened, ProjectionResult, Skipped, SkipReason
from .reconcile_report import ReconcileReport
from .source_record import ChangeEvent, SourceRecord

__all__ = [
    "COLLECTION_FIELDS",
    "ChangeEvent",
    "Deleted",
    "Flattened",
    "FlattenedRecord",
    "ProjectionResult",
    "ReconcileReport",
    "SearchRepresentation",
    "SkipReason",
    "Skipped",
    "SourceRecord",
]
