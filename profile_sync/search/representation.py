"""
Search representation for flattened profiles.

The representation is a pure function of a record's content and is rebuilt on
every write, never mutated on its own. Text is grouped into PostgreSQL
tsvector weight classes: identity, company and title weigh highest,
descriptive text lowest.
"""

import json
from typing import Literal

from profile_sync.core.models import FlattenedRecord, SearchRepresentation

SearchVariant = Literal["structured", "document"]

WEIGHT_CLASSES = ("A", "B", "C", "D")

# Record fields feeding each weight class, in output order
WEIGHTED_FIELDS: dict[str, tuple[str, ...]] = {
    "A": ("full_name", "current_company", "current_title_from_workexp", "current_title"),
    "B": (
        "skills",
        "technologies",
        "programming_languages",
        "job_titles",
        "previous_companies",
        "location",
    ),
    "C": (
        "industries",
        "education_degrees",
        "education_schools",
        "education_fields",
        "certifications",
        "past_experience",
    ),
    "D": ("about_me",),
}


def _field_text(record: FlattenedRecord, field: str) -> str:
    value = getattr(record, field)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def _join(parts) -> str:
    return " ".join(part for part in parts if part)


def build_search_representation(
    record: FlattenedRecord,
    variant: SearchVariant = "structured",
) -> SearchRepresentation:
    """
    Derive the search representation for a record.

    Args:
        record: Flattened record (its current search field is ignored)
        variant: "structured" weights record fields; "document" indexes the
            verbatim source document at the lowest weight

    Returns:
        SearchRepresentation
    """
    if variant == "document":
        weighted = {weight: "" for weight in WEIGHT_CLASSES}
        weighted["D"] = json.dumps(record.full_jsonb, sort_keys=True, ensure_ascii=False)
    else:
        weighted = {
            weight: _join(_field_text(record, field) for field in WEIGHTED_FIELDS[weight])
            for weight in WEIGHT_CLASSES
        }

    return SearchRepresentation(
        variant=variant,
        weighted=weighted,
        text=_join(weighted[weight] for weight in WEIGHT_CLASSES),
    )


class SearchIndexMaintainer:
    """
    Keeps a record's search representation consistent with its content.

    Stores call refresh() on every write so the representation is stored
    together with the record it was derived from.
    """

    def __init__(self, variant: SearchVariant = "structured"):
        self.variant = variant

    def refresh(self, record: FlattenedRecord) -> FlattenedRecord:
        """Return a copy of record carrying a freshly computed representation."""
        representation = build_search_representation(record, self.variant)
        return record.model_copy(update={"search": representation})
