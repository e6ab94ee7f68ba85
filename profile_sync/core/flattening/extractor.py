"""
Field extraction for semi-structured profile documents.

Pure functions only: a document goes in, clean scalar and collection values
come out. Missing or wrong-typed fields produce None or an empty list and
never raise.
"""

import re
from collections.abc import Iterable
from typing import Any

from .field_paths import EDUCATION_PATHS, FIELD_PATHS, FieldPath, resolve

# Separators accepted when a collection arrives as one delimited string
LIST_DELIMITERS = re.compile(r"[,;|\n]")

TRUE_STRINGS = {"true", "yes", "1"}
FALSE_STRINGS = {"false", "no", "0"}


def as_text(value: Any) -> str | None:
    """Coerce a raw value to a non-empty stripped string, or None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    if isinstance(value, (int, float)):
        return str(value)
    return None


def as_flag(value: Any) -> bool | None:
    """Coerce a raw value to a boolean, or None if it is not recognizably one."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    return None


def as_location(value: Any) -> str | None:
    """Coerce a location given either as text or as a {city, state, country} map."""
    if isinstance(value, dict):
        parts = [
            as_text(value.get("city")),
            as_text(value.get("state")) or as_text(value.get("region")),
            as_text(value.get("country")),
        ]
        joined = ", ".join(part for part in parts if part)
        return joined or None
    return as_text(value)


def as_items(value: Any) -> list[Any] | None:
    """Return a non-empty list unchanged, else None."""
    if isinstance(value, list) and value:
        return value
    return None


def unique(values: Iterable[str | None]) -> list[str]:
    """Deduplicate preserving first-seen order, dropping empty values."""
    seen: set[str] = set()
    result = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


def _item_text(item: Any) -> str | None:
    if isinstance(item, dict):
        return as_text(item.get("name")) or as_text(item.get("title"))
    return as_text(item)


def as_collection(value: Any) -> list[str] | None:
    """
    Normalize an array of strings or a single delimited string to a clean list.

    Array elements may be strings, numbers or maps carrying a "name". Anything
    else is dropped.

    Returns:
        Deduplicated list, or None when nothing usable remains
    """
    if isinstance(value, str):
        items: list[Any] = LIST_DELIMITERS.split(value)
    elif isinstance(value, list):
        items = value
    else:
        return None

    cleaned = unique(_item_text(item) for item in items)
    return cleaned or None


def split_name(full_name: str | None) -> tuple[str | None, str | None]:
    """
    Split a full name into first name and remainder.

    The last name is everything after the first space, or None for a single token.
    """
    if not full_name:
        return None, None
    parts = full_name.split(None, 1)
    first = parts[0]
    last = parts[1].strip() if len(parts) > 1 else None
    return first, last or None


class FieldExtractor:
    """
    Extracts profile-level fields from a document through the fallback table.

    The path table is injectable so additional document shapes can be
    supported without touching the extraction logic.
    """

    def __init__(
        self,
        field_paths: dict[str, tuple[FieldPath, ...]] | None = None,
        education_paths: dict[str, tuple[FieldPath, ...]] | None = None,
    ):
        self.field_paths = field_paths or FIELD_PATHS
        self.education_paths = education_paths or EDUCATION_PATHS

    def text(self, document: Any, field: str) -> str | None:
        return resolve(document, self.field_paths.get(field, ()), as_text)

    def collection(self, document: Any, field: str) -> list[str]:
        return resolve(document, self.field_paths.get(field, ()), as_collection) or []

    def items(self, document: Any, field: str) -> list[Any]:
        return resolve(document, self.field_paths.get(field, ()), as_items) or []

    def document_ids(self, document: Any) -> list[str]:
        """Return document-embedded key candidates in priority order."""
        candidates = [self.text(document, "id"), self.text(document, "original_id")]
        return [candidate for candidate in candidates if candidate]

    def person_fields(self, document: Any) -> dict[str, str | None]:
        """Extract name, contact handles, location, headline, summary and gender."""
        full_name = self.text(document, "full_name")
        explicit_first = self.text(document, "first_name")
        explicit_last = self.text(document, "last_name")

        if full_name is None and (explicit_first or explicit_last):
            full_name = " ".join(part for part in (explicit_first, explicit_last) if part)

        derived_first, derived_last = split_name(full_name)

        return {
            "full_name": full_name,
            "first_name": explicit_first or derived_first,
            "last_name": explicit_last or derived_last,
            "email": self.text(document, "email"),
            "phone": self.text(document, "phone"),
            "linkedin": self.text(document, "linkedin"),
            "github_url": self.text(document, "github_url"),
            "website_url": self.text(document, "website_url"),
            "location": resolve(document, self.field_paths.get("location", ()), as_location),
            "current_title": self.text(document, "headline"),
            "about_me": self.text(document, "summary"),
            "gender": self.text(document, "gender"),
        }

    def skill_fields(self, document: Any) -> dict[str, list[str]]:
        return {
            "skills": self.collection(document, "skills"),
            "technologies": self.collection(document, "technologies"),
            "programming_languages": self.collection(document, "programming_languages"),
        }

    def education_fields(self, document: Any) -> dict[str, list[str]]:
        """Collect degrees, schools and fields of study across education entries."""
        degrees, schools, fields = [], [], []
        for entry in self.items(document, "education"):
            if not isinstance(entry, dict):
                continue
            degrees.append(resolve(entry, self.education_paths["degree"], as_text))
            schools.append(resolve(entry, self.education_paths["school"], as_text))
            fields.append(resolve(entry, self.education_paths["field"], as_text))

        return {
            "education_degrees": unique(degrees),
            "education_schools": unique(schools),
            "education_fields": unique(fields),
        }

    def certifications(self, document: Any) -> list[str]:
        return unique(_item_text(item) for item in self.items(document, "certifications"))
