"""
Schema-variant fallback table for profile documents.

Every logical field maps to one ordered chain of paths, each tagged with the
document shape it belongs to. Resolution walks the chain in priority order and
returns the first usable value. Supporting a new document shape means adding
paths to a chain, never special-casing individual documents.

Paths are dotted strings. A numeric segment indexes a list and "*" scans
every element of a list in order.
"""

from collections.abc import Callable, Iterator
from typing import Any, NamedTuple

# Document shapes
FLAT = "flat"
NESTED = "nested"


class FieldPath(NamedTuple):
    """One extraction strategy: where to look and which document shape it serves."""

    segments: tuple[str, ...]
    shape: str

    def __str__(self) -> str:
        return ".".join(self.segments)


def path(dotted: str, shape: str = FLAT) -> FieldPath:
    """Build a FieldPath from a dotted string."""
    return FieldPath(tuple(dotted.split(".")), shape)


def iter_path(node: Any, segments: tuple[str, ...]) -> Iterator[Any]:
    """
    Yield every value reachable from node along segments.

    Missing keys, out-of-range indexes and type mismatches simply yield nothing.
    """
    if not segments:
        yield node
        return

    head, rest = segments[0], segments[1:]

    if head == "*":
        if isinstance(node, list):
            for item in node:
                yield from iter_path(item, rest)
        return

    if isinstance(node, dict):
        if head in node:
            yield from iter_path(node[head], rest)
    elif isinstance(node, list) and head.isdigit():
        index = int(head)
        if index < len(node):
            yield from iter_path(node[index], rest)


def resolve(
    node: Any,
    chain: tuple[FieldPath, ...],
    coerce: Callable[[Any], Any],
) -> Any:
    """
    Resolve a value through an ordered fallback chain.

    Args:
        node: Document (or sub-document) to read from
        chain: Paths in priority order
        coerce: Converts a raw value to its clean form, or None if unusable

    Returns:
        The first coerced value that is not None, else None
    """
    for field_path in chain:
        for raw in iter_path(node, field_path.segments):
            value = coerce(raw)
            if value is not None:
                return value
    return None


# Profile-level fields, relative to the document root
FIELD_PATHS: dict[str, tuple[FieldPath, ...]] = {
    "id": (path("id"),),
    "original_id": (path("original_id"), path("profile_id")),
    "full_name": (
        path("name"),
        path("full_name"),
        path("candidate.name", NESTED),
        path("candidate.full_name", NESTED),
    ),
    "first_name": (path("first_name"), path("candidate.first_name", NESTED)),
    "last_name": (path("last_name"), path("candidate.last_name", NESTED)),
    "email": (
        path("email"),
        path("contact.email"),
        path("candidate.email", NESTED),
        path("candidate.contact.email", NESTED),
    ),
    "phone": (
        path("phone"),
        path("contact.phone"),
        path("candidate.phone", NESTED),
        path("candidate.contact.phone", NESTED),
    ),
    "linkedin": (
        path("linkedin"),
        path("linkedin_url"),
        path("candidate.linkedin", NESTED),
        path("candidate.linkedin_url", NESTED),
    ),
    "github_url": (
        path("github"),
        path("github_url"),
        path("candidate.github", NESTED),
        path("candidate.github_url", NESTED),
    ),
    "website_url": (
        path("website"),
        path("website_url"),
        path("candidate.website", NESTED),
        path("candidate.website_url", NESTED),
    ),
    "location": (path("location"), path("candidate.location", NESTED)),
    "headline": (
        path("headline"),
        path("candidate.headline", NESTED),
        path("candidate.title", NESTED),
    ),
    "summary": (
        path("summary"),
        path("about"),
        path("candidate.summary", NESTED),
        path("candidate.about", NESTED),
    ),
    "gender": (path("gender"), path("candidate.gender", NESTED)),
    "skills": (path("skills"), path("candidate.skills", NESTED)),
    "technologies": (path("technologies"), path("candidate.technologies", NESTED)),
    "programming_languages": (
        path("programming_languages"),
        path("candidate.programming_languages", NESTED),
    ),
    "current_company": (
        path("current_company"),
        path("candidate.current_company", NESTED),
    ),
    "current_position": (
        path("current_title"),
        path("current_position"),
        path("candidate.current_title", NESTED),
        path("candidate.current_position", NESTED),
    ),
    "employment": (
        path("work_experience"),
        path("candidate.experience", NESTED),
        path("candidate.work_experience", NESTED),
        path("candidate.past_experience", NESTED),
        path("experience"),
    ),
    "education": (path("education"), path("candidate.education", NESTED)),
    "certifications": (
        path("certifications"),
        path("candidate.certifications", NESTED),
    ),
}


# Employment-history entry fields, relative to one entry
ENTRY_PATHS: dict[str, tuple[FieldPath, ...]] = {
    "company": (
        path("company"),
        path("company.name", NESTED),
        path("company_name"),
    ),
    "title": (
        path("title"),
        path("role.title", NESTED),
        path("position"),
        path("projects.*.title", NESTED),
    ),
    "industry": (path("industry"), path("company.industry", NESTED)),
    "start_date": (
        path("start_date"),
        path("duration.start_date", NESTED),
        path("duration.from", NESTED),
    ),
    "end_date": (
        path("end_date"),
        path("duration.end_date", NESTED),
        path("duration.to", NESTED),
    ),
    "to_present": (path("duration.to_present", NESTED), path("is_current")),
    "company_size": (path("company_size"), path("company.size", NESTED)),
    "company_location": (path("location"), path("company.location", NESTED)),
}


# Education entry fields, relative to one entry
EDUCATION_PATHS: dict[str, tuple[FieldPath, ...]] = {
    "degree": (path("degree"), path("degree_name")),
    "school": (
        path("school"),
        path("school.name", NESTED),
        path("institution"),
        path("school_name"),
    ),
    "field": (path("field"), path("field_of_study"), path("major")),
}
