"""
Key resolution for source records.

Fallback chain: explicit key, then the document-embedded id, then the
document-embedded alternate id.
"""

from typing import Any

from profile_sync.core.errors import EmptyDocument, UnresolvableKey
from profile_sync.core.flattening.extractor import FieldExtractor, as_text
from profile_sync.core.models import SourceRecord

_extractor = FieldExtractor()


def resolve_key(record: SourceRecord) -> str | None:
    """Return the first usable key for record, or None."""
    explicit = as_text(record.key)
    if explicit:
        return explicit
    if isinstance(record.document, dict):
        candidates = _extractor.document_ids(record.document)
        if candidates:
            return candidates[0]
    return None


def is_empty_document(document: Any) -> bool:
    """A null document or an empty map carries nothing to project."""
    return document is None or document == {} or document == ""


def require_projectable(record: SourceRecord) -> str:
    """
    Return the key of a record that can be projected.

    Raises:
        UnresolvableKey: If no key can be resolved
        EmptyDocument: If the document carries nothing to project
    """
    key = resolve_key(record)
    if key is None:
        raise UnresolvableKey()
    if is_empty_document(record.document):
        raise EmptyDocument(key)
    return key
