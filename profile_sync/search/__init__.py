"""
Search representation maintenance.
"""

from .representation import (
    WEIGHTED_FIELDS,
    SearchIndexMaintainer,
    build_search_representation,
)

__all__ = [
    "WEIGHTED_FIELDS",
    "SearchIndexMaintainer",
    "build_search_representation",
]
