"""
Flattened profile stores and database access.
"""

from .store import InMemoryProfileStore, ProfileStore

__all__ = [
    "InMemoryProfileStore",
    "ProfileStore",
]
