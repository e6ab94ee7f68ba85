"""
Source record readers for bulk reconcile.
"""

from .postgres_reader import SourceTableReader

__all__ = [
    "SourceTableReader",
]
