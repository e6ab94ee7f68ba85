"""
Change event sources.
"""

from .notify_source import PostgresNotifySource, parse_notification

__all__ = [
    "PostgresNotifySource",
    "parse_notification",
]
