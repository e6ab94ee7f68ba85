"""
Reader for the public_profiles source table.
"""

from collections.abc import Iterator
from typing import Any

from profile_sync.core.models import SourceRecord
from profile_sync.warehouse.connection import DatabaseConnectionPool

SELECT_ALL_SQL = """
    SELECT id, profile, label, updated_at
    FROM public_profiles
    ORDER BY id, updated_at
"""

SELECT_ONE_SQL = """
    SELECT id, profile, label, updated_at
    FROM public_profiles
    WHERE id = %s
"""


def row_to_source_record(row: dict[str, Any]) -> SourceRecord:
    """Map a public_profiles row to a SourceRecord."""
    return SourceRecord(
        key=row.get("id"),
        document=row.get("profile"),
        label=row.get("label"),
        source_version=row.get("updated_at"),
    )


class SourceTableReader:
    """
    Streams source records out of public_profiles.

    Full scans use a server-side cursor, so rows arrive in fetch_size chunks
    rather than as one result set. Consumers that keep rows (the bulk
    reconciler keeps one winning row per key) still grow with the table.
    """

    def __init__(self, pool: DatabaseConnectionPool, fetch_size: int = 1000):
        """
        Initialize reader.

        Args:
            pool: Database connection pool
            fetch_size: Rows fetched per round trip during full scans
        """
        self.pool = pool
        self.fetch_size = fetch_size

    def iter_records(self) -> Iterator[SourceRecord]:
        """Yield every source row in deterministic (id, updated_at) order."""
        with self.pool.get_connection() as conn:
            with conn.cursor(name="public_profiles_scan") as cur:
                cur.itersize = self.fetch_size
                cur.execute(SELECT_ALL_SQL)
                for row in cur:
                    yield row_to_source_record(row)

    def fetch(self, key: str) -> SourceRecord | None:
        """Return the committed state of one source row, or None if it is gone."""
        rows = self.pool.execute_query(SELECT_ONE_SQL, (key,))
        return row_to_source_record(rows[0]) if rows else None
