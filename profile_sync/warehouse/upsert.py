"""
Idempotent upsert operations for the flattened_profiles table.

Implements INSERT ... ON CONFLICT UPDATE with a full column overwrite. The
search vector is computed inside the same statement, so a committed row and
its search representation can never disagree.
"""

import json
from typing import Any

import psycopg

from profile_sync.core.errors import StoreError
from profile_sync.core.models import FlattenedRecord, SearchRepresentation
from profile_sync.observability import metrics
from profile_sync.observability.logger import get_logger
from profile_sync.search import SearchIndexMaintainer

from .connection import DatabaseConnectionPool
from .store import ProfileStore

logger = get_logger(__name__)

# Derived columns overwritten on every upsert, in table order
DERIVED_COLUMNS = (
    "full_name",
    "first_name",
    "last_name",
    "email",
    "phone",
    "linkedin",
    "github_url",
    "website_url",
    "location",
    "current_title",
    "about_me",
    "gender",
    "current_company",
    "current_title_from_workexp",
    "current_start_date",
    "company_size",
    "company_industry",
    "company_location",
    "total_years_experience",
    "years_at_current_company",
    "past_experience",
    "skills",
    "technologies",
    "programming_languages",
    "previous_companies",
    "job_titles",
    "industries",
    "education_degrees",
    "education_schools",
    "education_fields",
    "certifications",
    "label",
    "profile_source",
    "full_jsonb",
    "source_version",
    "search_variant",
    "search_weights",
)

_INSERT_COLUMNS = ("original_id",) + DERIVED_COLUMNS + ("search_text", "last_updated")

_CASTS = {"full_jsonb": "::jsonb", "search_weights": "::jsonb"}

_VALUES = (
    ["%(original_id)s"]
    + [f"%({column})s{_CASTS.get(column, '')}" for column in DERIVED_COLUMNS]
    + [
        "setweight(to_tsvector('english'::regconfig, %(search_a)s::text), 'A') || "
        "setweight(to_tsvector('english'::regconfig, %(search_b)s::text), 'B') || "
        "setweight(to_tsvector('english'::regconfig, %(search_c)s::text), 'C') || "
        "setweight(to_tsvector('english'::regconfig, %(search_d)s::text), 'D')",
        "NOW()",
    ]
)

UPSERT_SQL = f"""
    INSERT INTO flattened_profiles (
        {", ".join(_INSERT_COLUMNS)}
    )
    VALUES (
        {", ".join(_VALUES)}
    )
    ON CONFLICT (original_id) DO UPDATE SET
        {", ".join(f"{column} = EXCLUDED.{column}" for column in _INSERT_COLUMNS[1:])}
    WHERE flattened_profiles.source_version IS NULL
        OR EXCLUDED.source_version IS NULL
        OR EXCLUDED.source_version >= flattened_profiles.source_version
"""

DELETE_SQL = "DELETE FROM flattened_profiles WHERE original_id = %s"

SELECT_SQL = f"""
    SELECT original_id, {", ".join(DERIVED_COLUMNS)}
    FROM flattened_profiles
    WHERE original_id = %s
"""


def record_params(record: FlattenedRecord) -> dict[str, Any]:
    """
    Build named query parameters for a record.

    Args:
        record: Record whose search representation is already current

    Returns:
        Parameter dictionary for UPSERT_SQL
    """
    search = record.search or SearchRepresentation()
    weighted = search.weighted

    params = record.derived_columns()
    params["original_id"] = record.key
    params["source_version"] = record.source_version
    params["full_jsonb"] = json.dumps(record.full_jsonb, default=str)
    params["search_variant"] = search.variant
    params["search_weights"] = json.dumps(weighted)
    for weight in ("A", "B", "C", "D"):
        params[f"search_{weight.lower()}"] = weighted.get(weight, "")
    return params


def row_to_record(row: dict[str, Any]) -> FlattenedRecord:
    """Rebuild a FlattenedRecord from a flattened_profiles row."""
    data = dict(row)
    key = data.pop("original_id")
    variant = data.pop("search_variant") or "structured"
    weighted = data.pop("search_weights") or {}
    if isinstance(weighted, str):
        weighted = json.loads(weighted)
    if isinstance(data.get("full_jsonb"), str):
        data["full_jsonb"] = json.loads(data["full_jsonb"])

    for column, value in list(data.items()):
        if value is None and column in FlattenedRecord.model_fields:
            default = FlattenedRecord.model_fields[column]
            if not default.is_required() and default.default_factory is not None:
                data[column] = default.default_factory()

    text = " ".join(weighted.get(weight, "") for weight in ("A", "B", "C", "D") if weighted.get(weight))
    return FlattenedRecord(
        key=key,
        search=SearchRepresentation(variant=variant, weighted=weighted, text=text),
        **data,
    )


class PostgresProfileStore(ProfileStore):
    """
    flattened_profiles table backed by PostgreSQL.

    All writes go through one INSERT ... ON CONFLICT statement per record, so
    there is never a visible intermediate state.
    """

    backend = "postgres"

    def __init__(
        self,
        pool: DatabaseConnectionPool,
        search_maintainer: SearchIndexMaintainer | None = None,
    ):
        """
        Initialize store.

        Args:
            pool: Database connection pool
            search_maintainer: Builds search representations on write
        """
        super().__init__(search_maintainer)
        self.pool = pool

    def upsert(self, record: FlattenedRecord) -> bool:
        record = self.search_maintainer.refresh(record)
        try:
            rowcount = self.pool.execute_command(UPSERT_SQL, record_params(record))
        except psycopg.Error as e:
            raise StoreError("upsert", record.key, str(e)) from e

        if rowcount == 0:
            logger.debug(
                f"Kept newer flattened profile {record.key}",
                extra={"key": record.key, "reason": "stale_event"}
            )
            return False

        metrics.increment_counter(
            metrics.store_writes_total, 1, backend=self.backend, operation="upsert"
        )
        return True

    def upsert_batch(self, records) -> int:
        """
        Upsert records in a single transaction.

        Returns:
            Number of records written (stale ones excluded)
        """
        refreshed = [self.search_maintainer.refresh(record) for record in records]
        if not refreshed:
            return 0

        written = 0
        try:
            with self.pool.transaction() as cur:
                for record in refreshed:
                    cur.execute(UPSERT_SQL, record_params(record))
                    written += cur.rowcount
        except psycopg.Error as e:
            raise StoreError("upsert_batch", None, str(e)) from e

        metrics.increment_counter(
            metrics.store_writes_total, written, backend=self.backend, operation="upsert"
        )
        return written

    def delete(self, key: str) -> bool:
        try:
            removed = self.pool.execute_command(DELETE_SQL, (key,)) > 0
        except psycopg.Error as e:
            raise StoreError("delete", key, str(e)) from e

        if removed:
            metrics.increment_counter(
                metrics.store_writes_total, 1, backend=self.backend, operation="delete"
            )
        return removed

    def get(self, key: str) -> FlattenedRecord | None:
        rows = self.pool.execute_query(SELECT_SQL, (key,))
        return row_to_record(rows[0]) if rows else None

    def count(self) -> int:
        rows = self.pool.execute_query("SELECT COUNT(*) AS total FROM flattened_profiles")
        return rows[0]["total"] if rows else 0

    def search(self, query: str, limit: int = 10) -> list[dict[str, Any]]:
        """
        Weighted full-text search over the stored search vector.

        Args:
            query: Plain-text query
            limit: Maximum number of results

        Returns:
            Rows with original_id, full_name, current_company and rank
        """
        return self.pool.execute_query(
            """
            SELECT original_id, full_name, current_company,
                   ts_rank(search_text, plainto_tsquery('english', %s)) AS rank
            FROM flattened_profiles
            WHERE search_text @@ plainto_tsquery('english', %s)
            ORDER BY rank DESC, original_id
            LIMIT %s
            """,
            (query, query, limit),
        )
