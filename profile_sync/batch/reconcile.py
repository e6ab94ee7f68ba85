"""
Bulk reconcile: rebuild the flattened store from the full source set.

Replays the normalizer over every source row with a usable key and document,
keeps exactly one row per key, and writes with the same full-overwrite upsert
as live propagation.
"""

from collections.abc import Iterable
from typing import Any

from profile_sync.core.config import ProjectionConfig
from profile_sync.core.errors import DedupAmbiguity, EmptyDocument, StoreError, UnresolvableKey
from profile_sync.core.flattening import ProfileNormalizer
from profile_sync.core.keys import require_projectable
from profile_sync.core.models import FlattenedRecord, ReconcileReport, SourceRecord
from profile_sync.observability import metrics
from profile_sync.observability.logger import get_logger, log_operation
from profile_sync.warehouse.store import ProfileStore

logger = get_logger(__name__)


def _beats(candidate: SourceRecord, incumbent: SourceRecord) -> bool:
    """
    Dedup rule: the newest source_version wins.

    A versioned row beats an unversioned one; on equal or missing versions the
    incumbent (earlier in input order) is kept.
    """
    if candidate.source_version is None:
        return False
    if incumbent.source_version is None:
        return True
    return candidate.source_version > incumbent.source_version


class BulkReconciler:
    """
    Rebuilds flattened records for a whole source set.

    Flow:
    1. Drop rows without a usable key or document
    2. Deduplicate to one winning row per key
    3. Normalize each winner (failures are contained per row)
    4. Upsert in batches
    """

    def __init__(
        self,
        store: ProfileStore,
        config: ProjectionConfig | None = None,
        normalizer: ProfileNormalizer | None = None,
        current_year: int | None = None,
    ):
        """
        Initialize reconciler.

        Args:
            store: Derived store to rebuild
            config: Projection policy (batch size, strict dedup)
            normalizer: Normalizer to use (built from config when omitted)
            current_year: Fixed evaluation year, mainly for tests
        """
        self.store = store
        self.config = config or ProjectionConfig()
        self.normalizer = normalizer or ProfileNormalizer(self.config)
        self.store.bind_search_maintainer(self.normalizer.search_maintainer)
        self.current_year = current_year
        self.batch_size = self.config.reconcile.batch_size
        self.strict_dedup = self.config.reconcile.strict_dedup

    def select_winners(
        self,
        records: Iterable[SourceRecord],
        report: ReconcileReport,
    ) -> dict[str, SourceRecord]:
        """
        Apply the dedup rule, counting considered, skipped and duplicate rows.

        The winning row of every key is kept until all rows are read, so memory
        grows with the number of distinct keys.

        Args:
            records: Source rows in result-set order
            report: Report updated in place

        Returns:
            Winning row per key, in first-seen key order

        Raises:
            DedupAmbiguity: If strict dedup is enabled and a key repeats
        """
        winners: dict[str, SourceRecord] = {}
        seen: dict[str, int] = {}

        for record in records:
            report.considered += 1
            try:
                key = require_projectable(record)
            except (UnresolvableKey, EmptyDocument):
                report.skipped += 1
                continue

            seen[key] = seen.get(key, 0) + 1
            incumbent = winners.get(key)
            if incumbent is None or _beats(record, incumbent):
                winners[key] = record

        for key, count in seen.items():
            if count < 2:
                continue
            ambiguity = DedupAmbiguity(key, count)
            if self.strict_dedup:
                raise ambiguity
            logger.warning(
                f"{ambiguity}; keeping the newest row",
                extra={"key": key, "reason": "duplicate_key", "rows": count}
            )
            report.duplicates += count - 1
            report.duplicate_keys.append(key)

        return winners

    def _flatten(self, key: str, record: SourceRecord) -> FlattenedRecord | None:
        try:
            return self.normalizer.normalize(
                record.document,
                key,
                label=record.label,
                source_version=record.source_version,
                current_year=self.current_year,
            )
        except Exception as e:
            logger.warning(
                f"Failed to flatten profile {key}: {e}",
                extra={"key": key, "reason": "transform_failure"}
            )
            return None

    def _write(self, batch: list[FlattenedRecord], report: ReconcileReport) -> None:
        try:
            written = self.store.upsert_batch(batch)
        except StoreError as e:
            logger.warning(
                f"Failed to write batch of {len(batch)} flattened profiles: {e.cause}",
                extra={"reason": "write_failure", "batch_size": len(batch)}
            )
            report.failed += len(batch)
            return
        report.written += written
        report.stale += len(batch) - written

    def reconcile(self, records: Iterable[SourceRecord]) -> ReconcileReport:
        """
        Rebuild flattened records from a source set.

        Args:
            records: Every source row, in result-set order

        Returns:
            ReconcileReport with considered, written and gap counts
        """
        report = ReconcileReport()

        with log_operation("Bulk reconcile", logger=logger, batch_size=self.batch_size) as operation:
            winners = self.select_winners(records, report)

            batch: list[FlattenedRecord] = []
            for key, record in winners.items():
                flattened = self._flatten(key, record)
                if flattened is None:
                    report.failed += 1
                    continue
                batch.append(flattened)
                if len(batch) >= self.batch_size:
                    self._write(batch, report)
                    batch = []

            if batch:
                self._write(batch, report)

        report.duration_seconds = round(operation.duration, 3)

        logger.info(
            "Bulk reconcile complete",
            extra=report.model_dump()
        )
        metrics.record_reconcile(
            written=report.written,
            skipped=report.skipped,
            failed=report.failed,
            duplicates=report.duplicates,
            gap=report.gap,
            duration_seconds=report.duration_seconds,
        )
        return report


def bulk_reconcile(
    all_source_records: Iterable[SourceRecord],
    store: ProfileStore,
    config: ProjectionConfig | None = None,
    **kwargs: Any,
) -> dict[str, int]:
    """
    Rebuild the flattened store and return {considered, written, gap}.

    Args:
        all_source_records: Every source row
        store: Derived store to rebuild
        config: Projection policy
        **kwargs: Passed to BulkReconciler

    Returns:
        Summary counts
    """
    reconciler = BulkReconciler(store, config, **kwargs)
    return reconciler.reconcile(all_source_records).summary()
