"""
Change propagation from the source document store to the flattened store.

Every source mutation is projected with failure isolation: whatever happens
inside the transform or the derived-store write, the caller's mutation is
never blocked, rolled back or retried. Outcomes are returned as explicit
result variants and surfaced through logs and metrics.
"""

import time
from collections import Counter
from collections.abc import Iterable

from profile_sync.core.config import ProjectionConfig
from profile_sync.core.errors import EmptyDocument, StoreError, TransformFailure, UnresolvableKey
from profile_sync.core.flattening import ProfileNormalizer
from profile_sync.core.keys import require_projectable, resolve_key
from profile_sync.core.models import (
    ChangeEvent,
    Deleted,
    Flattened,
    ProjectionResult,
    Skipped,
    SourceRecord,
)
from profile_sync.observability import metrics
from profile_sync.observability.logger import get_logger
from profile_sync.warehouse.store import ProfileStore

logger = get_logger(__name__)


class ChangePropagator:
    """
    Applies source mutations to a ProfileStore, one event at a time.

    Flow for inserts and updates:
    1. Resolve the key (explicit key, document id, document original_id)
    2. Skip empty documents
    3. Normalize the document
    4. Upsert the full record (stale versions are rejected by the store)
    """

    def __init__(
        self,
        store: ProfileStore,
        config: ProjectionConfig | None = None,
        normalizer: ProfileNormalizer | None = None,
        current_year: int | None = None,
    ):
        """
        Initialize propagator.

        Args:
            store: Derived store receiving flattened records
            config: Projection policy
            normalizer: Normalizer to use (built from config when omitted)
            current_year: Fixed evaluation year, mainly for tests
        """
        self.store = store
        self.config = config or ProjectionConfig()
        self.normalizer = normalizer or ProfileNormalizer(self.config)
        self.store.bind_search_maintainer(self.normalizer.search_maintainer)
        self.current_year = current_year

    def _skip(self, operation: str, key: str | None, reason: str, detail: str) -> Skipped:
        logger.warning(
            f"Skipping flattened profile sync for {key}: {detail}",
            extra={"key": key, "reason": reason, "operation": operation}
        )
        metrics.record_propagation(operation, reason)
        return Skipped(key=key, reason=reason, detail=detail)

    def on_source_insert_or_update(
        self,
        record: SourceRecord,
        operation: str = "update",
    ) -> Flattened | Skipped:
        """
        Project an inserted or updated source record.

        Never raises; every failure comes back as Skipped and leaves any
        existing flattened record untouched.

        Args:
            record: The new state of the source row
            operation: "insert" or "update", used for logs and metrics

        Returns:
            Flattened on success, Skipped otherwise
        """
        try:
            key = require_projectable(record)
        except UnresolvableKey as e:
            return self._skip(operation, None, "unresolvable_key", e.message)
        except EmptyDocument as e:
            return self._skip(operation, e.key, "empty_document", "Profile data is null or empty")

        start = time.perf_counter()
        try:
            flattened = self.normalizer.normalize(
                record.document,
                key,
                label=record.label,
                source_version=record.source_version,
                current_year=self.current_year,
            )
        except TransformFailure as e:
            return self._skip(operation, key, "transform_failure", e.cause)
        except Exception as e:
            return self._skip(operation, key, "transform_failure", f"{type(e).__name__}: {e}")
        finally:
            metrics.transform_duration_seconds.observe(time.perf_counter() - start)

        try:
            written = self.store.upsert(flattened)
        except StoreError as e:
            return self._skip(operation, key, "write_failure", e.cause)
        except Exception as e:
            return self._skip(operation, key, "write_failure", f"{type(e).__name__}: {e}")

        if not written:
            return self._skip(
                operation, key, "stale_event",
                "A newer version of this profile is already flattened"
            )

        logger.info(
            f"Successfully synced flattened profile: {key} ({flattened.full_name})",
            extra={"key": key, "label": record.label, "operation": operation}
        )
        metrics.record_propagation(operation, "flattened")
        return Flattened(key=key, record=flattened)

    def on_source_delete(self, key_hint: SourceRecord | str | None) -> Deleted:
        """
        Remove the flattened record of a deleted source row.

        Idempotent: deleting an absent key is a no-op. Never raises.

        Args:
            key_hint: The outgoing source row, or its key

        Returns:
            Deleted with the resolved key and whether a record was removed
        """
        if isinstance(key_hint, SourceRecord):
            key = resolve_key(key_hint)
        else:
            key = resolve_key(SourceRecord(key=key_hint))

        if key is None:
            logger.warning(
                "Cannot determine original ID for delete, nothing removed",
                extra={"reason": "unresolvable_key", "operation": "delete"}
            )
            metrics.record_propagation("delete", "unresolvable_key")
            return Deleted(key=None, removed=False)

        try:
            removed = self.store.delete(key)
        except Exception as e:
            logger.warning(
                f"Failed to delete flattened profile {key}: {e}",
                extra={"key": key, "reason": "write_failure", "operation": "delete"}
            )
            metrics.record_propagation("delete", "write_failure")
            return Deleted(key=key, removed=False)

        if removed:
            logger.info(f"Deleted flattened profile: {key}", extra={"key": key})
        metrics.record_propagation("delete", "deleted" if removed else "absent")
        return Deleted(key=key, removed=removed)

    def handle(self, event: ChangeEvent) -> ProjectionResult:
        """Dispatch a single change event."""
        if event.operation == "delete":
            return self.on_source_delete(event.record)
        return self.on_source_insert_or_update(event.record, operation=event.operation)

    def consume(self, events: Iterable[ChangeEvent]) -> dict[str, int]:
        """
        Process events in delivery order.

        Args:
            events: Change events, ordered per key by source commit order

        Returns:
            Count of outcomes by kind ("flattened", "deleted", or skip reason)
        """
        outcomes: Counter[str] = Counter()
        for event in events:
            result = self.handle(event)
            if isinstance(result, Skipped):
                outcomes[result.reason] += 1
            else:
                outcomes[result.kind] += 1
        return dict(outcomes)
