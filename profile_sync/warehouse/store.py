"""
Flattened profile store interface.

Every backend implements the same contract: a single atomic, full-column
overwrite upsert keyed by original_id, guarded by a per-key version check,
and an idempotent delete.
"""

import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable

from profile_sync.core.models import FlattenedRecord
from profile_sync.observability import metrics
from profile_sync.observability.logger import get_logger
from profile_sync.search import SearchIndexMaintainer

logger = get_logger(__name__)


def is_stale(incoming: FlattenedRecord, existing: FlattenedRecord | None) -> bool:
    """
    Whether incoming is older than the stored record for the same key.

    Records without a version never count as stale and always overwrite.
    """
    if existing is None:
        return False
    if incoming.source_version is None or existing.source_version is None:
        return False
    return incoming.source_version < existing.source_version


class ProfileStore(ABC):
    """
    Abstract derived store for flattened profiles.

    Subclasses recompute the search representation through the maintainer on
    every write so it is stored together with the record it describes.
    """

    backend = "abstract"

    def __init__(self, search_maintainer: SearchIndexMaintainer | None = None):
        self.search_maintainer = search_maintainer or SearchIndexMaintainer()

    def bind_search_maintainer(self, maintainer: SearchIndexMaintainer) -> None:
        """Index writes with the given maintainer, the one the records were normalized with."""
        if maintainer.variant != self.search_maintainer.variant:
            logger.info(
                f"Store search variant switched to {maintainer.variant}",
                extra={"backend": self.backend, "previous": self.search_maintainer.variant},
            )
        self.search_maintainer = maintainer

    @abstractmethod
    def upsert(self, record: FlattenedRecord) -> bool:
        """
        Insert or fully overwrite the record at record.key.

        Returns:
            True if written, False if skipped because a newer version is stored

        Raises:
            StoreError: If the backend rejects the write
        """

    @abstractmethod
    def delete(self, key: str) -> bool:
        """
        Remove the record at key.

        Returns:
            True if a record existed, False if the delete was a no-op
        """

    @abstractmethod
    def get(self, key: str) -> FlattenedRecord | None:
        """Return the stored record for key, or None."""

    @abstractmethod
    def count(self) -> int:
        """Return the number of stored records."""

    def upsert_batch(self, records: Iterable[FlattenedRecord]) -> int:
        """
        Upsert several records.

        Returns:
            Number of records written (stale ones excluded)
        """
        return sum(1 for record in records if self.upsert(record))


class InMemoryProfileStore(ProfileStore):
    """
    Dictionary-backed store for local runs, debugging and tests.

    A lock makes each upsert's read-check-write sequence atomic.
    """

    backend = "memory"

    def __init__(self, search_maintainer: SearchIndexMaintainer | None = None):
        super().__init__(search_maintainer)
        self._records: dict[str, FlattenedRecord] = {}
        self._lock = threading.Lock()

    def upsert(self, record: FlattenedRecord) -> bool:
        record = self.search_maintainer.refresh(record)
        with self._lock:
            if is_stale(record, self._records.get(record.key)):
                return False
            self._records[record.key] = record
        metrics.increment_counter(
            metrics.store_writes_total, 1, backend=self.backend, operation="upsert"
        )
        return True

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._records.pop(key, None) is not None
        if removed:
            metrics.increment_counter(
                metrics.store_writes_total, 1, backend=self.backend, operation="delete"
            )
        return removed

    def get(self, key: str) -> FlattenedRecord | None:
        with self._lock:
            return self._records.get(key)

    def count(self) -> int:
        with self._lock:
            return len(self._records)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._records)
