"""
ReconcileReport model summarizing one bulk reconcile pass.
"""

from pydantic import BaseModel, Field, computed_field


class ReconcileReport(BaseModel):
    """
    Counts produced by the bulk reconciler.

    The gap between considered and written is a coarse failure signal.

    Attributes:
        considered: Source rows seen
        written: Flattened records upserted
        skipped: Rows without a usable key or document
        failed: Rows whose transform or write failed
        duplicates: Rows discarded by the dedup rule
        stale: Winners not written because the store already held a newer version
        duplicate_keys: Keys that more than one source row resolved to
        duration_seconds: Wall-clock duration of the pass
    """

    considered: int = Field(0, ge=0)
    written: int = Field(0, ge=0)
    skipped: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    duplicates: int = Field(0, ge=0)
    stale: int = Field(0, ge=0)
    duplicate_keys: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @computed_field
    @property
    def gap(self) -> int:
        return self.considered - self.written

    def summary(self) -> dict[str, int]:
        """Return the {considered, written, gap} triple."""
        return {
            "considered": self.considered,
            "written": self.written,
            "gap": self.gap,
        }
