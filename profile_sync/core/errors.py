"""
Error taxonomy for the profile sync engine.

None of these errors is allowed to abort the source mutation that triggered
a projection; boundary code catches, logs and counts them.
"""


class ProfileSyncError(Exception):
    """Base class for all profile sync errors."""


class UnresolvableKey(ProfileSyncError):
    """No usable key could be resolved from a source record."""

    def __init__(self, message: str = "Cannot determine original ID for flattening"):
        self.message = message
        super().__init__(message)


class EmptyDocument(ProfileSyncError):
    """The source document is null or empty."""

    def __init__(self, key: str | None):
        self.key = key
        super().__init__(f"Profile data is null or empty for original ID {key}")


class TransformFailure(ProfileSyncError):
    """The normalizer could not transform a document."""

    def __init__(self, key: str | None, cause: str):
        self.key = key
        self.cause = cause
        super().__init__(f"Failed to flatten profile {key}: {cause}")


class DedupAmbiguity(ProfileSyncError):
    """More than one source row resolved to the same key during a bulk reconcile."""

    def __init__(self, key: str, count: int):
        self.key = key
        self.count = count
        super().__init__(f"{count} source rows resolve to key {key}")


class StoreError(ProfileSyncError):
    """The derived store rejected a read or write."""

    def __init__(self, operation: str, key: str | None, cause: str):
        self.operation = operation
        self.key = key
        self.cause = cause
        super().__init__(f"Store {operation} failed for {key}: {cause}")
