"""Domain exceptions for integration, sync and query operations."""


class SyncDBError(Exception):
    """Base exception for GitHub Sync DB errors."""

    pass


class IntegrationNotFoundError(SyncDBError):
    """Raised when a referenced integration does not exist."""

    def __init__(self, integration_id: int) -> None:
        super().__init__(f"Integration {integration_id} not found")
        self.integration_id = integration_id


class IntegrationInactiveError(SyncDBError):
    """Raised when an operation requires an active integration."""

    def __init__(self, integration_id: int, status: str) -> None:
        super().__init__(f"Integration {integration_id} is not active (status={status})")
        self.integration_id = integration_id
        self.status = status


class IntegrationTransactionError(SyncDBError):
    """Raised when a remove/resync transaction fails and is rolled back."""

    pass


class UpsertWriteError(SyncDBError):
    """Raised when a bulk upsert for one entity kind fails.

    The failed unit has already been rolled back when this is raised.
    """

    def __init__(self, kind: str, scope: str, cause: Exception) -> None:
        super().__init__(f"Failed to write {kind} for {scope}: {cause}")
        self.kind = kind
        self.scope = scope


class WorkerJobError(SyncDBError):
    """Raised to the submitter when a worker pool job fails."""

    def __init__(self, message: str, trace: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.trace = trace


class CollectionNotFoundError(SyncDBError):
    """Raised when a collection name does not match any entity kind."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Collection '{name}' not found")
        self.name = name


class QueryTimeoutError(SyncDBError):
    """Raised when a read query exceeds its execution time cap."""

    pass
