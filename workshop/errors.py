"""Error kinds raised by the booking lifecycle core."""


class LifecycleError(Exception):
    """Base error: a machine-checkable ``kind`` plus a human-readable ``reason``."""

    kind: str = "error"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class NotFoundError(LifecycleError):
    """Referenced booking, bay or service advisor does not exist."""

    kind = "not_found"

    def __init__(self, resource: str, identifier: object | None = None) -> None:
        self.resource = resource
        self.identifier = identifier
        reason = f"{resource} not found"
        if identifier is not None:
            reason = f"{resource} with id '{identifier}' not found"
        super().__init__(reason)


class ValidationError(LifecycleError):
    """A transition's preconditions are not met."""

    kind = "validation"


class ConflictError(LifecycleError):
    """The booking was modified concurrently; reload and retry."""

    kind = "conflict"


class StorageError(LifecycleError):
    """Durable store unavailable or a write failed."""

    kind = "storage"


class UnavailableError(LifecycleError):
    """An external directory did not answer in time or answered with an error."""

    kind = "unavailable"

    def __init__(self, service: str, detail: str | None = None) -> None:
        self.service = service
        reason = f"{service} is unavailable"
        if detail:
            reason = f"{reason}: {detail}"
        super().__init__(reason)


class ImmutableRecordError(StorageError):
    """Raised when something tries to update or delete a ledger row."""

    def __init__(self, model_name: str, operation: str, record_id: str) -> None:
        self.model_name = model_name
        self.operation = operation
        self.record_id = record_id
        super().__init__(
            f"Cannot {operation} {model_name} record {record_id}: "
            "process events are append-only"
        )
