"""
Exceptions for the podmigrator package.

Exception Hierarchy:
    PodMigratorError (base)
    +-- NotFoundError
    |   +-- JobNotFoundError
    |   +-- WorkloadNotFoundError
    +-- ConflictError
    +-- CollectionError
    +-- ProvisioningError
    +-- ReadinessTimeoutError
    +-- CleanupWarning
    +-- PlatformForbiddenError
    +-- InvalidTransitionError
    +-- DeadlineExceededError
    +-- StepFailedError

Fail-fast errors (ProvisioningError, ReadinessTimeoutError, WorkloadNotFoundError,
DeadlineExceededError) end a migration as ``failed``. Best-effort errors
(CollectionError, CleanupWarning) are contained at the step boundary and only
logged.
"""

from __future__ import annotations


class PodMigratorError(Exception):
    """
    Base exception for all podmigrator errors.

    Attributes:
        message: Human-readable error description.
        migration_id: ID of the migration job involved, if any.
    """

    def __init__(self, message: str, *, migration_id: str | None = None) -> None:
        self.message = message
        self.migration_id = migration_id
        super().__init__(message)

    def __str__(self) -> str:
        """Return formatted error string with context."""
        if self.migration_id:
            return f"{self.message} migration_id={self.migration_id}"
        return self.message


class NotFoundError(PodMigratorError):
    """Raised when a job or workload does not exist."""

    pass


class JobNotFoundError(NotFoundError):
    """Raised when a migration job ID is unknown to the registry."""

    def __init__(self, migration_id: str) -> None:
        super().__init__(f"Migration {migration_id} not found", migration_id=migration_id)


class WorkloadNotFoundError(NotFoundError):
    """Raised when the platform has no workload with the given identity."""

    def __init__(
        self,
        namespace: str,
        name: str,
        *,
        migration_id: str | None = None,
    ) -> None:
        self.namespace = namespace
        self.name = name
        super().__init__(f"Workload {namespace}/{name} not found", migration_id=migration_id)


class ConflictError(PodMigratorError):
    """
    Raised when a job ID is registered twice.

    Job IDs are generated collision-free, so this indicates a programming
    error rather than a caller mistake.
    """

    def __init__(self, migration_id: str) -> None:
        super().__init__(
            f"Migration {migration_id} is already registered", migration_id=migration_id
        )


class CollectionError(PodMigratorError):
    """Raised when resource-usage sampling is unavailable."""

    pass


class ProvisioningError(PodMigratorError):
    """Raised when the platform rejects a volume claim or workload creation."""

    pass


class ReadinessTimeoutError(PodMigratorError):
    """Raised when a new workload does not become ready in time."""

    def __init__(
        self,
        namespace: str,
        name: str,
        timeout: float,
        *,
        migration_id: str | None = None,
    ) -> None:
        self.namespace = namespace
        self.name = name
        self.timeout = timeout
        super().__init__(
            f"Workload {namespace}/{name} not ready after {timeout:g}s",
            migration_id=migration_id,
        )


class CleanupWarning(PodMigratorError):
    """Raised when deleting the original workload fails. Never fails a job."""

    pass


class PlatformForbiddenError(PodMigratorError):
    """Raised when the platform refuses an operation."""

    pass


class InvalidTransitionError(PodMigratorError):
    """Raised when a job status change would leave a terminal state or go backwards."""

    def __init__(self, current: str, target: str, *, migration_id: str | None = None) -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Cannot transition from {current} to {target}", migration_id=migration_id
        )


class DeadlineExceededError(PodMigratorError):
    """Raised when a migration job runs past its deadline."""

    def __init__(self, timeout: float, *, migration_id: str | None = None) -> None:
        self.timeout = timeout
        super().__init__(
            f"Migration timed out after {timeout:g}s", migration_id=migration_id
        )


class StepFailedError(PodMigratorError):
    """
    Raised by the pipeline runner when a fail-fast step fails.

    Attributes:
        step_name: Name of the failing step.
        cause: The original exception.
    """

    def __init__(
        self,
        step_name: str,
        cause: BaseException,
        *,
        migration_id: str | None = None,
    ) -> None:
        self.step_name = step_name
        self.cause = cause
        super().__init__(f"Step '{step_name}' failed: {cause}", migration_id=migration_id)


__all__ = [
    "PodMigratorError",
    "NotFoundError",
    "JobNotFoundError",
    "WorkloadNotFoundError",
    "ConflictError",
    "CollectionError",
    "ProvisioningError",
    "ReadinessTimeoutError",
    "CleanupWarning",
    "PlatformForbiddenError",
    "InvalidTransitionError",
    "DeadlineExceededError",
    "StepFailedError",
]
