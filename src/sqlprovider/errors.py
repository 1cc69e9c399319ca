"""Exception taxonomy for managed instance reconciliation.

Every error carries the resource type, resource group and name so callers
can log and retry without re-deriving context. Nothing in this package
retries automatically; retry policy belongs to the orchestrator.
"""

from __future__ import annotations

from typing import Any

RESOURCE_TYPE = "SQL Managed Instance"


class ReconcileError(Exception):
    """Base class for all reconciliation failures."""

    def __init__(
        self,
        message: str,
        *,
        resource_group: str | None = None,
        name: str | None = None,
        resource_type: str = RESOURCE_TYPE,
    ) -> None:
        super().__init__(message)
        self.resource_type = resource_type
        self.resource_group = resource_group
        self.name = name

    def log_context(self) -> dict[str, Any]:
        """Structured fields for logger ``extra``."""
        return {
            "resource_type": self.resource_type,
            "resource_group": self.resource_group,
            "resource_name": self.name,
            "error_type": type(self).__name__,
        }


class InvalidConfigError(ReconcileError):
    """Desired configuration failed validation.

    Raised before any network call and never worth retrying.
    """


class MalformedIdentifierError(ReconcileError):
    """A resource identifier could not be decoded."""

    def __init__(self, message: str, *, resource_id: str) -> None:
        super().__init__(message)
        self.resource_id = resource_id


class MissingResourceGroupError(MalformedIdentifierError):
    """The identifier has no resourceGroups segment."""


class MissingNameSegmentError(MalformedIdentifierError):
    """The identifier has no managedInstances segment."""


class AlreadyExistsError(ReconcileError):
    """Pre-flight probe found an instance that is not yet managed."""

    def __init__(self, message: str, *, resource_id: str, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.resource_id = resource_id


class NameConflictError(ReconcileError):
    """The service rejected the name as already used elsewhere.

    Managed instance names are globally unique, so this can happen even
    when nothing exists in the target resource group.
    """


class NotFoundError(ReconcileError):
    """An import targeted an identifier that resolves to nothing."""


class OperationFailedError(ReconcileError):
    """A create, update or delete did not reach a successful terminal state."""

    def __init__(self, message: str, *, status_code: int | None = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code

    @property
    def is_not_found(self) -> bool:
        """True when the service reported the target as absent."""
        return self.status_code == 404

    def log_context(self) -> dict[str, Any]:
        context = super().log_context()
        context["status_code"] = self.status_code
        return context


class ReadFailedError(ReconcileError):
    """Reading remote state failed for a reason other than absence.

    Callers may retry.
    """
