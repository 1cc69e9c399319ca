"""Lifecycle reconciler for Azure SQL Managed Instances.

This module implements create, read, update and delete for a single
resource type on top of azure-mgmt-sql:
1. Validate desired state (already done by the typed model)
2. Map it to an SDK request
3. Submit the long-running operation and wait for a terminal state
4. Read the remote state back into the typed model

LIFECYCLE:
absent -> creating -> present -> updating -> present -> deleting -> absent

Only ``present`` is durable. The transient states exist while an operation
is outstanding and are reported through logging; the reconciler keeps no
state of its own. Callers must serialise operations on the same identifier.

SECURITY: Each operation has one deadline; every Azure call it makes gets
the budget that remains. The administrator password never appears in logs
or error messages.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum
from typing import Any

from azure.core.exceptions import (
    AzureError,
    HttpResponseError,
    ResourceExistsError,
    ResourceNotFoundError,
)
from azure.core.polling import LROPoller
from azure.mgmt.sql import SqlManagementClient
from azure.mgmt.sql.models import ManagedInstance

from .config import Config
from .errors import (
    AlreadyExistsError,
    InvalidConfigError,
    NameConflictError,
    NotFoundError,
    OperationFailedError,
    ReadFailedError,
)
from .mapper import build_create_request, build_update_request, flatten_managed_instance
from .models import ManagedInstanceConfig, ManagedInstanceDiff, ManagedInstanceState
from .resource_id import ManagedInstanceId, parse_managed_instance_id
from .waiter import run_blocking, wait_for_completion

logger = logging.getLogger(__name__)

IMPORT_RESOURCE_TYPE = "sql_managed_instance"


class LifecycleState(str, Enum):
    """Lifecycle states of a managed instance as seen by the reconciler."""

    ABSENT = "absent"
    CREATING = "creating"
    PRESENT = "present"
    UPDATING = "updating"
    DELETING = "deleting"


def _status_code(error: HttpResponseError) -> int | None:
    if error.status_code is not None:
        return error.status_code
    if isinstance(error, ResourceExistsError):
        return 409
    if isinstance(error, ResourceNotFoundError):
        return 404
    return None


class ManagedInstanceReconciler:
    """Create, read, update and delete SQL Managed Instances.

    The SQL management client is injected so that one client can serve many
    reconcilers and tests can substitute an in-memory implementation.
    """

    def __init__(self, client: SqlManagementClient, config: Config) -> None:
        """Initialize reconciler.

        Args:
            client: SQL management client for the target subscription.
            config: Validated provider configuration.
        """
        self._client = client
        self._config = config

    @property
    def config(self) -> Config:
        """Get the reconciler configuration."""
        return self._config

    # -------------------------------------------------------------------------
    # Create
    # -------------------------------------------------------------------------

    async def create(self, desired: ManagedInstanceConfig) -> ManagedInstanceState:
        """Create a managed instance and return its observed state.

        The returned state's ``id`` is the durable identifier for all later
        operations.

        Raises:
            AlreadyExistsError: If require-unique is on and the instance exists.
            NameConflictError: If the name is taken anywhere in Azure.
            ReadFailedError: If the existence probe or final read fails.
            OperationFailedError: If the creation does not succeed.
        """
        instance_id = ManagedInstanceId(resource_group=desired.resource_group_name, name=desired.name)
        start_time = time.monotonic()
        deadline = start_time + self._config.timeouts.create_seconds

        if self._config.require_unique:
            existing = await self._get(
                instance_id,
                action="checking for presence of existing",
                timeout_seconds=self._remaining(deadline, "creating", instance_id),
            )
            if existing is not None:
                existing_id = existing.id or instance_id.id(self._config.subscription_id)
                raise AlreadyExistsError(
                    f"A resource with the ID {existing_id!r} already exists - to be managed "
                    f"this resource needs to be imported into state. See the import "
                    f"documentation for {IMPORT_RESOURCE_TYPE!r}.",
                    resource_id=existing_id,
                    resource_group=instance_id.resource_group,
                    name=instance_id.name,
                )

        parameters = build_create_request(desired)
        self._log_transition(LifecycleState.CREATING, instance_id)

        try:
            poller = await self._submit(
                lambda: self._client.managed_instances.begin_create_or_update(
                    instance_id.resource_group,
                    instance_id.name,
                    parameters,
                    polling_interval=self._config.poll_interval_seconds,
                ),
                timeout_seconds=self._remaining(deadline, "creating", instance_id),
                action="creating",
                instance_id=instance_id,
            )
        except OperationFailedError as e:
            if e.status_code == 409:
                raise NameConflictError(
                    f"SQL Managed Instance names need to be globally unique and "
                    f"{instance_id.name!r} is already in use.",
                    resource_group=instance_id.resource_group,
                    name=instance_id.name,
                ) from e
            raise

        await wait_for_completion(
            poller,
            timeout_seconds=self._remaining(deadline, "creating", instance_id),
            operation_name="creation",
            resource_group=instance_id.resource_group,
            name=instance_id.name,
        )

        resource = await self._get(
            instance_id,
            action="retrieving",
            timeout_seconds=self._remaining(deadline, "creating", instance_id),
        )
        if resource is None:
            raise OperationFailedError(
                f"SQL Managed Instance {instance_id.name!r} (Resource Group "
                f"{instance_id.resource_group!r}) was not found after creation",
                status_code=404,
                resource_group=instance_id.resource_group,
                name=instance_id.name,
            )

        resource_id = resource.id or instance_id.id(self._config.subscription_id)
        state = flatten_managed_instance(resource, instance_id, resource_id)
        self._log_transition(LifecycleState.PRESENT, instance_id, start_time=start_time)
        return state

    # -------------------------------------------------------------------------
    # Read / Import
    # -------------------------------------------------------------------------

    async def read(self, resource_id: str) -> ManagedInstanceState | None:
        """Read the observed state of a managed instance.

        Returns:
            The observed state, or None if the instance no longer exists.
            Callers should drop their persisted record on None.

        Raises:
            MalformedIdentifierError: If ``resource_id`` cannot be decoded.
            ReadFailedError: On any failure other than absence.
        """
        instance_id = parse_managed_instance_id(resource_id)

        resource = await self._get(instance_id, action="retrieving")
        if resource is None:
            logger.info(
                "SQL Managed Instance was not found - assuming removed",
                extra={
                    "resource_group": instance_id.resource_group,
                    "resource_name": instance_id.name,
                    "state": LifecycleState.ABSENT.value,
                },
            )
            return None

        return flatten_managed_instance(resource, instance_id, resource_id)

    async def import_state(self, resource_id: str) -> ManagedInstanceState:
        """Populate a full record from nothing but an identifier.

        Raises:
            NotFoundError: If the identifier resolves to no instance.
        """
        state = await self.read(resource_id)
        if state is None:
            instance_id = parse_managed_instance_id(resource_id)
            raise NotFoundError(
                f"Cannot import non-existent SQL Managed Instance {resource_id!r}",
                resource_group=instance_id.resource_group,
                name=instance_id.name,
            )
        return state

    # -------------------------------------------------------------------------
    # Update
    # -------------------------------------------------------------------------

    async def update(self, resource_id: str, diff: ManagedInstanceDiff) -> None:
        """Apply a sparse update containing only the changed fields.

        Does not read the instance back; call read() afterwards.

        Raises:
            MalformedIdentifierError: If ``resource_id`` cannot be decoded.
            InvalidConfigError: If the diff needs replacement rather than update.
            OperationFailedError: If the update does not succeed.
        """
        instance_id = parse_managed_instance_id(resource_id)

        replacement = set(diff.requires_replacement)
        if diff.desired.name != instance_id.name:
            replacement.add("name")
        if diff.desired.resource_group_name.lower() != instance_id.resource_group.lower():
            replacement.add("resource_group_name")
        if replacement:
            raise InvalidConfigError(
                f"Changing {sorted(replacement)} requires replacing SQL Managed Instance "
                f"{instance_id.name!r}; it cannot be updated in place",
                resource_group=instance_id.resource_group,
                name=instance_id.name,
            )

        if not diff.changed:
            logger.info(
                "No changes for SQL Managed Instance, skipping update",
                extra={
                    "resource_group": instance_id.resource_group,
                    "resource_name": instance_id.name,
                },
            )
            return

        parameters = build_update_request(diff)
        start_time = time.monotonic()
        deadline = start_time + self._config.timeouts.update_seconds
        self._log_transition(
            LifecycleState.UPDATING, instance_id, changed_fields=sorted(diff.changed)
        )

        poller = await self._submit(
            lambda: self._client.managed_instances.begin_update(
                instance_id.resource_group,
                instance_id.name,
                parameters,
                polling_interval=self._config.poll_interval_seconds,
            ),
            timeout_seconds=self._remaining(deadline, "updating", instance_id),
            action="updating",
            instance_id=instance_id,
        )

        await wait_for_completion(
            poller,
            timeout_seconds=self._remaining(deadline, "updating", instance_id),
            operation_name="update",
            resource_group=instance_id.resource_group,
            name=instance_id.name,
        )
        self._log_transition(LifecycleState.PRESENT, instance_id, start_time=start_time)

    # -------------------------------------------------------------------------
    # Delete
    # -------------------------------------------------------------------------

    async def delete(self, resource_id: str) -> None:
        """Delete a managed instance.

        Errors from the service are surfaced unchanged in meaning; callers
        that treat absence as success can check
        ``OperationFailedError.is_not_found``.

        Raises:
            MalformedIdentifierError: If ``resource_id`` cannot be decoded.
            OperationFailedError: If the deletion does not succeed.
        """
        instance_id = parse_managed_instance_id(resource_id)
        start_time = time.monotonic()
        deadline = start_time + self._config.timeouts.delete_seconds
        self._log_transition(LifecycleState.DELETING, instance_id)

        poller = await self._submit(
            lambda: self._client.managed_instances.begin_delete(
                instance_id.resource_group,
                instance_id.name,
                polling_interval=self._config.poll_interval_seconds,
            ),
            timeout_seconds=self._remaining(deadline, "deleting", instance_id),
            action="deleting",
            instance_id=instance_id,
        )

        await wait_for_completion(
            poller,
            timeout_seconds=self._remaining(deadline, "deleting", instance_id),
            operation_name="deletion",
            resource_group=instance_id.resource_group,
            name=instance_id.name,
        )
        self._log_transition(LifecycleState.ABSENT, instance_id, start_time=start_time)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _remaining(self, deadline: float, action: str, instance_id: ManagedInstanceId) -> float:
        """Seconds left before ``deadline``.

        Raises:
            OperationFailedError: If the operation's budget is used up.
        """
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise OperationFailedError(
                f"Timed out {action} SQL Managed Instance {instance_id.name!r} "
                f"(Resource Group {instance_id.resource_group!r})",
                resource_group=instance_id.resource_group,
                name=instance_id.name,
            )
        return remaining

    async def _get(
        self,
        instance_id: ManagedInstanceId,
        *,
        action: str,
        timeout_seconds: float | None = None,
    ) -> ManagedInstance | None:
        """Fetch an instance, mapping not-found to None.

        The read timeout applies, shortened to ``timeout_seconds`` when the
        read is one step of a larger operation.

        Raises:
            ReadFailedError: On any other failure, including the read timeout.
        """
        budget: float = self._config.timeouts.read_seconds
        if timeout_seconds is not None:
            budget = min(budget, timeout_seconds)

        try:
            return await run_blocking(
                lambda: self._client.managed_instances.get(
                    instance_id.resource_group, instance_id.name
                ),
                budget,
            )
        except ResourceNotFoundError:
            return None
        except HttpResponseError as e:
            if e.status_code == 404:
                return None
            raise ReadFailedError(
                f"Error {action} SQL Managed Instance {instance_id.name!r} "
                f"(Resource Group {instance_id.resource_group!r}): {e.message}",
                resource_group=instance_id.resource_group,
                name=instance_id.name,
            ) from e
        except TimeoutError as e:
            raise ReadFailedError(
                f"Timed out after {budget:g}s {action} "
                f"SQL Managed Instance {instance_id.name!r} "
                f"(Resource Group {instance_id.resource_group!r})",
                resource_group=instance_id.resource_group,
                name=instance_id.name,
            ) from e
        except AzureError as e:
            raise ReadFailedError(
                f"Error {action} SQL Managed Instance {instance_id.name!r} "
                f"(Resource Group {instance_id.resource_group!r}): {e}",
                resource_group=instance_id.resource_group,
                name=instance_id.name,
            ) from e

    async def _submit(
        self,
        begin_operation: Callable[[], LROPoller[Any]],
        *,
        timeout_seconds: float,
        action: str,
        instance_id: ManagedInstanceId,
    ) -> LROPoller[Any]:
        """Submit a long-running operation and return its poller.

        Raises:
            OperationFailedError: If the service rejects the request.
        """
        try:
            return await run_blocking(begin_operation, timeout_seconds)
        except HttpResponseError as e:
            logger.error(
                "Azure API error",
                extra={
                    "action": action,
                    "resource_group": instance_id.resource_group,
                    "resource_name": instance_id.name,
                    "status_code": _status_code(e),
                    "error": e.message,
                },
            )
            raise OperationFailedError(
                f"Error {action} SQL Managed Instance {instance_id.name!r} "
                f"(Resource Group {instance_id.resource_group!r}): {e.message}",
                status_code=_status_code(e),
                resource_group=instance_id.resource_group,
                name=instance_id.name,
            ) from e
        except TimeoutError as e:
            raise OperationFailedError(
                f"Timed out after {timeout_seconds:g}s {action} SQL Managed Instance "
                f"{instance_id.name!r} (Resource Group {instance_id.resource_group!r})",
                resource_group=instance_id.resource_group,
                name=instance_id.name,
            ) from e
        except AzureError as e:
            raise OperationFailedError(
                f"Error {action} SQL Managed Instance {instance_id.name!r} "
                f"(Resource Group {instance_id.resource_group!r}): {e}",
                resource_group=instance_id.resource_group,
                name=instance_id.name,
            ) from e

    def _log_transition(
        self,
        state: LifecycleState,
        instance_id: ManagedInstanceId,
        *,
        start_time: float | None = None,
        **fields: Any,
    ) -> None:
        """Log a lifecycle transition with structured data."""
        extra: dict[str, Any] = {
            "state": state.value,
            "resource_group": instance_id.resource_group,
            "resource_name": instance_id.name,
            **fields,
        }
        if start_time is not None:
            extra["duration_seconds"] = round(time.monotonic() - start_time, 3)
        logger.info("SQL Managed Instance lifecycle transition", extra=extra)
