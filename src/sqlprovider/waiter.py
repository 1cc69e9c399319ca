"""Long-running operation waiter for the synchronous Azure SDK.

SDK calls block, so they run in the default executor and are awaited with
asyncio.wait_for. The poller polls on its own daemon thread; the waiter only
joins it in short slices with ``poller.wait(timeout)`` and checks
``poller.done()`` in between. No executor thread outlives a slice, so a
timeout or cancellation returns control within one slice.

Cancelling the awaiting task stops the wait only. The operation keeps
running on the service side; the last observed poller status is logged.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from typing import Any, TypeVar

from azure.core.exceptions import AzureError, HttpResponseError
from azure.core.polling import LROPoller

from .errors import OperationFailedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Longest a single executor call blocks while waiting on a poller
WAIT_SLICE_SECONDS = 1.0


async def run_blocking(call: Callable[[], T], timeout_seconds: float) -> T:
    """Run a blocking SDK call in the executor with a timeout.

    Raises:
        TimeoutError: If the call does not return within ``timeout_seconds``.
    """
    loop = asyncio.get_event_loop()
    return await asyncio.wait_for(loop.run_in_executor(None, call), timeout=timeout_seconds)


def _poller_status(poller: LROPoller[Any]) -> str:
    try:
        return str(poller.status())
    except AzureError:
        return "unknown"


async def _wait_until_done(poller: LROPoller[Any], deadline: float) -> None:
    while not poller.done():
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError
        step = min(remaining, WAIT_SLICE_SECONDS)
        await run_blocking(lambda: poller.wait(step), step + WAIT_SLICE_SECONDS)


async def wait_for_completion(
    poller: LROPoller[T],
    *,
    timeout_seconds: float,
    operation_name: str,
    resource_group: str,
    name: str,
) -> T:
    """Block until the poller reaches a terminal state.

    Args:
        poller: Poller returned by a ``begin_*`` SDK call.
        timeout_seconds: Maximum time to wait for a terminal state.
        operation_name: Noun for messages ("creation", "update", "deletion").
        resource_group: Resource group of the target, for error context.
        name: Name of the target, for error context.

    Returns:
        The poller result.

    Raises:
        OperationFailedError: If the operation failed, was cancelled by the
            service, or did not finish within the timeout.
    """
    context = {"operation": operation_name, "resource_group": resource_group, "resource_name": name}

    try:
        await _wait_until_done(poller, time.monotonic() + timeout_seconds)
        # Terminal, so this returns without blocking
        return poller.result()
    except TimeoutError as e:
        logger.error(
            f"Timed out waiting for {operation_name}",
            extra={**context, "timeout_seconds": timeout_seconds, "status": _poller_status(poller)},
        )
        raise OperationFailedError(
            f"Timed out after {timeout_seconds:g}s waiting for {operation_name} of "
            f"SQL Managed Instance {name!r} (Resource Group {resource_group!r})",
            resource_group=resource_group,
            name=name,
        ) from e
    except HttpResponseError as e:
        raise OperationFailedError(
            f"Error waiting for {operation_name} of SQL Managed Instance {name!r} "
            f"(Resource Group {resource_group!r}): {e.message}",
            status_code=e.status_code,
            resource_group=resource_group,
            name=name,
        ) from e
    except AzureError as e:
        raise OperationFailedError(
            f"Error waiting for {operation_name} of SQL Managed Instance {name!r} "
            f"(Resource Group {resource_group!r}): {e}",
            resource_group=resource_group,
            name=name,
        ) from e
    except asyncio.CancelledError:
        logger.warning(
            f"Wait for {operation_name} cancelled, operation continues server-side",
            extra={**context, "status": _poller_status(poller)},
        )
        raise
