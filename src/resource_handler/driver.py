"""Local re-invocation driver.

Plays the orchestrator's part for local runs and tests: re-invoke with the
returned callback context after the suggested delay until the operation
reaches a terminal status.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from resource_handler.core.progress import OperationStatus

logger = logging.getLogger(__name__)

EntrypointFn = Callable[[Mapping[str, Any], Any], dict[str, Any]]
EventCallback = Callable[[int, dict[str, Any]], None]


class DriverTimeoutError(RuntimeError):
    """Raised when an operation is still IN_PROGRESS after the invocation budget."""

    def __init__(self, invocations: int, last_event: dict[str, Any]) -> None:
        super().__init__(f"Operation still IN_PROGRESS after {invocations} invocation(s)")
        self.invocations = invocations
        self.last_event = last_event


def drive(
    entrypoint_fn: EntrypointFn,
    event: Mapping[str, Any],
    *,
    max_invocations: int = 100,
    sleep: Callable[[float], None] = time.sleep,
    on_event: EventCallback | None = None,
) -> dict[str, Any]:
    """Invoke *entrypoint_fn* until it returns a terminal event.

    Args:
        entrypoint_fn: ``entrypoint`` or ``test_entrypoint`` style callable.
        event: First event; ``callbackContext`` is replaced on each round.
        max_invocations: Invocation budget before ``DriverTimeoutError``.
        sleep: Called with each requested ``callbackDelaySeconds``.
        on_event: Called with ``(invocation_number, response)`` after every call.

    Returns:
        The terminal wire event.
    """
    if max_invocations < 1:
        raise ValueError("max_invocations must be >= 1")

    current = dict(event)
    response: dict[str, Any] = {}
    for invocation in range(1, max_invocations + 1):
        response = entrypoint_fn(current, None)
        if on_event is not None:
            on_event(invocation, response)

        if response.get("status") != OperationStatus.IN_PROGRESS.value:
            logger.debug("Terminal %s after %d invocation(s)", response.get("status"), invocation)
            return response

        delay = response.get("callbackDelaySeconds") or 0
        logger.debug("Invocation %d in progress; re-invoking in %ss", invocation, delay)
        if delay:
            sleep(delay)
        current = {**current, "callbackContext": response.get("callbackContext")}

    raise DriverTimeoutError(max_invocations, response)
