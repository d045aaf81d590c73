"""Stabilization and transient-retry decisions.

A handler never sleeps. Waiting is expressed by returning IN_PROGRESS with a
callback delay; the counters that bound the waiting travel in the callback
context (``attempt`` for polls, ``retries`` for transient failures).
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from resource_handler.core.errors import HandlerError, HandlerErrorCode
from resource_handler.core.progress import ProgressEvent

if TYPE_CHECKING:
    from resource_handler.core.context import CallbackContext

logger = logging.getLogger(__name__)

Numeric = int | float


@dataclass(frozen=True)
class RetryDecision:
    """Decision about whether to re-invoke and after what delay."""

    should_retry: bool
    delay_seconds: int

    @classmethod
    def retry(cls, delay_seconds: int) -> RetryDecision:
        return cls(should_retry=True, delay_seconds=delay_seconds)

    @classmethod
    def no_retry(cls) -> RetryDecision:
        return cls(should_retry=False, delay_seconds=0)


@dataclass(frozen=True)
class StabilizationPolicy:
    """Bounds for one operation's IN_PROGRESS chain.

    Attributes:
        max_attempts: Polls allowed before giving up with ``NotStabilized``.
        delay_seconds: Delay requested between polls.
        max_retries: Consecutive transient failures tolerated.
        retry_delay_seconds: First backoff delay after a transient failure.
        backoff_rate: Multiplier applied per consecutive transient failure.
        max_delay_seconds: Ceiling for any requested delay.
    """

    max_attempts: int = 60
    delay_seconds: int = 5
    max_retries: int = 5
    retry_delay_seconds: int = 5
    backoff_rate: Numeric = 2.0
    max_delay_seconds: int = 60

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.delay_seconds < 0 or self.retry_delay_seconds < 0:
            raise ValueError("delays must be >= 0")


def retry_decision(policy: StabilizationPolicy, error: HandlerError, retries: int) -> RetryDecision:
    """Decide whether *error* after *retries* prior retries earns another invocation."""
    if not error.retryable or retries >= policy.max_retries:
        return RetryDecision.no_retry()

    delay = min(
        policy.retry_delay_seconds * (policy.backoff_rate**retries),
        policy.max_delay_seconds,
    )
    return RetryDecision.retry(max(1, math.ceil(delay)))


def poll(
    policy: StabilizationPolicy,
    context: CallbackContext,
    *,
    converged: bool,
    model: Any,
    what: str,
    **changes: Any,
) -> ProgressEvent:
    """Outcome of one stabilization poll.

    Converged -> SUCCESS with *model*; still pending -> IN_PROGRESS with the
    context advanced by one attempt; out of attempts -> FAILED(NotStabilized).
    """
    if converged:
        logger.info("%s stabilized after %d poll(s)", what, context.attempt)
        return ProgressEvent.success(model)

    next_context = context.advance(**changes)
    if next_context.attempt >= policy.max_attempts:
        logger.warning("%s did not stabilize within %d polls", what, policy.max_attempts)
        return ProgressEvent.failed(
            HandlerErrorCode.NOT_STABILIZED,
            f"{what} did not stabilize after {policy.max_attempts} attempts",
            model=model,
        )

    logger.debug("%s pending (attempt %d)", what, next_context.attempt)
    return ProgressEvent.in_progress(model, next_context, policy.delay_seconds)


def retry_or_fail(
    policy: StabilizationPolicy,
    context: CallbackContext,
    error: HandlerError,
    *,
    model: Any,
    what: str,
) -> ProgressEvent:
    """Outcome of a classified downstream failure.

    Retryable and within budget -> IN_PROGRESS with backoff, keeping every
    piece of progress already stored in *context*; otherwise FAILED with the
    error's own code.
    """
    decision = retry_decision(policy, error, context.retries)
    if not decision.should_retry:
        if error.retryable:
            logger.warning("%s: giving up after %d retries: %s", what, context.retries, error)
        return ProgressEvent.failed(error.code, error.message, model=model)

    logger.warning(
        "%s: transient %s, retrying in %ds (retry %d/%d)",
        what,
        error.code.value,
        decision.delay_seconds,
        context.retries + 1,
        policy.max_retries,
    )
    return ProgressEvent.in_progress(
        model,
        context.retried(),
        min(decision.delay_seconds, policy.max_delay_seconds),
        message=error.message,
    )
