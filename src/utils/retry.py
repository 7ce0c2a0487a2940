"""Retrying executor for directory point reads.

Wraps a zero-argument coroutine function with bounded attempts and the
shared backoff policy. Any ``Exception`` is retried; task cancellation
(``asyncio.CancelledError``, a ``BaseException``) never is and escapes
immediately, including while waiting out a backoff delay.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypeVar

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from utils.backoff import DEFAULT_BACKOFF, BackoffPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


async def execute_with_retry(
    operation: Callable[[], Awaitable[T]],
    *,
    policy: BackoffPolicy = DEFAULT_BACKOFF,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    operation_name: str = "operation",
    log_extra: dict[str, Any] | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` up to ``max_attempts`` times.

    Args:
        operation: Coroutine function performing one attempt.
        policy: Backoff policy computing the delay after each failed attempt.
        max_attempts: Total attempts including the first.
        operation_name: Name used in log records.
        log_extra: Extra structured fields (e.g. target id) for log records.
        sleep: Awaitable sleep used between attempts.

    Returns:
        The result of the first successful attempt.

    Raises:
        The exception of the final attempt once attempts are exhausted.
        asyncio.CancelledError as soon as the caller is cancelled.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")

    extra = dict(log_extra or {})
    extra["operation"] = operation_name

    def _log_retry(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception()
        delay = retry_state.next_action.sleep if retry_state.next_action else None
        logger.warning(
            "Directory call failed, waiting for eventual consistency before retrying",
            extra={
                **extra,
                "attempt": retry_state.attempt_number,
                "maxAttempts": max_attempts,
                "delaySeconds": round(delay, 3) if delay is not None else None,
                "error": str(exc),
                "errorType": type(exc).__name__,
            },
        )

    retrying = AsyncRetrying(
        retry=retry_if_exception_type(Exception),
        stop=stop_after_attempt(max_attempts),
        wait=policy,
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
    return await retrying(operation)
