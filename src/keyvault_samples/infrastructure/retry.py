"""Classified HTTP retry executor built on tenacity.

Runs one async network operation under a RetryPolicy: status codes of
failed attempts are classified into continue / retry / abort, retries back
off exponentially, and every decision is logged before sleeping or stopping.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from azure.core.exceptions import HttpResponseError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from keyvault_samples.domain.models.retry_policy import RetryDecision, RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


class RetryPolicyViolation(RuntimeError):
    """Raised when a status code is designated 'abort' by the policy."""

    def __init__(self, operation_name: str, status_code: int, attempt: int):
        self.operation_name = operation_name
        self.status_code = status_code
        self.attempt = attempt
        super().__init__(
            f"status code {status_code} is designated as 'abort'; terminating request {operation_name}"
        )


class RetryCancelledError(RuntimeError):
    """Raised when the cancel event is set before an attempt or during backoff."""

    def __init__(self, operation_name: str, attempt: int):
        self.operation_name = operation_name
        self.attempt = attempt
        super().__init__(f"{operation_name} cancelled before attempt #{attempt}")


class _RetriableStatus(Exception):
    """Carries a retriable HTTP error through tenacity."""

    def __init__(self, error: HttpResponseError):
        super().__init__(str(error))
        self.error = error


def _status_code_of(error: HttpResponseError) -> Optional[int]:
    status_code = error.status_code
    if status_code is None and error.response is not None:
        status_code = getattr(error.response, "status_code", None)
    return status_code


async def retry_http_request(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    policy: Optional[RetryPolicy] = None,
    *,
    sleep: Optional[SleepFunc] = None,
    cancel_event: Optional[asyncio.Event] = None,
) -> Optional[T]:
    """Run an HTTP operation according to a retry policy.

    Args:
        operation: Zero-argument callable performing one network call
        operation_name: Name used in log records
        policy: Retry policy (None = single attempt, errors surface unchanged)
        sleep: Async sleep used for backoff (defaults to asyncio.sleep)
        cancel_event: Optional event; once set, no further attempt or backoff happens

    Returns:
        The response of the successful attempt, or None if a 'continue' status
        stopped the loop or all attempts failed with retriable statuses.

    Raises:
        RetryPolicyViolation: A status code matched the policy's abort set
        RetryCancelledError: The cancel event was set
        Exception: Any error that is not an HTTP status failure, on first occurrence
    """
    if policy is None:
        policy = RetryPolicy.no_retry()
    base_sleep = sleep or asyncio.sleep
    attempt_index = 0

    async def _backoff(seconds: float) -> None:
        if cancel_event is None:
            await base_sleep(seconds)
            return
        sleeper = asyncio.ensure_future(base_sleep(seconds))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({sleeper, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (sleeper, waiter):
                if not task.done():
                    task.cancel()
        if waiter in done:
            logger.warning(f"{operation_name}: cancelled during backoff")
            raise RetryCancelledError(operation_name, attempt_index + 1)

    async def _attempt(attempt_number: int) -> Optional[T]:
        nonlocal attempt_index
        attempt_index = attempt_number - 1
        if cancel_event is not None and cancel_event.is_set():
            raise RetryCancelledError(operation_name, attempt_index)

        try:
            response = await operation()
        except HttpResponseError as e:
            status_code = _status_code_of(e)
            if status_code is None:
                logger.error(f"attempt #{attempt_index} to {operation_name} failed without a status code: {e}")
                raise
            return _handle_status(e, status_code, attempt_number)

        logger.debug(f"attempt #{attempt_index} to {operation_name} succeeded")
        return response

    def _handle_status(error: HttpResponseError, status_code: int, attempt_number: int) -> None:
        decision = policy.classify(status_code)
        prefix = f"attempt #{attempt_number - 1} to {operation_name} returned: {status_code};"
        exhausted = attempt_number >= policy.max_attempts
        backoff = policy.backoff_before(attempt_number)

        if decision == RetryDecision.CONTINUE:
            logger.info(f"{prefix} {status_code} is expected, continuing..")
            return None
        if decision == RetryDecision.ABORT:
            logger.error(f"{prefix} {status_code} is designated 'abort', terminating..")
            raise RetryPolicyViolation(operation_name, status_code, attempt_number - 1) from error
        if decision == RetryDecision.RAISE:
            logger.error(f"{prefix} handling of {status_code} is unspecified; raising..")
            raise error

        if decision == RetryDecision.RETRY:
            reason = f"{status_code} is retriable"
        else:
            reason = f"handling of {status_code} is unspecified"
        if exhausted:
            logger.warning(f"{prefix} {reason}; no attempts left")
        else:
            logger.warning(f"{prefix} {reason}, retrying after {backoff:g}s..")
        raise _RetriableStatus(error)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_exponential(multiplier=policy.initial_backoff, exp_base=2),
        retry=retry_if_exception_type(_RetriableStatus),
        sleep=_backoff,
        reraise=True,
    )

    try:
        async for attempt in retrying:
            with attempt:
                return await _attempt(attempt.retry_state.attempt_number)
    except _RetriableStatus as e:
        logger.warning(
            f"{operation_name}: giving up after {policy.max_attempts} attempts "
            f"(last status {_status_code_of(e.error)})"
        )
    return None
