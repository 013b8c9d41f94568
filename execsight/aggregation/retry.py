"""
Retry — bounded fixed-delay retry for transient domain-source failures.

Transient: timeouts, connection drops, httpx transport errors, HTTP 429 and
5xx, TransientSourceError. Everything else is permanent and surfaces on the
first failure.
"""

import asyncio
from enum import StrEnum
from typing import Awaitable, Callable, TypeVar

import httpx
import structlog

from execsight.errors import PermanentSourceError, TransientSourceError

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# ── Configuration ─────────────────────────────────────────────────────────

MAX_RETRIES: int = 3
RETRY_DELAY_SECONDS: float = 0.1


class ErrorKind(StrEnum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"


def classify_error(exc: BaseException) -> ErrorKind:
    if isinstance(exc, PermanentSourceError):
        return ErrorKind.PERMANENT
    if isinstance(exc, (TransientSourceError, TimeoutError, asyncio.TimeoutError, ConnectionError)):
        return ErrorKind.TRANSIENT
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return ErrorKind.TRANSIENT
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 429 or status >= 500:
            return ErrorKind.TRANSIENT
    return ErrorKind.PERMANENT


class RetryExhausted(Exception):
    """Wraps the last error once every attempt has failed."""

    def __init__(self, last_error: BaseException, attempts: int):
        self.last_error = last_error
        self.attempts = attempts
        super().__init__(f"{type(last_error).__name__} after {attempts} attempt(s): {last_error}")


async def retry_transient(
    fn: Callable[[], Awaitable[T]],
    max_retries: int = MAX_RETRIES,
    delay: float = RETRY_DELAY_SECONDS,
    operation_name: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> tuple[T, int]:
    """
    Await `fn` up to 1 + max_retries times, sleeping `delay` between attempts.

    Returns (result, attempts). Raises RetryExhausted wrapping the final
    error: immediately for permanent errors, after the last retry otherwise.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    for attempt in range(1, max_retries + 2):
        try:
            return await fn(), attempt
        except Exception as exc:
            kind = classify_error(exc)
            if kind == ErrorKind.PERMANENT or attempt > max_retries:
                logger.warning(
                    "retry_gave_up",
                    operation=operation_name,
                    attempts=attempt,
                    kind=kind.value,
                    error=str(exc),
                )
                raise RetryExhausted(exc, attempt) from exc
            logger.info(
                "retry_attempt",
                operation=operation_name,
                attempt=attempt,
                max_retries=max_retries,
                delay=delay,
                error=str(exc),
            )
            await sleep(delay)

    raise AssertionError("unreachable")
