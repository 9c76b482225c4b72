"""Caller-side retry for transient send errors."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps

from trapper_sender.adapters.driven.trapper.errors import (
    TrapperConnectionError,
    TrapperTimeoutError,
)
from trapper_sender.ports.trapper import TrapperResponse

__all__ = ["retry", "RETRYABLE_ERRORS"]

logger = logging.getLogger(__name__)

# Nothing reached the collector, or it did not answer in time
RETRYABLE_ERRORS = (
    TrapperConnectionError,
    TrapperTimeoutError,
)

AsyncSendFn = Callable[..., Awaitable[TrapperResponse]]


def retry(
    times: int = 3,
    delay_sec: tuple[float, ...] = (0.2, 0.5, 1.0),
) -> Callable[[AsyncSendFn], AsyncSendFn]:
    """Decorate async send function with exponential backoff retry.

    Retries on connection failures and timeouts but not on protocol or
    decoding errors, which would fail the same way again.

    Note that a timed out send may already have been processed by the
    collector; retrying it can report the same values twice.

    Args:
        times: Number of attempts (1 = no retry).
        delay_sec: Delays between attempts in seconds.

    Returns:
        Decorator function.

    Example:
        send = retry(times=3, delay_sec=(0.2, 0.5, 1.0))(sender.send)
        resp = await send([TrapperData("web01", "app.ping", "1")])
    """

    def decorator(func: AsyncSendFn) -> AsyncSendFn:
        @wraps(func)
        async def wrapper(*args: object, **kwargs: object) -> TrapperResponse:
            last_exc: BaseException | None = None

            for attempt in range(times):
                try:
                    return await func(*args, **kwargs)
                except RETRYABLE_ERRORS as e:
                    last_exc = e
                    if attempt == times - 1:
                        logger.debug(f"Retry exhausted after {times} attempts: {e}")
                        raise
                    logger.debug(f"Attempt {attempt + 1}/{times} failed, retrying: {e}")
                    delay_idx = min(attempt, len(delay_sec) - 1)
                    await asyncio.sleep(delay_sec[delay_idx])

            raise last_exc or RuntimeError("Retry wrapper exhausted")

        return wrapper

    return decorator
