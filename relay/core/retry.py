"""Fixed-interval retry for reconnects that must never give up."""
from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_never,
    wait_fixed,
)

from relay.observability.logging import get_logger

log = get_logger("retry")


async def retry_forever(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    interval: float = 3.0,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    **kwargs: Any,
) -> int:
    """
    Call an async function until it succeeds, waiting a fixed interval between attempts.

    There is no attempt cap and no backoff growth.

    Args:
        func: Async function to retry
        *args: Positional arguments for func
        interval: Wait between attempts (seconds)
        sleep: Awaitable sleep used between attempts
        **kwargs: Keyword arguments for func

    Returns:
        Number of attempts made, including the successful one
    """
    retry_config = AsyncRetrying(
        stop=stop_never,
        wait=wait_fixed(interval),
        retry=retry_if_exception_type(Exception),
        sleep=sleep,
        reraise=True,
    )

    attempt = 0
    async for attempt_state in retry_config:
        with attempt_state:
            attempt += 1
            try:
                log.debug("retry_attempt", func=func.__name__, attempt=attempt)
                await func(*args, **kwargs)
                if attempt > 1:
                    log.info("retry_succeeded", func=func.__name__, attempts=attempt)
                return attempt
            except Exception as e:
                log.warning(
                    "retry_failed_attempt",
                    func=func.__name__,
                    attempt=attempt,
                    retry_in_s=interval,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise

    # stop_never means the loop only exits by returning
    raise RuntimeError("Retry logic failed unexpectedly")
