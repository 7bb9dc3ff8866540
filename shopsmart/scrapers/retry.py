# shopsmart/scrapers/retry.py

"""Generic async retry combinator with exponential backoff."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from shopsmart.config.settings import Settings

logger = logging.getLogger("shopsmart.retry")

T = TypeVar("T")


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = Settings.MAX_RETRIES,
    base_delay_ms: int = Settings.RETRY_DELAY_MS,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    give_up_on: tuple[type[BaseException], ...] = (),
    label: str = "",
) -> T:
    """Await ``operation`` until it succeeds or attempts run out.

    The wait before attempt ``n + 1`` is ``base_delay_ms * 2**n``
    milliseconds (n counted from 0).  Errors that are not instances of
    ``retry_on``, or that are instances of ``give_up_on``, propagate
    immediately.  After the final attempt the last error is re-raised
    unchanged.

    Raises:
        ValueError: if ``max_attempts`` is less than 1.
    """
    if max_attempts < 1:
        msg = f"max_attempts must be >= 1, got {max_attempts}"
        raise ValueError(msg)

    prefix = f"[{label}] " if label else ""
    for attempt in range(max_attempts):
        try:
            return await operation()
        except give_up_on:
            raise
        except retry_on as exc:
            if attempt == max_attempts - 1:
                logger.warning(
                    "%sGiving up after %d attempts: %s",
                    prefix,
                    max_attempts,
                    exc,
                )
                raise
            delay_ms = base_delay_ms * (2 ** attempt)
            logger.info(
                "%sAttempt %d failed (%s), retrying in %dms",
                prefix,
                attempt + 1,
                exc,
                delay_ms,
            )
            await asyncio.sleep(delay_ms / 1000)

    # Unreachable: the loop either returns or raises on the last attempt
    raise AssertionError("retry loop exited without a result")
