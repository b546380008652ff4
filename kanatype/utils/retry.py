#   ______      __ ____  _______       _  ____  _   _ 
#  |  ____|   / / __ \|__   __|/\   | |/ __ \| \ | |
#  | |__   _ / / |  | |  | |  /  \  | | |  | |  \| |
#  |  __| | v /| |  | |  | | / /\ \ | | |  | | . ` |
#  | |____ \ / | |__| |  | |/ ____ \| | |__| | |\  |
#  |______| \_/ \____/   |_/_/    \_\_|\____/|_| \_|
#                                                      

# Retry utilities - Bounded storage round-trips with optional retries.

# --------------------------------------------------------------------------
#                                  Functions
# --------------------------------------------------------------------------
# call_with_retry: Awaits a storage callback under a timeout, retrying on failure.

# --------------------------------------------------------------------------
#                            Variables and others
# --------------------------------------------------------------------------
# logger: Logger instance.
# StorageUnavailableError: Raised when a storage call times out or fails every attempt.

# --------------------------------------------------------------------------
#                                   imports
# --------------------------------------------------------------------------
# asyncio: Async I/O.
# logging: Logging.
# typing: Type hints.
# kanatype.constants: Default timeout.

import asyncio
import logging
from typing import Callable, Awaitable, Any

from kanatype.constants import STORAGE_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

STORAGE_RETRY_DELAY_SECONDS = 0.2


class StorageUnavailableError(Exception):
    """Session or score storage could not be reached in time"""


async def call_with_retry(
    callback: Callable[..., Awaitable[Any]],
    *args,
    timeout: float = STORAGE_TIMEOUT_SECONDS,
    max_retries: int = 1,
    retry_delay: float = STORAGE_RETRY_DELAY_SECONDS,
    label: str = "storage call",
    **kwargs
) -> Any:
    """
    Execute an async storage callback with a bounded timeout.

    Args:
        callback: Async function to call
        *args: Positional arguments for callback
        timeout: Timeout per attempt in seconds
        max_retries: Number of attempts; keep at 1 for non-idempotent calls
        retry_delay: Delay between attempts in seconds
        label: Description for logging
        **kwargs: Keyword arguments for callback

    Returns:
        Whatever the callback returns

    Raises:
        StorageUnavailableError: if every attempt timed out or failed
    """
    last_error: Exception | None = None
    for attempt in range(max_retries):
        try:
            result = await asyncio.wait_for(callback(*args, **kwargs), timeout=timeout)
            if attempt > 0:
                logger.info(f"{label} succeeded on attempt {attempt + 1}")
            return result
        except asyncio.TimeoutError as e:
            last_error = e
            logger.warning(f"{label} timeout, attempt {attempt + 1}/{max_retries}")
        except Exception as e:
            last_error = e
            logger.warning(f"{label} failed: {e}, attempt {attempt + 1}/{max_retries}")

        if attempt < max_retries - 1:
            await asyncio.sleep(retry_delay)

    logger.error(f"{label} failed after {max_retries} attempts")
    raise StorageUnavailableError(f"{label} unavailable") from last_error
