import logging
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from common.utils.constants import (
    MAX_TRANSIENT_RETRIES,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from common.utils.custom_exceptions import (
    TransientObjectStoreError,
    TransientStoreError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: Tuple[Type[Exception], ...] = (
    TransientStoreError,
    TransientObjectStoreError,
)


def backoff_delay(attempt: int, base_delay: float = RETRY_BASE_DELAY, max_delay: float = RETRY_MAX_DELAY) -> float:
    return min(max_delay, base_delay * (2**attempt))


def with_backoff(
    operation: Callable[[], T],
    description: str,
    retries: int = MAX_TRANSIENT_RETRIES,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """Run ``operation``, retrying transient infrastructure errors.

    Only ``TransientStoreError`` / ``TransientObjectStoreError`` (and their
    timeout subclasses) are retried. The last one is re-raised once
    ``retries`` extra attempts are spent.
    """
    attempt = 0
    while True:
        try:
            return operation()
        except TRANSIENT_ERRORS as err:
            if attempt >= retries:
                logger.error(f"{description} failed after {attempt + 1} attempts: {err}")
                raise
            delay = backoff_delay(attempt)
            logger.warning(
                f"{description} hit a transient error ({err}); retrying in {delay:.2f}s"
            )
            (sleep or time.sleep)(delay)
            attempt += 1
