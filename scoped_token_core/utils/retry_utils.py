"""
Bounded retry with exponential backoff for storage calls.

Only transient infrastructure failures are retried here. Domain rejections
(expired, revoked, ...) propagate on the first attempt.
"""

import random
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from ..config import RetryConfig, get_config
from ..exceptions import RetryableConflictError, StorageUnavailableError
from .logger import get_logger

T = TypeVar("T")

TRANSIENT_ERRORS: Tuple[Type[Exception], ...] = (OperationalError, PoolTimeoutError)


def calculate_exponential_backoff(
    retry_count: int,
    base_delay: float = 0.05,
    max_delay: float = 1.0,
    multiplier: float = 2.0,
    jitter: bool = True,
) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Args:
        retry_count: Current retry attempt (0-based)
        base_delay: Base delay in seconds
        max_delay: Maximum delay in seconds
        multiplier: Exponential multiplier
        jitter: Whether to add +/-25% randomization

    Returns:
        Delay in seconds before next retry

    Example (base_delay=0.05, multiplier=2.0):
        retry_count=0: ~0.05s
        retry_count=1: ~0.1s
        retry_count=2: ~0.2s
        retry_count=5: 1.0s (capped at max_delay)
    """
    if retry_count < 0:
        return base_delay

    delay = min(base_delay * (multiplier**retry_count), max_delay)

    if jitter:
        jitter_range = delay * 0.25
        delay = delay + random.uniform(-jitter_range, jitter_range)

    # Never go below the base delay so the progression stays monotonic-ish
    return max(delay, base_delay)


def is_transient(error: Exception) -> bool:
    """Whether a storage exception is worth another attempt."""
    if isinstance(error, TRANSIENT_ERRORS):
        return True
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    return False


def run_with_retries(
    operation_name: str,
    func: Callable[[], T],
    retry_config: Optional[RetryConfig] = None,
    retry_on_conflict: bool = False,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run ``func`` with bounded retries on transient storage failures.

    Args:
        operation_name: Name used in logs and in the surfaced error
        func: Zero-argument callable doing one complete storage attempt
        retry_config: Retry bounds (default: global config)
        retry_on_conflict: Also retry RetryableConflictError
        sleep: Sleep function (injectable for tests)

    Returns:
        Whatever ``func`` returns

    Raises:
        StorageUnavailableError: When all attempts failed transiently
    """
    logger = get_logger()
    config = retry_config or get_config().retry
    last_error: Optional[Exception] = None

    for attempt in range(config.max_attempts):
        try:
            return func()
        except RetryableConflictError as e:
            if not retry_on_conflict:
                raise
            last_error = e
        except Exception as e:
            if not is_transient(e):
                raise
            last_error = e

        logger.warning(
            f"Transient failure in {operation_name}",
            extra={
                "operation": operation_name,
                "attempt": attempt + 1,
                "max_attempts": config.max_attempts,
                "error_type": type(last_error).__name__,
            },
        )

        if attempt < config.max_attempts - 1:
            sleep(
                calculate_exponential_backoff(
                    retry_count=attempt,
                    base_delay=config.base_delay,
                    max_delay=config.max_delay,
                    multiplier=config.multiplier,
                    jitter=config.jitter,
                )
            )

    raise StorageUnavailableError(
        f"Storage unavailable for {operation_name} after {config.max_attempts} attempts",
        operation=operation_name,
        cause=last_error,
        attempts=config.max_attempts,
    )
