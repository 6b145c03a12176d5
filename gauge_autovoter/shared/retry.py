"""
Retry utilities for handling transient failures.

Two kinds of retry live here:
- Bounded retries with backoff for reads against HTTP feeds and RPC
  (retry_async_operation, RetryConfig)
- The allow-list of transient submission failures used by the
  unbounded submission loop (is_transient_failure)

Exception Handling:
- By default, retries on RetryableException and network errors
- NonRetryableException is never retried (propagates immediately)
- Can customize retryable_exceptions per operation
"""

import asyncio
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

import httpx
from solana.exceptions import SolanaRpcException

from gauge_autovoter.shared.exceptions import RetryableException
from gauge_autovoter.shared.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)

DEFAULT_RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    RetryableException,  # Includes FeedException, SubmissionTimeout
    ConnectionError,
    TimeoutError,
    OSError,
    httpx.TransportError,
    SolanaRpcException,  # HTTP-level RPC failures
)

# Failure reasons after which a submission is attempted again.
# Matched as case-sensitive substrings of the error message.
TRANSIENT_SUBMISSION_REASONS: Tuple[str, ...] = (
    "Timeout",
    "Blockhash not found",
    "block height exceeded",
)

# Subset of the above meaning the transaction's blockhash can no longer land
EXPIRED_BLOCKHASH_REASONS: Tuple[str, ...] = (
    "Blockhash not found",
    "block height exceeded",
)


def is_transient_failure(reason: str) -> bool:
    """True if a submission failing with `reason` should be attempted again."""
    return any(marker in reason for marker in TRANSIENT_SUBMISSION_REASONS)


def is_expired_blockhash(reason: str) -> bool:
    """True if `reason` says the transaction's blockhash is gone."""
    return any(marker in reason for marker in EXPIRED_BLOCKHASH_REASONS)


def _backoff_delay(
    attempt: int, base_delay: float, max_delay: float, exponential: bool
) -> float:
    if exponential:
        return min(base_delay * (2**attempt), max_delay)
    return base_delay


async def retry_async_operation(
    operation: Callable[..., T],
    *args: Any,
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential: bool = True,
    retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    operation_name: Optional[str] = None,
    **kwargs: Any,
) -> T:
    """
    Retry an async operation with configurable backoff.

    Example:
        holders = await retry_async_operation(
            client.get,
            url,
            max_attempts=5,
            operation_name="eligibility_feed",
        )
    """
    if retryable_exceptions is None:
        retryable_exceptions = DEFAULT_RETRYABLE_EXCEPTIONS

    name = operation_name or getattr(operation, "__name__", "operation")
    last_exception: Optional[Exception] = None

    for attempt in range(max_attempts):
        try:
            return await operation(*args, **kwargs)
        except retryable_exceptions as e:
            last_exception = e

            if attempt < max_attempts - 1:
                delay = _backoff_delay(
                    attempt, base_delay, max_delay, exponential
                )
                logger.warning(
                    f"Attempt {attempt + 1}/{max_attempts} failed for "
                    f"{name}: {e}. Retrying in {delay:.1f}s..."
                )
                await asyncio.sleep(delay)

    if last_exception:
        raise last_exception
    raise RuntimeError(
        "Unexpected state: no exception but all attempts exhausted"
    )


class RetryConfig:
    """
    Configuration class for retry behavior.

    Can be used to share retry settings across multiple operations.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential: bool = True,
        retryable_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
    ):
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential = exponential
        self.retryable_exceptions = (
            retryable_exceptions or DEFAULT_RETRYABLE_EXCEPTIONS
        )

    async def run(
        self, operation: Callable[..., T], *args: Any, **kwargs: Any
    ) -> T:
        """Run one operation under this config."""
        return await retry_async_operation(
            operation,
            *args,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            exponential=self.exponential,
            retryable_exceptions=self.retryable_exceptions,
            **kwargs,
        )


RPC_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    base_delay=1.0,
    max_delay=10.0,
    exponential=True,
)

HTTP_RETRY_CONFIG = RetryConfig(
    max_attempts=3,
    base_delay=0.5,
    max_delay=5.0,
    exponential=True,
)
