"""Error types for Strata and retry helpers for transport calls."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger("STRATA.Errors")

T = TypeVar("T")


class StrataException(Exception):
    """Base exception for Strata."""

    status: Optional[int] = None

    def __init__(self, message: str, context: Optional[dict] = None):
        """Initialize exception with context.

        Args:
            message: Error message
            context: Dictionary with additional context (entity, operation, etc.)
        """
        self.message = message
        self.context = context or {}
        super().__init__(message)

    def __str__(self) -> str:
        """String representation with context."""
        result = f"[{self.__class__.__name__}] {self.message}"
        if self.context:
            result += f" (context: {self.context})"
        return result


class ValidationError(StrataException):
    """Raised by entity factories before any network call."""
    pass


class EmptyResultError(StrataException):
    """The transport answered but returned no items where one was expected."""

    def __init__(self, message: str = "Empty result set", context: Optional[dict] = None):
        super().__init__(message, context)


class TransportError(StrataException):
    """HTTP level failure reported by the transport."""

    def __init__(
        self,
        status: int,
        status_text: str = "",
        message: Optional[str] = None,
        context: Optional[dict] = None,
    ):
        self.status = status
        self.status_text = status_text
        super().__init__(message or f"{status} {status_text}".strip(), context)


class IngestionError(StrataException):
    """A single file could not be downloaded or processed."""
    pass


class ArchiveError(IngestionError):
    """An archive could not be read."""
    pass


class CacheError(StrataException):
    """Content cache is unavailable or failed."""
    pass


def error_payload(error: BaseException) -> Tuple[str, Optional[int]]:
    """Normalize an exception into the ``(error, status)`` pair stored on the Store.

    Transport errors prefer the server-provided message and fall back to
    ``"<status> <status_text>"``.
    """
    if isinstance(error, StrataException):
        return error.message, error.status
    return str(error), None


class RetryConfig:
    """Configuration for retry logic."""

    def __init__(
        self,
        max_attempts: int = 3,
        initial_backoff_s: float = 0.5,
        backoff_factor: float = 1.5,
        max_backoff_s: float = 30.0,
    ):
        """Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts
            initial_backoff_s: Initial backoff delay in seconds
            backoff_factor: Exponential backoff multiplier
            max_backoff_s: Maximum backoff delay
        """
        self.max_attempts = max(1, max_attempts)
        self.initial_backoff_s = max(0.0, initial_backoff_s)
        self.backoff_factor = max(1.0, backoff_factor)
        self.max_backoff_s = max(self.initial_backoff_s, max_backoff_s)


async def retry_with_backoff(
    func: Callable[..., Awaitable[T]],
    *args,
    config: Optional[RetryConfig] = None,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    **kwargs,
) -> T:
    """Await a coroutine function with exponential backoff retry.

    Args:
        func: Coroutine function to execute
        *args: Positional arguments for func
        config: RetryConfig instance
        retry_on: Exception types that trigger a retry
        should_retry: Optional predicate to veto a retry for a given error
        **kwargs: Keyword arguments for func

    Returns:
        Result of func

    Raises:
        The last exception encountered if all attempts fail
    """
    if config is None:
        config = RetryConfig()

    backoff_s = config.initial_backoff_s

    for attempt in range(1, config.max_attempts + 1):
        try:
            return await func(*args, **kwargs)
        except retry_on as e:
            retryable = should_retry(e) if should_retry else True
            if not retryable or attempt >= config.max_attempts:
                if retryable:
                    logger.error(f"All {config.max_attempts} attempts failed. Last error: {e}")
                raise
            logger.warning(
                f"Attempt {attempt} failed: {e}. "
                f"Retrying in {backoff_s:.1f}s..."
            )
            await asyncio.sleep(backoff_s)
            backoff_s = min(backoff_s * config.backoff_factor, config.max_backoff_s)

    raise StrataException("retry loop exited without result")


__all__ = [
    "StrataException",
    "ValidationError",
    "EmptyResultError",
    "TransportError",
    "IngestionError",
    "ArchiveError",
    "CacheError",
    "error_payload",
    "RetryConfig",
    "retry_with_backoff",
]
