"""Asyncio helpers shared by the transport and ingestion layers."""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from typing import Any, Awaitable, Callable, Iterable, List

logger = logging.getLogger("STRATA.Async")


async def settle(aws: Iterable[Awaitable[Any]]) -> List[Any]:
    """Wait for every awaitable; failures are returned in place of results."""
    return await asyncio.gather(*aws, return_exceptions=True)


def async_timer(name: str, log_level: int = logging.DEBUG) -> Callable:
    """Decorator for timing async operations."""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.time()
            try:
                result = await func(*args, **kwargs)
                elapsed = time.time() - start
                logger.log(log_level, f"{name} completed in {elapsed:.3f}s")
                return result
            except Exception as e:
                elapsed = time.time() - start
                logger.error(f"{name} failed after {elapsed:.3f}s: {e}")
                raise
        return wrapper
    return decorator


__all__ = ["settle", "async_timer"]
