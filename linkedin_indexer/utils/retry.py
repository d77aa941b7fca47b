"""Retry utilities for async operations."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Callable, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_retries: int = 2
    delay: float = 2.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0
    exceptions: tuple[Type[Exception], ...] = field(default_factory=lambda: (Exception,))
    # Raised immediately even when they subclass one of ``exceptions``
    give_up_on: tuple[Type[Exception], ...] = ()

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for given attempt (0-indexed)."""
        delay = self.delay * (self.backoff_factor**attempt)
        return min(delay, self.max_delay)


async def call_with_retry(config: RetryConfig, func: Callable[..., T], *args, **kwargs) -> T:
    """Await ``func(*args, **kwargs)`` retrying per ``config``; re-raise the last error."""
    last_exception: Optional[Exception] = None

    for attempt in range(config.max_retries + 1):
        try:
            return await func(*args, **kwargs)
        except config.give_up_on:
            raise
        except config.exceptions as e:
            last_exception = e

            if attempt < config.max_retries:
                delay_time = config.get_delay(attempt)
                logger.warning(
                    f"Retry {attempt + 1}/{config.max_retries} for {func.__name__}: "
                    f"{type(e).__name__}: {e}. Waiting {delay_time:.1f}s..."
                )
                await asyncio.sleep(delay_time)
            else:
                logger.error(
                    f"All {config.max_retries} retries failed for {func.__name__}: "
                    f"{type(e).__name__}: {e}"
                )

    raise last_exception
