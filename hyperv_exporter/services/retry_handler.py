"""Retry handler with exponential backoff for transient source failures."""

import asyncio
import random
import logging
from typing import Awaitable, Callable, TypeVar, Tuple


T = TypeVar('T')


class RetryHandler:
    """
    Handles retry logic with exponential backoff and jitter.

    Used by counter sources for transient failures such as a refused SSH
    connection or a PowerShell host that is still starting up.
    """

    @staticmethod
    async def with_retry(
        func: Callable[[], Awaitable[T]],
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 60.0,
        exceptions: Tuple[type, ...] = (Exception,),
        logger: logging.Logger = None
    ) -> T:
        """
        Execute function with exponential backoff retry.

        Args:
            func: Async callable to execute
            max_attempts: Maximum attempts (default 3)
            base_delay: Initial delay in seconds (default 1.0)
            max_delay: Maximum delay in seconds (default 60.0)
            exceptions: Tuple of exception types to retry on
            logger: Optional logger for retry events

        Returns:
            Result from successful function execution

        Raises:
            Exception: Last exception if all retries exhausted
        """
        logger = logger or logging.getLogger(__name__)

        for attempt in range(1, max_attempts + 1):
            try:
                return await func()

            except exceptions as e:
                if attempt == max_attempts:
                    logger.error(f"All {max_attempts} attempts exhausted: {e}")
                    raise

                delay = min(base_delay * (2 ** (attempt - 1)), max_delay)
                jitter = random.uniform(0, delay * 0.1)  # Add 0-10% jitter
                total_delay = delay + jitter

                logger.warning(
                    f"Attempt {attempt}/{max_attempts} failed: {e}. "
                    f"Retrying in {total_delay:.2f}s..."
                )

                await asyncio.sleep(total_delay)

        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
