"""Bounded retry with a fixed delay for storage writes."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry one operation.

    Attributes:
        attempts: Total number of calls, including the first one.
        delay_seconds: Pause between calls.
    """

    attempts: int = 3
    delay_seconds: float = 0.2

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds cannot be negative")


DEFAULT_STORAGE_POLICY = RetryPolicy()


async def run_with_retry(
    label: str,
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy = DEFAULT_STORAGE_POLICY,
) -> T:
    """Await ``operation()`` until it succeeds or the policy is exhausted.

    Args:
        label: Name of the operation, used in log messages.
        operation: Zero-argument callable returning a fresh awaitable per call.
        policy: Attempt count and delay.

    Returns:
        Whatever the operation returns.

    Raises:
        Exception: The last failure, unchanged, once every attempt failed.
    """
    for attempt in range(1, policy.attempts + 1):
        try:
            return await operation()
        except Exception as e:
            if attempt >= policy.attempts:
                raise
            logger.warning(
                "Retrying %s (attempt %d/%d): %s",
                label,
                attempt,
                policy.attempts,
                e,
            )
            await asyncio.sleep(policy.delay_seconds)
    raise AssertionError("unreachable")
