"""Retry logic with exponential backoff for uploads.

This module provides:
- retry_upload: Retry an upload until it succeeds or attempts run out

Used for the first save of a new plan, where silently losing the write is
the worst outcome. Both raised exceptions and failed results count as a
failed attempt; errors whose code is not retryable stop immediately.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import replace

from plansync.client.sync.types import UploadResult
from plansync.core.types import ErrorCode, SyncError

logger = logging.getLogger(__name__)

# Default retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 60.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0

Sleep = Callable[[float], Awaitable[None]]


async def retry_upload(
    upload: Callable[[], Awaitable[UploadResult]],
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    label: str = "plan",
    sleep: Sleep = asyncio.sleep,
) -> UploadResult:
    """Run ``upload`` with exponential backoff.

    Args:
        upload: Coroutine function performing one attempt.
        max_retries: Total number of attempts.
        base_delay: Delay before the second attempt, in seconds.
        max_delay: Upper bound for a single delay.
        backoff_multiplier: Factor applied to the delay after each failure.
        label: Name used in log messages.
        sleep: Awaitable sleep function (injectable for tests).

    Returns:
        The first successful result, or a failed result whose error carries
        the number of attempts and ``exhausted=True`` once every attempt
        was used.
    """
    delay = base_delay
    last_error: SyncError | None = None

    for attempt in range(1, max_retries + 1):
        try:
            result = await upload()
        except Exception as e:
            logger.error(f"Unexpected error on attempt {attempt} for {label}: {e}")
            result = UploadResult(success=False, error=SyncError.from_exception(e))

        if result.success:
            if attempt > 1:
                logger.info(f"Upload of {label} succeeded after {attempt} attempts")
            return result

        last_error = result.error or SyncError(ErrorCode.UNKNOWN, "Upload failed")

        if not last_error.code.retryable:
            logger.error(f"Upload of {label} failed with non-retryable error: {last_error}")
            return UploadResult(success=False, error=replace(last_error, attempts=attempt))

        if attempt < max_retries:
            logger.warning(
                f"Attempt {attempt}/{max_retries} failed for {label}: {last_error}. "
                f"Retrying in {delay:.1f}s..."
            )
            await sleep(delay)
            delay = min(delay * backoff_multiplier, max_delay)

    logger.error(f"Upload of {label} failed after {max_retries} attempts")
    error = last_error or SyncError(ErrorCode.UNKNOWN, "Upload failed")
    return UploadResult(
        success=False,
        error=replace(error, attempts=max_retries, exhausted=True),
    )
