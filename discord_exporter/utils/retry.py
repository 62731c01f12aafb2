"""Async retry helper built on tenacity.

Used around history page fetches: exponential backoff with jitter, a warning
log and a retry metric before each sleep, and the last exception re-raised
once attempts are exhausted.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    stop_after_attempt,
    wait_random_exponential,
)

from discord_exporter.observability.metrics_adapter import MetricsAdapter

logger = logging.getLogger(__name__)


def _before_sleep(
    target: str, metrics: Optional[MetricsAdapter]
) -> Callable[[RetryCallState], None]:
    def _inner(retry_state: RetryCallState) -> None:
        e = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else None
        logger.warning(
            "Retrying operation",
            extra={
                "target": target,
                "attempt_number": retry_state.attempt_number,
                "delay": delay,
                "reason": type(e).__name__ if e else "unknown",
            },
        )
        if metrics is not None:
            metrics.inc_retry(target)

    return _inner


async def retry_async(
    func: Callable[[], Awaitable[Any]],
    *,
    target: str,
    max_attempts: int,
    base: float,
    max_seconds: float = 60.0,
    metrics: Optional[MetricsAdapter] = None,
) -> Any:
    """Execute an async callable with retry policy.

    Args:
        func: Zero-argument coroutine factory
        target: Label for logs/metrics (e.g. "history_page")
        max_attempts: Attempts including the first one
        base: Backoff multiplier; 0 retries without sleeping
        max_seconds: Cap for a single backoff sleep
        metrics: Optional adapter receiving a retry increment per sleep
    """
    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_random_exponential(multiplier=base, max=max_seconds),
        reraise=True,
        before_sleep=_before_sleep(target, metrics),
    ):
        with attempt:
            return await func()
