"""Wait-for-new-photo primitive behind ``/photos/latest-id``.

The watcher sleeps on the ledger's append notification and re-checks every
``poll_interval`` seconds as a fallback; the periodic wake-up is also where
a disconnected caller is noticed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from discord_exporter.core.exceptions import WatchCancelled
from discord_exporter.repositories.photo_ledger import PhotoLedger

logger = logging.getLogger(__name__)


class FreshnessWatcher:
    """Long-poll helper over ``PhotoLedger.latest_id``."""

    def __init__(self, ledger: PhotoLedger, *, poll_interval: float = 1.0) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self._ledger = ledger
        self._poll_interval = poll_interval

    async def wait_for_change(
        self,
        last_known_id: Optional[str],
        *,
        is_disconnected: Optional[Callable[[], Awaitable[bool]]] = None,
        timeout: Optional[float] = None,
    ) -> Optional[str]:
        """Return the ledger's latest id once it differs from ``last_known_id``.

        Args:
            last_known_id: ID the caller already has (None for "nothing yet")
            is_disconnected: Async callback polled on every wake-up
            timeout: Return the unchanged id after this many seconds

        Raises:
            WatchCancelled: ``is_disconnected`` reported the caller gone
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None

        while True:
            # Grab the event before reading the id so an append in between
            # is not missed
            changed = self._ledger.changed()
            current = self._ledger.latest_id
            if current != last_known_id:
                return current

            wait_for = self._poll_interval
            if deadline is not None:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return current
                wait_for = min(wait_for, remaining)

            try:
                await asyncio.wait_for(changed.wait(), timeout=wait_for)
            except asyncio.TimeoutError:
                pass

            if is_disconnected is not None and await is_disconnected():
                logger.debug(
                    "Freshness wait abandoned by caller",
                    extra={"last_known_id": last_known_id},
                )
                raise WatchCancelled("caller disconnected")
