"""Append-only photo ledger with an explicit sequence counter.

Every appended record gets ``seq = version + 1``; "latest" always means the
highest sequence number, independent of ``created_at``. Appends wake anyone
waiting on ``changed()``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from discord_exporter.models.schemas import PhotoRecord

logger = logging.getLogger(__name__)


class PhotoLedger:
    """Photo history shared by the gallery and the freshness watcher."""

    def __init__(self) -> None:
        self._records: list[PhotoRecord] = []
        self._ids: set[str] = set()
        self._version = 0
        self._changed = asyncio.Event()

    def __len__(self) -> int:
        return len(self._records)

    @property
    def version(self) -> int:
        """Number of records appended so far."""
        return self._version

    @property
    def latest_id(self) -> Optional[str]:
        """ID of the most recently appended record, None when empty."""
        if not self._records:
            return None
        return self._records[-1].id

    def __contains__(self, photo_id: object) -> bool:
        return photo_id in self._ids

    def append(self, record: PhotoRecord) -> Optional[PhotoRecord]:
        """Append a record and notify waiters.

        Returns:
            The stored record (with ``seq`` set), or None if the attachment
            id is already in the ledger.
        """
        if record.id in self._ids:
            logger.debug("Photo already in ledger", extra={"photo_id": record.id})
            return None
        self._version += 1
        stored = record.model_copy(update={"seq": self._version})
        self._records.append(stored)
        self._ids.add(stored.id)
        self._notify()
        return stored

    def extend(self, records: Iterable[PhotoRecord]) -> int:
        """Append several records; returns how many were new."""
        added = 0
        for record in records:
            if self.append(record) is not None:
                added += 1
        return added

    def merge_history(
        self, records: Iterable[PhotoRecord], *, since_version: int
    ) -> int:
        """Insert crawled records below the ones appended after ``since_version``.

        Records appended live while the crawl ran stay the newest entries:
        the new history is sequenced first, then the live records are
        re-sequenced after it. IDs already present are skipped.

        Returns:
            Number of history records added.
        """
        settled = [r for r in self._records if (r.seq or 0) <= since_version]
        live = [r for r in self._records if (r.seq or 0) > since_version]

        merged = list(settled)
        added = 0
        for record in records:
            if record.id in self._ids:
                continue
            self._version += 1
            merged.append(record.model_copy(update={"seq": self._version}))
            self._ids.add(record.id)
            added += 1

        if not added:
            return 0
        for record in live:
            self._version += 1
            merged.append(record.model_copy(update={"seq": self._version}))
        self._records = merged

        logger.info(
            "Photo history merged",
            extra={"photos_added": added, "live_kept_newest": len(live)},
        )
        self._notify()
        return added

    def recent(self, limit: int) -> list[PhotoRecord]:
        """Return up to ``limit`` records, most recently appended first."""
        if limit <= 0:
            return []
        return list(reversed(self._records[-limit:]))

    def changed(self) -> asyncio.Event:
        """Event that is set by the next append.

        Each append sets the current event and installs a fresh one, so a
        caller must grab the event before checking ``latest_id``.
        """
        return self._changed

    def _notify(self) -> None:
        event, self._changed = self._changed, asyncio.Event()
        event.set()
