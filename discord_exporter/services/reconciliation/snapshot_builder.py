"""Local staging area for a resync.

The crawl writes here instead of the live store; ``build()`` turns the
accumulated maps into the snapshot passed to ``CounterStore.replace_all``.
"""

from __future__ import annotations

from discord_exporter.models.schemas import (
    Announcement,
    PhotoRecord,
    ReactionCount,
    StoreSnapshot,
    UserCount,
)


class SnapshotBuilder:
    """Accumulates counts and records observed during a historical crawl."""

    def __init__(self) -> None:
        self._messages: dict[str, int] = {}
        # emoji -> user -> count, so reactions render grouped by emoji
        self._reactions: dict[str, dict[str, int]] = {}
        self._photos: dict[str, int] = {}
        self._announcements: list[Announcement] = []
        self._photo_records: list[PhotoRecord] = []
        self.messages_seen = 0

    def add_message(self, user: str) -> None:
        self.messages_seen += 1
        self._messages[user] = self._messages.get(user, 0) + 1

    def add_reaction(self, emoji: str, user: str) -> None:
        per_user = self._reactions.setdefault(emoji, {})
        per_user[user] = per_user.get(user, 0) + 1

    def add_photos(self, user: str, count: int) -> None:
        self._photos[user] = self._photos.get(user, 0) + count

    def add_announcement(self, announcement: Announcement) -> None:
        self._announcements.append(announcement)

    def add_photo_record(self, record: PhotoRecord) -> None:
        self._photo_records.append(record)

    def photo_records(self) -> list[PhotoRecord]:
        """Staged photo records, oldest first (the order they enter the ledger)."""
        return sorted(self._photo_records, key=lambda r: r.created_at)

    def build(self) -> StoreSnapshot:
        return StoreSnapshot(
            messages=[UserCount(user=u, count=c) for u, c in self._messages.items()],
            reactions=[
                ReactionCount(user=user, emoji=emoji, count=count)
                for emoji, per_user in self._reactions.items()
                for user, count in per_user.items()
            ],
            photos=[UserCount(user=u, count=c) for u, c in self._photos.items()],
            announcements=list(self._announcements),
        )
