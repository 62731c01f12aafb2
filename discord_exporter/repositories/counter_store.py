"""In-memory counter store for guild aggregates.

Holds per-user message counts, per-(user, emoji) reaction counts, per-user
photo counts and the announcement list. All mutations are synchronous and
never await, so on a single event loop readers always see whole updates.
Iteration order is insertion order, which makes rendering deterministic.
"""

from __future__ import annotations

import logging

from discord_exporter.models.schemas import (
    Announcement,
    ReactionCount,
    StoreSnapshot,
    UserCount,
)

logger = logging.getLogger(__name__)


def _check_delta(delta: int) -> None:
    if delta < 0:
        raise ValueError(f"delta must be non-negative, got {delta}")


class CounterStore:
    """Mutable aggregate state owned by the reconciliation engine."""

    def __init__(self) -> None:
        self._messages: dict[str, int] = {}
        self._reactions: dict[tuple[str, str], int] = {}
        self._photos: dict[str, int] = {}
        self._announcements: list[Announcement] = []

    # --- Bulk replacement ---
    def replace_all(self, snapshot: StoreSnapshot) -> None:
        """Replace every collection with the snapshot's content.

        Whatever the store held before, including live increments applied
        while the snapshot was being built, is dropped.
        """
        messages: dict[str, int] = {}
        for entry in snapshot.messages:
            messages[entry.user] = messages.get(entry.user, 0) + entry.count

        reactions: dict[tuple[str, str], int] = {}
        for reaction in snapshot.reactions:
            key = (reaction.user, reaction.emoji)
            reactions[key] = reactions.get(key, 0) + reaction.count

        photos: dict[str, int] = {}
        for entry in snapshot.photos:
            photos[entry.user] = photos.get(entry.user, 0) + entry.count

        # Swap in one go; nothing above yields control
        self._messages = messages
        self._reactions = reactions
        self._photos = photos
        self._announcements = list(snapshot.announcements)

        logger.info(
            "Counter store replaced",
            extra={
                "messages_users": len(messages),
                "reaction_pairs": len(reactions),
                "photo_users": len(photos),
                "announcements": len(self._announcements),
            },
        )

    # --- Incremental mutations ---
    def increment_message(self, user: str, delta: int = 1) -> int:
        """Create or increment the message counter for ``user``.

        A zero delta is a no-op and never creates an entry.
        """
        _check_delta(delta)
        if delta:
            self._messages[user] = self._messages.get(user, 0) + delta
        return self._messages.get(user, 0)

    def increment_reaction(self, user: str, emoji: str, delta: int = 1) -> int:
        """Create or increment the reaction counter for ``(user, emoji)``.

        A zero delta is a no-op, so no pair is ever stored with a zero count.
        """
        _check_delta(delta)
        key = (user, emoji)
        if delta:
            self._reactions[key] = self._reactions.get(key, 0) + delta
        return self._reactions.get(key, 0)

    def decrement_reaction(self, user: str, emoji: str, delta: int = 1) -> bool:
        """Decrement ``(user, emoji)`` and prune it at or below zero.

        Returns:
            False when no counter existed for the pair. That means the add
            event was missed or predates the last resync; the store is left
            untouched.
        """
        _check_delta(delta)
        key = (user, emoji)
        current = self._reactions.get(key)
        if current is None:
            logger.warning(
                "Trying to remove non-existing reaction data",
                extra={"user": user, "emoji": emoji},
            )
            return False
        remaining = current - delta
        if remaining <= 0:
            del self._reactions[key]
        else:
            self._reactions[key] = remaining
        return True

    def increment_photo_count(self, user: str, delta: int = 1) -> int:
        """Create or increment the photo counter for ``user``; zero is a no-op."""
        _check_delta(delta)
        if delta:
            self._photos[user] = self._photos.get(user, 0) + delta
        return self._photos.get(user, 0)

    def add_announcement(self, announcement: Announcement) -> None:
        """Append an announcement; the list is never reordered."""
        self._announcements.append(announcement)

    # --- Reads ---
    def messages(self) -> list[UserCount]:
        return [UserCount(user=u, count=c) for u, c in self._messages.items()]

    def reactions(self) -> list[ReactionCount]:
        return [
            ReactionCount(user=user, emoji=emoji, count=count)
            for (user, emoji), count in self._reactions.items()
        ]

    def photos(self) -> list[UserCount]:
        return [UserCount(user=u, count=c) for u, c in self._photos.items()]

    def announcements(self) -> list[Announcement]:
        return list(self._announcements)

    def reaction_count(self, user: str, emoji: str) -> int:
        """Return the current count for a pair, 0 when absent."""
        return self._reactions.get((user, emoji), 0)

    def snapshot(self) -> StoreSnapshot:
        """Return an immutable copy of the current state."""
        return StoreSnapshot(
            messages=self.messages(),
            reactions=self.reactions(),
            photos=self.photos(),
            announcements=self.announcements(),
        )
