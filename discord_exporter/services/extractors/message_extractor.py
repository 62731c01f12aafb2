"""Derive announcements and photo records from a message.

Shared by the historical crawl and the live message-created path so both
produce identical records.
"""

from __future__ import annotations

from discord_exporter.models.events import IncomingMessage
from discord_exporter.models.schemas import Announcement, PhotoRecord

TITLE_CONTENT_LIMIT = 50


def photo_title(
    content: str, author: str, index: int, total: int
) -> str:
    """Build the gallery caption for attachment ``index`` (0-based) of ``total``."""
    if len(content) > TITLE_CONTENT_LIMIT:
        content = f"{content[:TITLE_CONTENT_LIMIT]}..."
    title = f"{content} by {author}"
    if total > 1:
        title += f" ({index + 1} / {total})"
    return title


class MessageExtractor:
    """Knows which channels carry announcements and photos."""

    def __init__(self, *, announcement_channel_id: str, photo_channel_id: str) -> None:
        self.announcement_channel_id = announcement_channel_id
        self.photo_channel_id = photo_channel_id

    def extract_announcement(self, message: IncomingMessage) -> Announcement | None:
        """Return an Announcement if the message was posted in the announcement channel."""
        if message.channel_id != self.announcement_channel_id:
            return None
        first = message.attachments[0] if message.attachments else None
        return Announcement(
            url=message.url,
            content=message.content,
            author=message.author,
            date=message.created_at,
            image_url=first.url if first is not None else None,
        )

    def photo_count(self, message: IncomingMessage) -> int:
        """Number of photos the message contributes to its author's count."""
        if message.channel_id != self.photo_channel_id:
            return 0
        return len(message.attachments)

    def extract_photos(self, message: IncomingMessage) -> list[PhotoRecord]:
        """One PhotoRecord per attachment in the photo channel.

        Attachments without a URL are skipped.
        """
        if message.channel_id != self.photo_channel_id:
            return []
        total = len(message.attachments)
        photos: list[PhotoRecord] = []
        for index, attachment in enumerate(message.attachments):
            if not attachment.url:
                continue
            photos.append(
                PhotoRecord(
                    id=attachment.id,
                    title=photo_title(message.content, message.author, index, total),
                    width=attachment.width,
                    height=attachment.height,
                    url=attachment.url,
                    created_at=message.created_at,
                )
            )
        return photos
