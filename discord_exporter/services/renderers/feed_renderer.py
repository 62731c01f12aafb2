"""RSS 2.0 feed of announcement-channel posts.

Generates the document with feedgen. Item titles come from a Markdown
heading on the first line when there is one.
"""

from __future__ import annotations

import mimetypes
import re
from datetime import timezone
from typing import Iterable
from urllib.parse import urlsplit

from feedgen.feed import FeedGenerator

from discord_exporter.models.schemas import Announcement

CONTENT_TYPE = "application/rss+xml"

NO_TITLE = "no title"
NO_CONTENT = "(no content)"
# Remaining lines of a headed post are joined with an ideographic space
LINE_JOINER = "\u3000"

_HEADING = re.compile(r"^#+\s+(.*)")


def extract_title(content: str) -> tuple[str, str]:
    """Split announcement content into ``(title, description)``.

    - ``"# Hello\\nworld"`` -> ``("Hello", "world")``
    - ``"just one line"`` -> ``("just one line", "(no content)")``
    - ``"line one\\nline two"`` -> ``("no title", "line one\\nline two")``
    """
    lines = content.split("\n")
    match = _HEADING.match(lines[0])
    if match:
        return match.group(1), LINE_JOINER.join(lines[1:]) or NO_CONTENT
    if len(lines) == 1:
        return content, NO_CONTENT
    return NO_TITLE, content


def _enclosure_type(url: str) -> str:
    guessed, _ = mimetypes.guess_type(urlsplit(url).path)
    return guessed or "image/jpeg"


def render_feed(
    announcements: Iterable[Announcement],
    *,
    title: str,
    description: str,
    feed_url: str,
    site_url: str,
) -> str:
    """Render announcements, newest first, as an RSS 2.0 document.

    Announcements whose content is blank are left out.
    """
    fg = FeedGenerator()
    fg.load_extension("dc")
    fg.title(title)
    fg.description(description)
    fg.link(href=site_url, rel="alternate")
    fg.link(href=feed_url, rel="self")
    fg.generator("discord-exporter")

    for announcement in sorted(announcements, key=lambda a: a.date, reverse=True):
        if not announcement.content.strip():
            continue

        item_title, item_description = extract_title(announcement.content)
        published = announcement.date
        if published.tzinfo is None:
            published = published.replace(tzinfo=timezone.utc)

        fe = fg.add_entry(order="append")
        fe.title(item_title)
        fe.description(item_description)
        fe.link(href=announcement.url)
        fe.guid(announcement.url, permalink=True)
        fe.pubDate(published)
        fe.dc.dc_creator(announcement.author)
        if announcement.image_url:
            fe.enclosure(
                url=announcement.image_url,
                length="0",
                type=_enclosure_type(announcement.image_url),
            )

    return fg.rss_str(pretty=True).decode("utf-8")
