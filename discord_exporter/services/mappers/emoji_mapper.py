"""Emoji name normalization.

Custom emoji keep their name; Unicode glyphs are resolved to a short name
with the ``emoji`` package (aliases first, so the heart glyph is "heart");
anything that cannot be resolved becomes "unknown".
"""

from __future__ import annotations

import emoji

from discord_exporter.models.events import EmojiRef

UNKNOWN_EMOJI = "unknown"


def unicode_short_name(glyph: str) -> str | None:
    """Return the short name for a Unicode emoji glyph, None if unknown."""
    if not emoji.is_emoji(glyph):
        return None
    name = emoji.demojize(glyph, language="alias", delimiters=("", ""))
    if not name or name == glyph:
        return None
    return name


def normalize_emoji_name(ref: EmojiRef) -> str:
    """Map a reaction emoji to the stable name used as a metrics label."""
    if not ref.name:
        return UNKNOWN_EMOJI
    if ref.custom:
        return ref.name
    return unicode_short_name(ref.name) or UNKNOWN_EMOJI
