from discord_exporter.models.events import EmojiRef
from discord_exporter.services.mappers.emoji_mapper import (
    UNKNOWN_EMOJI,
    normalize_emoji_name,
    unicode_short_name,
)


def test_custom_emoji_keep_their_name():
    assert normalize_emoji_name(EmojiRef(name="partyparrot", custom=True)) == "partyparrot"


def test_unicode_glyph_resolves_to_short_name():
    assert normalize_emoji_name(EmojiRef(name="🔥")) == "fire"
    assert unicode_short_name("🔥") == "fire"


def test_unresolvable_emoji_become_unknown():
    assert normalize_emoji_name(EmojiRef(name=None)) == UNKNOWN_EMOJI
    assert normalize_emoji_name(EmojiRef(name="")) == UNKNOWN_EMOJI
    assert normalize_emoji_name(EmojiRef(name="not-an-emoji")) == UNKNOWN_EMOJI
