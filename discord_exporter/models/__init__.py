"""Data models package.

Exports the aggregate-state records and the gateway-neutral event shapes.
"""

from discord_exporter.models.events import (
    AttachmentInfo,
    ChannelRef,
    EmojiRef,
    EventKind,
    GatewayEvent,
    HistoricalReaction,
    IncomingMessage,
    MessageCreated,
    ReactionAdded,
    ReactionRemoved,
    ReadyEvent,
)
from discord_exporter.models.schemas import (
    Announcement,
    PhotoRecord,
    ReactionCount,
    StoreSnapshot,
    UserCount,
)

__all__ = [
    "Announcement",
    "AttachmentInfo",
    "ChannelRef",
    "EmojiRef",
    "EventKind",
    "GatewayEvent",
    "HistoricalReaction",
    "IncomingMessage",
    "MessageCreated",
    "PhotoRecord",
    "ReactionAdded",
    "ReactionCount",
    "ReactionRemoved",
    "ReadyEvent",
    "StoreSnapshot",
    "UserCount",
]
