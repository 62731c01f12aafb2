"""Gateway-neutral event and message shapes.

The gateway adapter translates discord.py objects into these dataclasses so
the reconciliation engine never touches library objects directly. Fetch
capabilities (reacting users, partial user resolution) travel with the data
as zero-argument coroutine factories.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, ClassVar, Optional, Union

UsersFetcher = Callable[[], Awaitable[list[str]]]
UserResolver = Callable[[], Awaitable[str]]


class EventKind(str, Enum):
    READY = "ready"
    MESSAGE_CREATED = "message_created"
    REACTION_ADDED = "reaction_added"
    REACTION_REMOVED = "reaction_removed"


@dataclass(frozen=True)
class EmojiRef:
    """Emoji as seen on a reaction: custom emoji name or a Unicode glyph."""

    name: Optional[str]
    custom: bool = False


@dataclass(frozen=True)
class AttachmentInfo:
    id: str
    url: Optional[str]
    width: Optional[int] = None
    height: Optional[int] = None


@dataclass(frozen=True)
class HistoricalReaction:
    """Reaction present on a historical message.

    Attributes:
        emoji: Reaction emoji
        fetch_users: Coroutine factory returning identities of reacting users
    """

    emoji: EmojiRef
    fetch_users: UsersFetcher


@dataclass(frozen=True)
class IncomingMessage:
    """Message as consumed by the engine, from history or from the gateway."""

    id: str
    channel_id: str
    author: str
    content: str
    url: str
    created_at: datetime
    attachments: tuple[AttachmentInfo, ...] = ()
    reactions: tuple[HistoricalReaction, ...] = ()


@dataclass(frozen=True)
class ChannelRef:
    id: str
    name: str
    text_capable: bool
    viewable: bool

    @property
    def crawlable(self) -> bool:
        return self.text_capable and self.viewable


@dataclass(frozen=True)
class ReadyEvent:
    kind: ClassVar[EventKind] = EventKind.READY

    user: str


@dataclass(frozen=True)
class MessageCreated:
    kind: ClassVar[EventKind] = EventKind.MESSAGE_CREATED

    message: IncomingMessage


@dataclass(frozen=True)
class _ReactionChange:
    """Reaction add/remove on a message.

    ``user_tag`` is None when the gateway delivered a partial user; the engine
    then awaits ``resolve_user`` before applying the change.
    """

    message_id: str
    channel_id: str
    emoji: EmojiRef
    user_id: str
    user_tag: Optional[str] = None
    resolve_user: Optional[UserResolver] = field(default=None, compare=False)


@dataclass(frozen=True)
class ReactionAdded(_ReactionChange):
    kind: ClassVar[EventKind] = EventKind.REACTION_ADDED


@dataclass(frozen=True)
class ReactionRemoved(_ReactionChange):
    kind: ClassVar[EventKind] = EventKind.REACTION_REMOVED


GatewayEvent = Union[ReadyEvent, MessageCreated, ReactionAdded, ReactionRemoved]
