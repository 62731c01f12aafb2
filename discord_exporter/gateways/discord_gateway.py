"""discord.py adapter.

Translates discord.py objects into the engine's event dataclasses and
implements ``HistorySourceProtocol`` over the same client. Nothing outside
this module imports discord.py.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

import discord

from discord_exporter.core.exceptions import GuildNotFoundError, ResolutionError
from discord_exporter.gateways.discord_protocols import HistorySourceProtocol
from discord_exporter.models.events import (
    AttachmentInfo,
    ChannelRef,
    EmojiRef,
    GatewayEvent,
    HistoricalReaction,
    IncomingMessage,
    MessageCreated,
    ReactionAdded,
    ReactionRemoved,
    ReadyEvent,
    UsersFetcher,
)

logger = logging.getLogger(__name__)

EventDispatch = Callable[[GatewayEvent], Awaitable[None]]


def build_client() -> discord.Client:
    """Create a client with the intents the exporter needs."""
    intents = discord.Intents.none()
    intents.guilds = True
    intents.guild_messages = True
    intents.guild_reactions = True
    intents.message_content = True
    return discord.Client(intents=intents)


# ----------------------------------------------------------------------
# Translation helpers
# ----------------------------------------------------------------------
def to_emoji_ref(emoji: Any) -> EmojiRef:
    """Map ``str`` / ``Emoji`` / ``PartialEmoji`` to an EmojiRef."""
    if isinstance(emoji, str):
        return EmojiRef(name=emoji)
    return EmojiRef(
        name=getattr(emoji, "name", None),
        custom=getattr(emoji, "id", None) is not None,
    )


def to_attachment(attachment: Any) -> AttachmentInfo:
    return AttachmentInfo(
        id=str(attachment.id),
        url=getattr(attachment, "url", None),
        width=getattr(attachment, "width", None),
        height=getattr(attachment, "height", None),
    )


def _reaction_users_fetcher(reaction: Any) -> UsersFetcher:
    async def fetch() -> list[str]:
        return [str(user) async for user in reaction.users()]

    return fetch


def to_incoming_message(message: Any, *, with_reactions: bool = False) -> IncomingMessage:
    """Translate a discord.py message.

    Reactions are only attached for historical messages; live messages have
    none yet.
    """
    reactions: tuple[HistoricalReaction, ...] = ()
    if with_reactions:
        reactions = tuple(
            HistoricalReaction(
                emoji=to_emoji_ref(reaction.emoji),
                fetch_users=_reaction_users_fetcher(reaction),
            )
            for reaction in message.reactions
        )
    return IncomingMessage(
        id=str(message.id),
        channel_id=str(message.channel.id),
        author=str(message.author),
        content=message.content or "",
        url=message.jump_url,
        created_at=message.created_at,
        attachments=tuple(to_attachment(a) for a in message.attachments),
        reactions=reactions,
    )


def to_channel_ref(channel: Any, me: Any) -> ChannelRef:
    """Describe a guild channel; only messageable channels have ``history``."""
    text_capable = callable(getattr(channel, "history", None))
    viewable = False
    if me is not None:
        permissions = channel.permissions_for(me)
        viewable = bool(permissions.view_channel and permissions.read_message_history)
    return ChannelRef(
        id=str(channel.id),
        name=getattr(channel, "name", str(channel.id)),
        text_capable=text_capable,
        viewable=viewable,
    )


# ----------------------------------------------------------------------
# History source
# ----------------------------------------------------------------------
class DiscordHistorySource(HistorySourceProtocol):
    """Paginated guild history over a connected discord.py client."""

    def __init__(self, client: discord.Client, guild_id: str) -> None:
        self._client = client
        self._guild_id = guild_id

    def _guild(self) -> discord.Guild:
        guild = self._client.get_guild(int(self._guild_id))
        if guild is None:
            raise GuildNotFoundError("Guild not found", guild_id=self._guild_id)
        return guild

    async def list_channels(self) -> list[ChannelRef]:
        guild = self._guild()
        channels = await guild.fetch_channels()
        return [to_channel_ref(channel, guild.me) for channel in channels]

    async def fetch_page(
        self, channel_id: str, *, before: Optional[str], limit: int
    ) -> list[IncomingMessage]:
        channel = self._guild().get_channel(int(channel_id))
        if channel is None:
            channel = await self._client.fetch_channel(int(channel_id))
        cursor = discord.Object(id=int(before)) if before else None
        return [
            to_incoming_message(message, with_reactions=True)
            async for message in channel.history(limit=limit, before=cursor)
        ]


# ----------------------------------------------------------------------
# Live events
# ----------------------------------------------------------------------
class DiscordGateway:
    """Registers discord.py event handlers and forwards translated events."""

    def __init__(
        self, client: discord.Client, dispatch: EventDispatch, *, guild_id: str
    ) -> None:
        self._client = client
        self._dispatch = dispatch
        self._guild_id = guild_id
        self.fatal_error: Optional[GuildNotFoundError] = None

        for handler in (
            self.on_ready,
            self.on_message,
            self.on_raw_reaction_add,
            self.on_raw_reaction_remove,
        ):
            client.event(handler)

    @property
    def client(self) -> discord.Client:
        return self._client

    async def start(self, token: str) -> None:
        """Log in and run until the client is closed."""
        await self._client.start(token)

    async def close(self) -> None:
        if not self._client.is_closed():
            await self._client.close()

    def _in_target_guild(self, guild_id: Optional[int]) -> bool:
        return guild_id is not None and str(guild_id) == self._guild_id

    async def _forward(self, event: GatewayEvent) -> None:
        try:
            await self._dispatch(event)
        except Exception:
            logger.exception(
                "Event handler failed (continuing)", extra={"kind": event.kind.value}
            )

    async def on_ready(self) -> None:
        try:
            await self._dispatch(ReadyEvent(user=str(self._client.user)))
        except GuildNotFoundError as e:
            logger.critical(
                "Target guild not found; shutting down",
                extra={"guild_id": e.guild_id, "correlation_id": e.correlation_id},
            )
            self.fatal_error = e
            await self.close()

    async def on_message(self, message: discord.Message) -> None:
        if message.guild is None or not self._in_target_guild(message.guild.id):
            return
        await self._forward(MessageCreated(message=to_incoming_message(message)))

    def _user_resolver(self, user_id: int) -> Callable[[], Awaitable[str]]:
        async def resolve() -> str:
            user = self._client.get_user(user_id)
            if user is None:
                try:
                    user = await self._client.fetch_user(user_id)
                except discord.HTTPException as e:
                    raise ResolutionError(f"Cannot fetch user {user_id}: {e}") from e
            return str(user)

        return resolve

    def _reaction_fields(self, payload: discord.RawReactionActionEvent) -> dict:
        member = getattr(payload, "member", None)
        return {
            "message_id": str(payload.message_id),
            "channel_id": str(payload.channel_id),
            "emoji": to_emoji_ref(payload.emoji),
            "user_id": str(payload.user_id),
            "user_tag": str(member) if member is not None else None,
            "resolve_user": self._user_resolver(payload.user_id),
        }

    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        if not self._in_target_guild(payload.guild_id):
            return
        await self._forward(ReactionAdded(**self._reaction_fields(payload)))

    async def on_raw_reaction_remove(
        self, payload: discord.RawReactionActionEvent
    ) -> None:
        if not self._in_target_guild(payload.guild_id):
            return
        await self._forward(ReactionRemoved(**self._reaction_fields(payload)))
