"""History source protocol (port) for the reconciliation engine.

Defines the minimal read operations a resync needs from the chat platform.
The discord.py adapter satisfies it; tests use small in-memory fakes.
"""

from __future__ import annotations

from typing import Optional, Protocol

from discord_exporter.models.events import ChannelRef, IncomingMessage


class HistorySourceProtocol(Protocol):
    """Port for paginated reads of past guild messages."""

    async def list_channels(self) -> list[ChannelRef]:
        """Return every channel of the target guild.

        Raises:
            GuildNotFoundError: the target guild cannot be resolved
        """
        ...

    async def fetch_page(
        self, channel_id: str, *, before: Optional[str], limit: int
    ) -> list[IncomingMessage]:
        """Return up to ``limit`` messages older than ``before``, newest first.

        ``before=None`` starts from the most recent message.
        """
        ...
