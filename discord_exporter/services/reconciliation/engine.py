"""Reconciliation engine: full resync plus live incremental updates.

A resync crawls every readable channel of the guild, stages the result in a
``SnapshotBuilder`` and commits it with ``CounterStore.replace_all`` only
after the whole crawl finished. Live events are applied to the store the
moment they arrive, including while a crawl is suspended on a network
fetch. With the "discard" policy those events are overwritten by the
commit; with "replay" their store mutations are buffered and re-applied
right after it.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from operator import methodcaller
from typing import Any, Callable, Optional

from discord_exporter.core.exceptions import GuildNotFoundError, ResyncError
from discord_exporter.gateways.discord_protocols import HistorySourceProtocol
from discord_exporter.models.events import (
    ChannelRef,
    GatewayEvent,
    IncomingMessage,
    MessageCreated,
    ReactionAdded,
    ReactionRemoved,
    ReadyEvent,
)
from discord_exporter.models.schemas import StoreSnapshot
from discord_exporter.observability.metrics_adapter import (
    MetricsAdapter,
    NoopMetricsAdapter,
)
from discord_exporter.repositories.counter_store import CounterStore
from discord_exporter.repositories.photo_ledger import PhotoLedger
from discord_exporter.services.extractors.message_extractor import MessageExtractor
from discord_exporter.services.mappers.emoji_mapper import normalize_emoji_name
from discord_exporter.services.reconciliation.snapshot_builder import SnapshotBuilder
from discord_exporter.utils.retry import retry_async

logger = logging.getLogger(__name__)

StoreMutation = Callable[[CounterStore], Any]

POLICY_REPLAY = "replay"
POLICY_DISCARD = "discard"


class ReconciliationEngine:
    """Sole writer of the counter store and the photo ledger."""

    def __init__(
        self,
        *,
        store: CounterStore,
        ledger: PhotoLedger,
        extractor: MessageExtractor,
        history: HistorySourceProtocol,
        page_size: int = 100,
        event_policy: str = POLICY_REPLAY,
        max_retry_attempts: int = 3,
        retry_backoff: float = 2.0,
        metrics: Optional[MetricsAdapter] = None,
    ) -> None:
        if event_policy not in (POLICY_REPLAY, POLICY_DISCARD):
            raise ValueError(f"Unknown resync event policy: {event_policy}")
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._store = store
        self._ledger = ledger
        self._extractor = extractor
        self._history = history
        self._page_size = page_size
        self._event_policy = event_policy
        self._max_retry_attempts = max_retry_attempts
        self._retry_backoff = retry_backoff
        self._metrics: MetricsAdapter = metrics or NoopMetricsAdapter()

        self._resync_in_progress = False
        self._synced = False
        self._pending: list[StoreMutation] = []

    @property
    def resync_in_progress(self) -> bool:
        return self._resync_in_progress

    @property
    def synced(self) -> bool:
        """True once a resync has committed."""
        return self._synced

    # ------------------------------------------------------------------
    # Event entry point
    # ------------------------------------------------------------------
    async def handle_event(self, event: GatewayEvent) -> None:
        """Dispatch one gateway event.

        Raises:
            GuildNotFoundError: on ready, when the guild cannot be resolved
        """
        if isinstance(event, ReadyEvent):
            logger.info("Logged in", extra={"user": event.user})
            await self.resync_once()
        elif isinstance(event, MessageCreated):
            self.apply_message(event.message)
            self._metrics.inc_event(event.kind.value, "applied")
        elif isinstance(event, ReactionAdded):
            await self._apply_reaction(event, added=True)
        elif isinstance(event, ReactionRemoved):
            await self._apply_reaction(event, added=False)
        else:
            raise TypeError(f"Unsupported gateway event: {type(event).__name__}")

    # ------------------------------------------------------------------
    # Incremental path
    # ------------------------------------------------------------------
    def _record(self, mutation: StoreMutation) -> Any:
        result = mutation(self._store)
        if self._resync_in_progress and self._event_policy == POLICY_REPLAY:
            self._pending.append(mutation)
        return result

    def apply_message(self, message: IncomingMessage) -> None:
        """Apply a live message-created event."""
        author = message.author
        self._record(methodcaller("increment_message", author))

        announcement = self._extractor.extract_announcement(message)
        if announcement is not None:
            self._record(methodcaller("add_announcement", announcement))
            logger.info(
                "New announcement",
                extra={"url": announcement.url, "author": announcement.author},
            )

        photo_count = self._extractor.photo_count(message)
        if photo_count:
            self._record(methodcaller("increment_photo_count", author, photo_count))
        for record in self._extractor.extract_photos(message):
            # Ledger appends happen once; they are never replayed
            self._ledger.append(record)

    async def _apply_reaction(
        self, event: ReactionAdded | ReactionRemoved, *, added: bool
    ) -> None:
        kind = event.kind.value
        user = event.user_tag
        if user is None:
            if event.resolve_user is None:
                logger.warning(
                    "Partial reaction event without resolver; skipping",
                    extra={"message_id": event.message_id, "user_id": event.user_id},
                )
                self._metrics.inc_event(kind, "skipped")
                return
            try:
                user = await event.resolve_user()
            except Exception:
                logger.error(
                    "Something went wrong when fetching the user",
                    extra={"message_id": event.message_id, "user_id": event.user_id},
                    exc_info=True,
                )
                self._metrics.inc_event(kind, "skipped")
                return

        emoji_name = normalize_emoji_name(event.emoji)
        if added:
            self._record(methodcaller("increment_reaction", user, emoji_name))
            outcome = "applied"
        else:
            existed = self._record(methodcaller("decrement_reaction", user, emoji_name))
            if existed:
                outcome = "applied"
            else:
                outcome = "inconsistent"
                self._metrics.inc_reaction_inconsistency()
        self._metrics.inc_event(kind, outcome)
        logger.info(
            "Reaction added" if added else "Reaction removed",
            extra={"emoji": emoji_name, "user": user, "message_id": event.message_id},
        )

    # ------------------------------------------------------------------
    # Full resync
    # ------------------------------------------------------------------
    async def resync_once(self) -> bool:
        """Run the startup resync unless one already committed or is running.

        A resync that failed with ``ResyncError`` is logged and may be retried
        by a later ready signal; ``GuildNotFoundError`` propagates.
        """
        if self._synced or self._resync_in_progress:
            logger.info(
                "Resync skipped",
                extra={"synced": self._synced, "in_progress": self._resync_in_progress},
            )
            return False
        try:
            await self.resync()
        except ResyncError as e:
            logger.error(
                "Resync aborted; keeping live state",
                extra={"error": str(e), "channel_id": e.channel_id},
                exc_info=True,
            )
            return False
        return True

    async def resync(self) -> StoreSnapshot:
        """Crawl the full guild history and replace the store's content."""
        if self._resync_in_progress:
            raise ResyncError("Resync already in progress")

        resync_id = str(uuid.uuid4())
        started = time.perf_counter()
        status = "failed"
        self._resync_in_progress = True
        # Photos appended live after this mark stay newest at commit
        ledger_mark = self._ledger.version
        self._pending = []
        try:
            channels = await self._list_channels(resync_id)
            crawlable = [c for c in channels if c.crawlable]
            logger.info(
                "Resync started",
                extra={
                    "correlation_id": resync_id,
                    "channels_total": len(channels),
                    "channels_crawlable": len(crawlable),
                },
            )

            builder = SnapshotBuilder()
            await self._crawl_channels(crawlable, builder, resync_id)

            snapshot = builder.build()
            # Commit, ledger append and replay run without awaiting in between
            self._store.replace_all(snapshot)
            photos_added = self._ledger.merge_history(
                builder.photo_records(), since_version=ledger_mark
            )
            replayed = self._replay_pending()
            self._synced = True
            status = "success"

            logger.info(
                "State synced",
                extra={
                    "correlation_id": resync_id,
                    "messages_seen": builder.messages_seen,
                    "photos_added": photos_added,
                    "events_replayed": replayed,
                    "event_policy": self._event_policy,
                },
            )
            return snapshot
        finally:
            self._resync_in_progress = False
            self._pending = []
            self._metrics.observe_resync(status, time.perf_counter() - started)

    async def _list_channels(self, resync_id: str) -> list[ChannelRef]:
        try:
            return await self._history.list_channels()
        except GuildNotFoundError as e:
            e.correlation_id = resync_id
            raise
        except Exception as e:
            raise ResyncError(
                f"Failed to list guild channels: {e}", correlation_id=resync_id
            ) from e

    def _replay_pending(self) -> int:
        pending, self._pending = self._pending, []
        for mutation in pending:
            mutation(self._store)
        return len(pending)

    async def _crawl_channels(
        self, channels: list[ChannelRef], builder: SnapshotBuilder, resync_id: str
    ) -> None:
        tasks = [
            asyncio.ensure_future(self._crawl_channel(channel, builder, resync_id))
            for channel in channels
        ]
        if not tasks:
            return
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _crawl_channel(
        self, channel: ChannelRef, builder: SnapshotBuilder, resync_id: str
    ) -> int:
        before: Optional[str] = None
        fetched = 0
        while True:
            logger.info(
                "Fetching messages in channel",
                extra={
                    "correlation_id": resync_id,
                    "channel": channel.name,
                    "current_count": fetched,
                },
            )
            page = await self._fetch_page(channel, before)
            self._metrics.inc_history_page()
            for message in page:
                await self._stage_message(message, builder, resync_id)
            fetched += len(page)
            if len(page) < self._page_size:
                return fetched
            before = page[-1].id

    async def _fetch_page(
        self, channel: ChannelRef, before: Optional[str]
    ) -> list[IncomingMessage]:
        try:
            return await retry_async(
                lambda: self._history.fetch_page(
                    channel.id, before=before, limit=self._page_size
                ),
                target="history_page",
                max_attempts=self._max_retry_attempts,
                base=self._retry_backoff,
                metrics=self._metrics,
            )
        except Exception as e:
            raise ResyncError(
                f"Failed to fetch history of #{channel.name}: {e}",
                channel_id=channel.id,
            ) from e

    async def _stage_message(
        self, message: IncomingMessage, builder: SnapshotBuilder, resync_id: str
    ) -> None:
        builder.add_message(message.author)

        for reaction in message.reactions:
            emoji_name = normalize_emoji_name(reaction.emoji)
            logger.debug(
                "Fetching reaction users",
                extra={
                    "correlation_id": resync_id,
                    "emoji": emoji_name,
                    "message_id": message.id,
                },
            )
            try:
                users = await reaction.fetch_users()
            except Exception:
                logger.warning(
                    "Failed to fetch reaction users; skipping reaction",
                    extra={
                        "correlation_id": resync_id,
                        "emoji": emoji_name,
                        "message_id": message.id,
                    },
                    exc_info=True,
                )
                continue
            for user in users:
                builder.add_reaction(emoji_name, user)

        announcement = self._extractor.extract_announcement(message)
        if announcement is not None:
            builder.add_announcement(announcement)

        photo_count = self._extractor.photo_count(message)
        if photo_count:
            builder.add_photos(message.author, photo_count)
        for record in self._extractor.extract_photos(message):
            builder.add_photo_record(record)
