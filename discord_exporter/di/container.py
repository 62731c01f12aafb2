"""Application DI container.

Builds the shared state, the reconciliation engine, the Discord adapter and
the HTTP app from one ``ExporterConfig``.
"""

from __future__ import annotations

from typing import Optional

import discord
from fastapi import FastAPI

from discord_exporter.api.server import AppState, FeedSettings, create_app
from discord_exporter.core.config import ExporterConfig
from discord_exporter.gateways.discord_gateway import (
    DiscordGateway,
    DiscordHistorySource,
    build_client,
)
from discord_exporter.observability.metrics import ensure_metrics_server
from discord_exporter.observability.metrics_adapter import (
    MetricsAdapter,
    NoopMetricsAdapter,
    PrometheusMetricsAdapter,
)
from discord_exporter.repositories.counter_store import CounterStore
from discord_exporter.repositories.photo_ledger import PhotoLedger
from discord_exporter.services.extractors.message_extractor import MessageExtractor
from discord_exporter.services.freshness_watcher import FreshnessWatcher
from discord_exporter.services.reconciliation.engine import ReconciliationEngine


class Container:
    """Container building all primary services for the exporter."""

    def __init__(
        self, *, config: ExporterConfig, client: Optional[discord.Client] = None
    ) -> None:
        """Build and wire core components from configuration."""
        self._config = config

        # State
        self._store = CounterStore()
        self._ledger = PhotoLedger()
        self._watcher = FreshnessWatcher(
            self._ledger, poll_interval=config.freshness_poll_interval
        )

        # Metrics
        self._metrics: MetricsAdapter = (
            PrometheusMetricsAdapter() if config.enable_metrics else NoopMetricsAdapter()
        )

        # Discord and reconciliation
        self._client = client or build_client()
        self._history = DiscordHistorySource(self._client, config.discord_guild_id)
        self._extractor = MessageExtractor(
            announcement_channel_id=config.discord_announcement_channel_id,
            photo_channel_id=config.discord_photo_channel_id,
        )
        self._engine = ReconciliationEngine(
            store=self._store,
            ledger=self._ledger,
            extractor=self._extractor,
            history=self._history,
            page_size=config.history_page_size,
            event_policy=config.resync_event_policy,
            max_retry_attempts=config.max_retry_attempts,
            retry_backoff=config.retry_backoff_factor,
            metrics=self._metrics,
        )
        self._gateway = DiscordGateway(
            self._client, self._engine.handle_event, guild_id=config.discord_guild_id
        )

        # HTTP
        self._app = create_app(
            AppState(
                store=self._store,
                ledger=self._ledger,
                watcher=self._watcher,
                feed=FeedSettings(
                    title=config.feed_title,
                    description=config.feed_description,
                    feed_url=config.get_feed_url(),
                    site_url=config.site_url,
                ),
                gallery_limit=config.gallery_limit,
                freshness_timeout=config.freshness_timeout,
            )
        )

    def initialize_runtime(self) -> None:
        """Perform side-effectful initialization (self-metrics server)."""
        if self._config.enable_metrics:
            ensure_metrics_server(self._config.metrics_port)

    def provide_store(self) -> CounterStore:
        return self._store

    def provide_ledger(self) -> PhotoLedger:
        return self._ledger

    def provide_engine(self) -> ReconciliationEngine:
        """Provide the reconciliation engine."""
        return self._engine

    def provide_gateway(self) -> DiscordGateway:
        """Provide the Discord gateway."""
        return self._gateway

    def provide_app(self) -> FastAPI:
        """Provide the HTTP application."""
        return self._app
