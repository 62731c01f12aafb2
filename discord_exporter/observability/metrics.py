"""Prometheus metrics describing the exporter itself.

These are separate from the guild aggregates rendered on ``/metrics``; they
are served by prometheus_client's own HTTP server when enabled.
"""

from __future__ import annotations

import logging

from prometheus_client import Counter, Histogram, start_http_server

logger = logging.getLogger(__name__)


resync_runs_total = Counter(
    "exporter_resync_runs_total",
    "Number of full resyncs by final status",
    labelnames=("status",),
)

resync_duration_seconds = Histogram(
    "exporter_resync_duration_seconds",
    "Wall time of a full resync including the commit",
    buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600),
)

history_pages_total = Counter(
    "exporter_history_pages_total",
    "History pages fetched during resyncs",
)

gateway_events_total = Counter(
    "exporter_gateway_events_total",
    "Gateway events handled by kind and outcome",
    labelnames=("kind", "outcome"),
)

reaction_inconsistencies_total = Counter(
    "exporter_reaction_inconsistencies_total",
    "Reaction removals for pairs the store had no counter for",
)

retries_total = Counter(
    "exporter_retries_total",
    "Retry attempts by target",
    labelnames=("target",),
)


_server_started: bool = False


def ensure_metrics_server(port: int) -> None:
    """Start Prometheus metrics HTTP server once per process.

    Args:
        port: Port to bind the metrics endpoint to.
    """
    global _server_started
    if _server_started:
        return
    try:
        start_http_server(port)
        _server_started = True
        logger.info("Prometheus metrics server started", extra={"port": port})
    except Exception as e:
        # Don't fail the service if metrics cannot be started
        logger.warning("Failed to start metrics server: %s", e, exc_info=True)
