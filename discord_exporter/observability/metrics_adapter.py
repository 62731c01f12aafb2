"""Metrics adapter decoupling the engine from prometheus_client.

The engine and store talk to ``MetricsAdapter``; the container picks the
Prometheus-backed implementation or the no-op one based on configuration.
"""

from __future__ import annotations

import logging
from typing import Protocol

from discord_exporter.observability.metrics import (
    gateway_events_total,
    history_pages_total,
    reaction_inconsistencies_total,
    resync_duration_seconds,
    resync_runs_total,
    retries_total,
)

logger = logging.getLogger(__name__)


class MetricsAdapter(Protocol):
    """Abstract metrics interface used by services."""

    def observe_resync(self, status: str, duration: float) -> None:
        """Record one finished resync with its status and duration."""

    def inc_history_page(self) -> None:
        """Increment when a history page has been fetched."""

    def inc_event(self, kind: str, outcome: str) -> None:
        """Increment when a gateway event was applied, skipped or failed."""

    def inc_reaction_inconsistency(self) -> None:
        """Increment when a removal targets a missing reaction counter."""

    def inc_retry(self, target: str) -> None:
        """Increment before a retry sleep."""


class PrometheusMetricsAdapter:
    """Prometheus-backed adapter; failures are logged and swallowed."""

    def observe_resync(self, status: str, duration: float) -> None:
        try:
            resync_runs_total.labels(status=status).inc()
            resync_duration_seconds.observe(max(0.0, duration))
        except Exception:
            logger.debug("Prometheus observe_resync failed", exc_info=True)

    def inc_history_page(self) -> None:
        try:
            history_pages_total.inc()
        except Exception:
            logger.debug("Prometheus inc_history_page failed", exc_info=True)

    def inc_event(self, kind: str, outcome: str) -> None:
        try:
            gateway_events_total.labels(kind=kind, outcome=outcome).inc()
        except Exception:
            logger.debug(
                "Prometheus inc_event failed",
                extra={"kind": kind, "outcome": outcome},
                exc_info=True,
            )

    def inc_reaction_inconsistency(self) -> None:
        try:
            reaction_inconsistencies_total.inc()
        except Exception:
            logger.debug("Prometheus inc_reaction_inconsistency failed", exc_info=True)

    def inc_retry(self, target: str) -> None:
        try:
            retries_total.labels(target=target).inc()
        except Exception:
            logger.debug("Prometheus inc_retry failed", exc_info=True)


class NoopMetricsAdapter:
    """No-op adapter used when metrics are disabled."""

    def observe_resync(self, status: str, duration: float) -> None:  # noqa: ARG002
        return

    def inc_history_page(self) -> None:
        return

    def inc_event(self, kind: str, outcome: str) -> None:  # noqa: ARG002
        return

    def inc_reaction_inconsistency(self) -> None:
        return

    def inc_retry(self, target: str) -> None:  # noqa: ARG002
        return
