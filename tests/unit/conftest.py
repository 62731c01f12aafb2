"""Pytest configuration for unit tests."""

import pytest

from discord_exporter.observability.metrics_adapter import NoopMetricsAdapter


class RecordingMetrics(NoopMetricsAdapter):
    """Metrics adapter that remembers what it was told."""

    def __init__(self):
        self.resyncs = []
        self.events = []
        self.pages = 0
        self.inconsistencies = 0
        self.retries = []

    def observe_resync(self, status, duration):
        self.resyncs.append(status)

    def inc_history_page(self):
        self.pages += 1

    def inc_event(self, kind, outcome):
        self.events.append((kind, outcome))

    def inc_reaction_inconsistency(self):
        self.inconsistencies += 1

    def inc_retry(self, target):
        self.retries.append(target)


@pytest.fixture
def recording_metrics():
    return RecordingMetrics()
