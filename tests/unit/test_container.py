import pytest

from discord_exporter.core.config import ExporterConfig
from discord_exporter.di.container import Container
from discord_exporter.main import _build_parser, _load_config
from discord_exporter.observability.metrics_adapter import (
    NoopMetricsAdapter,
    PrometheusMetricsAdapter,
)


class _ClientStub:
    def __init__(self):
        self.handlers = {}

    def event(self, coro):
        self.handlers[coro.__name__] = coro
        return coro


def _config(**overrides) -> ExporterConfig:
    values = dict(
        discord_token="token",
        discord_guild_id="1",
        discord_photo_channel_id="2",
        discord_announcement_channel_id="3",
        resync_event_policy="discard",
        history_page_size=50,
    )
    values.update(overrides)
    return ExporterConfig(**values)


def test_container_wires_shared_state():
    client = _ClientStub()
    container = Container(config=_config(), client=client)

    engine = container.provide_engine()
    app = container.provide_app()

    assert app.state.exporter.store is container.provide_store()
    assert app.state.exporter.ledger is container.provide_ledger()
    assert app.state.exporter.feed.feed_url == "http://localhost:3000/rss.xml"
    assert container.provide_gateway().client is client
    assert "on_ready" in client.handlers
    assert engine._event_policy == "discard"
    assert engine._page_size == 50
    assert isinstance(engine._metrics, NoopMetricsAdapter)


def test_container_selects_prometheus_adapter_when_enabled(monkeypatch):
    started = []
    monkeypatch.setattr(
        "discord_exporter.di.container.ensure_metrics_server", started.append
    )
    container = Container(
        config=_config(enable_metrics=True, metrics_port=9100), client=_ClientStub()
    )
    container.initialize_runtime()

    assert isinstance(container.provide_engine()._metrics, PrometheusMetricsAdapter)
    assert started == [9100]


def test_cli_overrides_applied(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("DISCORD_TOKEN", "token")
    monkeypatch.setenv("DISCORD_GUILD_ID", "1")
    monkeypatch.setenv("DISCORD_PHOTO_CHANNEL_ID", "2")
    monkeypatch.setenv("DISCORD_ANNOUNCEMENT_CHANNEL_ID", "3")

    args = _build_parser().parse_args(["--port", "8080", "--event-policy", "discard"])
    config = _load_config(args)

    assert config.http_port == 8080
    assert config.resync_event_policy == "discard"


def test_invalid_config_returns_none(monkeypatch, tmp_path, capsys):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DISCORD_TOKEN", raising=False)

    config = _load_config(_build_parser().parse_args([]))

    assert config is None
    assert "Configuration validation error" in capsys.readouterr().err


@pytest.mark.parametrize("argv", [["--event-policy", "merge"], ["--port", "abc"]])
def test_parser_rejects_bad_arguments(argv):
    with pytest.raises(SystemExit):
        _build_parser().parse_args(argv)
