from datetime import datetime, timezone
from xml.etree import ElementTree

import pytest
from factories import ANNOUNCE_CHANNEL, PHOTO_CHANNEL, attachment, make_message
from fastapi.testclient import TestClient

from discord_exporter.api.server import AppState, FeedSettings, create_app
from discord_exporter.core.exceptions import WatchCancelled
from discord_exporter.models.events import (
    EmojiRef,
    MessageCreated,
    ReactionAdded,
    ReactionRemoved,
)
from discord_exporter.models.schemas import PhotoRecord
from discord_exporter.repositories.counter_store import CounterStore
from discord_exporter.repositories.photo_ledger import PhotoLedger
from discord_exporter.services.extractors.message_extractor import MessageExtractor
from discord_exporter.services.freshness_watcher import FreshnessWatcher
from discord_exporter.services.reconciliation.engine import ReconciliationEngine


class _NoHistory:
    async def list_channels(self):
        return []

    async def fetch_page(self, channel_id, *, before, limit):
        return []


@pytest.fixture
def wired():
    store = CounterStore()
    ledger = PhotoLedger()
    engine = ReconciliationEngine(
        store=store,
        ledger=ledger,
        extractor=MessageExtractor(
            announcement_channel_id=ANNOUNCE_CHANNEL, photo_channel_id=PHOTO_CHANNEL
        ),
        history=_NoHistory(),
    )
    app = create_app(
        AppState(
            store=store,
            ledger=ledger,
            watcher=FreshnessWatcher(ledger, poll_interval=0.01),
            feed=FeedSettings(
                title="Guild news",
                description="Announcements",
                feed_url="http://testserver/rss.xml",
                site_url="http://testserver",
            ),
            gallery_limit=50,
            freshness_timeout=0.05,
        )
    )
    return engine, ledger, TestClient(app)


def test_index_greets(wired):
    _, _, client = wired
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == "Hello! This is Discord Exporter."


@pytest.mark.asyncio
async def test_alice_and_bob_scenario(wired):
    engine, _, client = wired
    await engine.handle_event(
        MessageCreated(
            message=make_message(
                "1",
                author="alice",
                channel_id=PHOTO_CHANNEL,
                content="sunset",
                attachments=[attachment("p1")],
            )
        )
    )
    await engine.handle_event(
        ReactionAdded(
            message_id="1",
            channel_id=PHOTO_CHANNEL,
            emoji=EmojiRef(name="🔥"),
            user_id="2",
            user_tag="bob",
        )
    )
    await engine.handle_event(
        MessageCreated(
            message=make_message(
                "2",
                author="bob",
                channel_id=ANNOUNCE_CHANNEL,
                content="# Meetup\nFriday",
                created_at=datetime(2024, 2, 1, tzinfo=timezone.utc),
            )
        )
    )

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert metrics.headers["content-type"].startswith("text/plain")
    assert 'discord_messages_total{user="alice"} 1' in metrics.text
    assert 'discord_messages_total{user="bob"} 1' in metrics.text
    assert 'discord_reactions_total{emoji="fire",user="bob"} 1' in metrics.text
    assert 'discord_photos_total{user="alice"} 1' in metrics.text

    rss = client.get("/rss.xml")
    assert rss.headers["content-type"].startswith("application/rss+xml")
    item = ElementTree.fromstring(rss.content).find("channel/item")
    assert item.findtext("title") == "Meetup"
    assert item.findtext("description") == "Friday"

    gallery = client.get("/photos")
    assert gallery.headers["content-type"].startswith("text/html")
    assert "sunset by alice" in gallery.text
    assert 'let latestId = "p1";' in gallery.text

    await engine.handle_event(
        ReactionRemoved(
            message_id="1",
            channel_id=PHOTO_CHANNEL,
            emoji=EmojiRef(name="🔥"),
            user_id="2",
            user_tag="bob",
        )
    )
    metrics = client.get("/metrics")
    assert 'discord_reactions_total{emoji="fire",user="bob"}' not in metrics.text
    assert 'discord_messages_total{user="bob"} 1' in metrics.text


def test_latest_id_returns_immediately_when_stale(wired):
    _, ledger, client = wired
    ledger.append(
        PhotoRecord(
            id="p7",
            title="t",
            url="https://cdn.example/p7.jpg",
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
    )

    response = client.get("/photos/latest-id", params={"latestId": ""})
    assert response.json() == {"latestId": "p7"}

    response = client.get("/photos/latest-id")
    assert response.json() == {"latestId": "p7"}


def test_latest_id_times_out_with_unchanged_value(wired):
    _, _, client = wired
    response = client.get("/photos/latest-id", params={"latestId": ""})
    assert response.status_code == 200
    assert response.json() == {"latestId": None}


def test_cors_headers_present(wired):
    _, _, client = wired
    response = client.get("/metrics", headers={"Origin": "http://elsewhere.example"})
    assert response.headers["access-control-allow-origin"] == "*"


class _GoneWatcher:
    async def wait_for_change(self, last_known_id, *, is_disconnected=None, timeout=None):
        raise WatchCancelled("caller disconnected")


def test_latest_id_answers_no_content_when_caller_left():
    app = create_app(
        AppState(
            store=CounterStore(),
            ledger=PhotoLedger(),
            watcher=_GoneWatcher(),
            feed=FeedSettings(
                title="Guild news",
                description="Announcements",
                feed_url="http://testserver/rss.xml",
                site_url="http://testserver",
            ),
        )
    )

    response = TestClient(app).get("/photos/latest-id", params={"latestId": "p1"})

    assert response.status_code == 204
    assert response.content == b""
