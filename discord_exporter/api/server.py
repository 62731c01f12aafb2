"""FastAPI application exposing the aggregated state.

Routes only read: the store, ledger and watcher are attached to
``app.state`` by ``create_app`` and handed to handlers through dependencies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field

from discord_exporter import __version__
from discord_exporter.core.exceptions import WatchCancelled
from discord_exporter.repositories.counter_store import CounterStore
from discord_exporter.repositories.photo_ledger import PhotoLedger
from discord_exporter.services.freshness_watcher import FreshnessWatcher
from discord_exporter.services.renderers import feed_renderer, metrics_renderer
from discord_exporter.services.renderers.gallery_renderer import render_gallery_page

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedSettings:
    title: str
    description: str
    feed_url: str
    site_url: str


@dataclass(frozen=True)
class AppState:
    """Everything the read endpoints need."""

    store: CounterStore
    ledger: PhotoLedger
    watcher: FreshnessWatcher
    feed: FeedSettings
    gallery_limit: int = 50
    freshness_timeout: Optional[float] = None


class LatestIdResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    latest_id: Optional[str] = Field(default=None, alias="latestId")


def get_state(request: Request) -> AppState:
    return request.app.state.exporter


router = APIRouter()


@router.get("/", response_class=PlainTextResponse)
async def index() -> str:
    return "Hello! This is Discord Exporter."


@router.get("/metrics")
async def metrics(state: AppState = Depends(get_state)) -> Response:
    return Response(
        content=metrics_renderer.render_metrics(state.store),
        media_type=metrics_renderer.CONTENT_TYPE,
    )


@router.get("/rss.xml")
async def rss(state: AppState = Depends(get_state)) -> Response:
    document = feed_renderer.render_feed(
        state.store.announcements(),
        title=state.feed.title,
        description=state.feed.description,
        feed_url=state.feed.feed_url,
        site_url=state.feed.site_url,
    )
    return Response(content=document, media_type=feed_renderer.CONTENT_TYPE)


@router.get("/photos", response_class=HTMLResponse)
async def photos(state: AppState = Depends(get_state)) -> str:
    return render_gallery_page(state.ledger, state.gallery_limit)


@router.get("/photos/latest-id", response_model=LatestIdResponse)
async def latest_photo_id(
    request: Request,
    latest_id: Optional[str] = Query(default=None, alias="latestId"),
    state: AppState = Depends(get_state),
) -> LatestIdResponse | Response:
    """Long-poll until the newest photo id differs from ``latestId``."""
    try:
        current = await state.watcher.wait_for_change(
            latest_id or None,
            is_disconnected=request.is_disconnected,
            timeout=state.freshness_timeout,
        )
    except WatchCancelled:
        return Response(status_code=204)
    return LatestIdResponse(latest_id=current)


def create_app(state: AppState) -> FastAPI:
    """Build the HTTP application around an explicitly owned state."""
    app = FastAPI(
        title="Discord Exporter",
        version=__version__,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.exporter = state
    app.include_router(router)
    return app
