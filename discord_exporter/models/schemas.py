"""Pydantic models for aggregated exporter state.

These are the records held by the counter store and the photo ledger and the
snapshot handed from a resync to ``CounterStore.replace_all``.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class UserCount(BaseModel):
    """Per-user counter (messages or photos).

    Attributes:
        user: User identity (Discord tag)
        count: Accumulated count
    """

    model_config = ConfigDict(frozen=True)

    user: str = Field(..., min_length=1, description="User identity")
    count: int = Field(..., ge=0, description="Accumulated count")


class ReactionCount(BaseModel):
    """Per-(user, emoji) reaction counter.

    Attributes:
        user: Reacting user identity
        emoji: Normalized emoji name (e.g. "heart")
        count: Reactions currently attributed to the pair
    """

    model_config = ConfigDict(frozen=True)

    user: str = Field(..., min_length=1, description="Reacting user")
    emoji: str = Field(..., min_length=1, description="Normalized emoji name")
    count: int = Field(..., ge=1, description="Number of reactions")


class Announcement(BaseModel):
    """Post from the announcement channel, rendered into the RSS document."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="Jump URL of the message")
    content: str = Field(default="", description="Raw message content")
    author: str = Field(..., description="Author identity")
    date: datetime = Field(..., description="Message creation time")
    image_url: Optional[str] = Field(
        default=None, description="URL of the first attachment, if any"
    )


class PhotoRecord(BaseModel):
    """Single attachment posted to the photo channel.

    ``seq`` is assigned by the ledger on append and is what "latest" means;
    ``created_at`` is only used for display order.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1, description="Attachment ID")
    title: str = Field(..., description="Caption derived from the message")
    width: Optional[int] = Field(default=None, ge=0, description="Pixel width")
    height: Optional[int] = Field(default=None, ge=0, description="Pixel height")
    url: str = Field(..., description="Attachment URL")
    created_at: datetime = Field(..., description="Message creation time")
    seq: Optional[int] = Field(
        default=None, description="Ledger sequence number (set on append)"
    )


class StoreSnapshot(BaseModel):
    """Complete aggregate state produced by a resync."""

    model_config = ConfigDict(frozen=True)

    messages: list[UserCount] = Field(default_factory=list)
    reactions: list[ReactionCount] = Field(default_factory=list)
    photos: list[UserCount] = Field(default_factory=list)
    announcements: list[Announcement] = Field(default_factory=list)
