"""Custom exception types for the exporter.

Only ``GuildNotFoundError`` is meant to stop the process; everything else is
contained to the unit of work that raised it.
"""

from typing import Optional


class ExporterError(Exception):
    """Base exception for all exporter errors."""

    def __init__(  # noqa: B042
        self,
        message: str,
        *,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize error with message and optional correlation id."""
        super().__init__(message)
        self.correlation_id = correlation_id


class GuildNotFoundError(ExporterError):
    """Target guild could not be resolved.

    Raised at the start of a resync when the client is not a member of the
    configured guild or the guild is not in the client's cache yet.
    """

    def __init__(  # noqa: B042
        self,
        message: str,
        guild_id: str,
        *,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Initialize guild not found error.

        Args:
            message: Error message
            guild_id: Guild identifier that wasn't found
            correlation_id: Optional correlation ID for tracing
        """
        super().__init__(message, correlation_id=correlation_id)
        self.guild_id = guild_id


class ResyncError(ExporterError):
    """Historical crawl failed and its snapshot was discarded."""

    def __init__(  # noqa: B042
        self,
        message: str,
        channel_id: Optional[str] = None,
        *,
        correlation_id: Optional[str] = None,
    ) -> None:
        super().__init__(message, correlation_id=correlation_id)
        self.channel_id = channel_id


class ResolutionError(ExporterError):
    """A partial gateway object (user, reaction) could not be fetched."""


class WatchCancelled(ExporterError):
    """A freshness wait was abandoned because the caller went away."""
