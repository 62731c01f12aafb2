"""Text exposition of the guild counters for ``GET /metrics``."""

from __future__ import annotations

from typing import Iterable

from discord_exporter.repositories.counter_store import CounterStore

CONTENT_TYPE = "text/plain; version=1.0.0"

MESSAGES_METRIC = "discord_messages_total"
REACTIONS_METRIC = "discord_reactions_total"
PHOTOS_METRIC = "discord_photos_total"


def escape_label_value(value: str) -> str:
    """Escape backslash, double quote and newline as the exposition format requires."""
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace('"', '\\"')


def _sample(name: str, labels: Iterable[tuple[str, str]], value: int) -> str:
    rendered = ",".join(f'{key}="{escape_label_value(val)}"' for key, val in labels)
    return f"{name}{{{rendered}}} {value}"


def _header(name: str, help_text: str) -> list[str]:
    return [f"# TYPE {name} counter", f"# HELP {name} {help_text}"]


def render_metrics(store: CounterStore) -> str:
    """Render message, reaction and photo counters.

    Entries appear in store order. When no photo counter exists a bare
    ``discord_photos_total 0`` sample is emitted so the series is never absent.
    """
    lines = _header(MESSAGES_METRIC, "Total number of messages sent by users")
    for entry in store.messages():
        lines.append(_sample(MESSAGES_METRIC, [("user", entry.user)], entry.count))

    lines += _header(REACTIONS_METRIC, "Total number of reactions added by users")
    for reaction in store.reactions():
        lines.append(
            _sample(
                REACTIONS_METRIC,
                [("emoji", reaction.emoji), ("user", reaction.user)],
                reaction.count,
            )
        )

    lines += _header(PHOTOS_METRIC, "Total number of photos posted by users")
    photos = store.photos()
    for entry in photos:
        lines.append(_sample(PHOTOS_METRIC, [("user", entry.user)], entry.count))
    if not photos:
        lines.append(f"{PHOTOS_METRIC} 0")

    return "\n".join(lines) + "\n"
