"""HTML for the ``/photos`` gallery."""

from __future__ import annotations

import json
from html import escape
from typing import Iterable, Optional

from discord_exporter.models.schemas import PhotoRecord
from discord_exporter.repositories.photo_ledger import PhotoLedger


def _item_width(photo: PhotoRecord) -> str:
    if photo.width is not None and photo.height:
        return f"{photo.width / photo.height * 100:g}vh"
    return "auto"


def _dimension(value: Optional[int]) -> str:
    return str(value) if value is not None else "auto"


def render_photo_items(photos: Iterable[PhotoRecord]) -> str:
    """Render one ``photo-item`` fragment per photo, in the given order."""
    return "".join(
        f"""
        <div class="photo-item" style="width: {_item_width(photo)}">
          <figure>
            <img
              src="{escape(photo.url)}"
              alt=""
              width="{_dimension(photo.width)}"
              height="{_dimension(photo.height)}"
            >
            <figcaption>{escape(photo.title)}</figcaption>
          </figure>
        </div>
    """
        for photo in photos
    )


def render_gallery(ledger: PhotoLedger, limit: int) -> str:
    """Fragments for the ``limit`` most recently appended photos.

    The selection follows ledger order; the selected photos are then shown
    newest-created first.
    """
    photos = sorted(ledger.recent(limit), key=lambda p: p.created_at, reverse=True)
    return render_photo_items(photos)


_PAGE = """<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8">
    <title>Photos</title>
    <style>
      body {{ margin: 0; background: #111; color: #eee; font-family: sans-serif; }}
      .gallery {{ display: flex; flex-wrap: wrap; gap: 4px; }}
      .photo-item {{ height: 100vh; flex-grow: 1; }}
      .photo-item figure {{ margin: 0; height: 100%; position: relative; }}
      .photo-item img {{ width: 100%; height: 100%; object-fit: cover; }}
      .photo-item figcaption {{ position: absolute; bottom: 0; padding: 4px 8px; background: rgba(0, 0, 0, .5); }}
    </style>
  </head>
  <body>
    <div class="gallery">{items}</div>
    <script>
      let latestId = {latest_id};
      async function watch() {{
        while (true) {{
          try {{
            const query = encodeURIComponent(latestId ?? "");
            const res = await fetch(`/photos/latest-id?latestId=${{query}}`);
            const data = await res.json();
            if (data.latestId !== latestId) {{
              location.reload();
              return;
            }}
          }} catch (e) {{
            await new Promise((resolve) => setTimeout(resolve, 5000));
          }}
        }}
      }}
      watch();
    </script>
  </body>
</html>
"""


def render_gallery_page(ledger: PhotoLedger, limit: int) -> str:
    """Full gallery page with a long-poll loop that reloads on new photos."""
    latest = json.dumps(ledger.latest_id).replace("</", "<\\/")
    return _PAGE.format(items=render_gallery(ledger, limit), latest_id=latest)
