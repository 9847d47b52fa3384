"""Serialization helpers for the per-page layout output.

``serialize_page`` converts a :class:`~pagelayout.pipeline.PageResult` into
a JSON-friendly dict that can be written to ``page_N_layout.json``.

``deserialize_page`` reconstructs an equal ``PageResult`` from that dict.
Stage bookkeeping is not part of the layout and is not restored.

JSON layout
-----------
::

    {
      "version": 1,
      "page": 2,
      "scale": 1.5,
      "text": "...",
      "failed": false,
      "blocks": [ {Block.to_dict()}, ... ],
      "tables": [ [["a", "b"], ["c", "d"]], ... ]
    }
"""

from __future__ import annotations

from typing import Any

from ..models import Block, TableGrid
from ..pipeline import PageResult

FORMAT_VERSION = 1

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def serialize_page(page: PageResult) -> dict[str, Any]:
    """Serialize a single page's layout to a JSON-friendly dict."""
    d: dict[str, Any] = {
        "version": FORMAT_VERSION,
        "page": page.page_number,
        "scale": page.scale,
        "text": page.text,
        "failed": page.failed,
        "blocks": [b.to_dict() for b in page.blocks],
        "tables": [g.to_lists() for g in page.tables],
    }
    if page.error is not None:
        d["error"] = page.error
    return d


def deserialize_page(data: dict[str, Any]) -> PageResult:
    """Deserialize a page layout JSON dict.

    Raises
    ------
    ValueError
        If the dict was written by an unknown format version.
    """
    version = data.get("version", FORMAT_VERSION)
    if version != FORMAT_VERSION:
        raise ValueError(f"Unsupported page layout version: {version}")
    return PageResult(
        page_number=data["page"],
        blocks=tuple(Block.from_dict(b) for b in data.get("blocks", [])),
        tables=tuple(TableGrid.from_lists(t) for t in data.get("tables", [])),
        text=data.get("text", ""),
        scale=data.get("scale", 1.0),
        failed=data.get("failed", False),
        error=data.get("error"),
    )
