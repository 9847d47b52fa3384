"""Document-wide content view: tables, paragraphs and full text.

Aggregates already-analysed pages into flat lists a downstream consumer
can index without walking blocks.  Tables come from each page's windowed
scan; paragraphs from its paragraph blocks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Iterable, List

from .models import BlockKind, TableGrid

if TYPE_CHECKING:
    from .pipeline import PageResult

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectedTable:
    page_number: int
    grid: TableGrid

    def to_dict(self) -> Dict[str, Any]:
        return {"page_number": self.page_number, "rows": self.grid.to_lists()}


@dataclass(frozen=True)
class DetectedParagraph:
    page_number: int
    text: str
    font_size: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "page_number": self.page_number,
            "text": self.text,
            "font_size": round(self.font_size, 3),
        }


@dataclass
class DocumentContent:
    """Tables, paragraphs and raw text gathered across pages."""

    tables: List[DetectedTable] = field(default_factory=list)
    paragraphs: List[DetectedParagraph] = field(default_factory=list)
    text: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tables": [t.to_dict() for t in self.tables],
            "paragraphs": [p.to_dict() for p in self.paragraphs],
            "text": self.text,
        }


def detect_content(pages: Iterable["PageResult"]) -> DocumentContent:
    """Collect content from *pages* in page order.

    Failed pages contribute nothing.  Page texts are joined with a blank
    line between pages.
    """
    out = DocumentContent()
    texts: List[str] = []
    for pr in pages:
        if pr.failed:
            log.debug("detect_content: skipping failed page %d", pr.page_number)
            continue
        out.tables.extend(DetectedTable(pr.page_number, g) for g in pr.tables)
        for blk in pr.blocks_of(BlockKind.paragraph):
            out.paragraphs.append(
                DetectedParagraph(pr.page_number, blk.content, blk.font_size())
            )
        texts.append(pr.text)
    out.text = "\n\n".join(texts)
    return out
