from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple


class BlockKind(str, Enum):
    """Semantic type assigned to a block."""

    header = "header"
    table = "table"
    paragraph = "paragraph"
    text = "text"
    image = "image"


@dataclass(frozen=True)
class RawTextItem:
    """One text run as delivered by the document source.

    ``transform`` is the 2D affine ``(a, b, c, d, e, f)`` of the run; ``e`` and
    ``f`` hold its origin in bottom-up page coordinates.
    """

    text: str
    transform: Tuple[float, float, float, float, float, float]
    width: float = 0.0
    height: float = 0.0

    @classmethod
    def from_dict(cls, d: dict) -> "RawTextItem":
        """Accept either ``text`` or the source's ``str`` key."""
        text = d.get("text", d.get("str", ""))
        return cls(
            text=text,
            transform=tuple(float(v) for v in d["transform"]),
            width=float(d.get("width", 0.0)),
            height=float(d.get("height", 0.0)),
        )


@dataclass(frozen=True)
class Token:
    """Smallest unit: a positioned text run in top-left-origin page space."""

    text: str
    x: float
    y: float
    width: float = 0.0
    height: float = 0.0
    font_size: float = 0.0

    def bbox(self) -> Tuple[float, float, float, float]:
        """Bounding box as ``(x0, y0, x1, y1)``."""
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict."""
        return {
            "text": self.text,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "font_size": self.font_size,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Token":
        """Deserialize from a dict produced by :meth:`to_dict`."""
        return cls(
            text=d.get("text", ""),
            x=d["x"],
            y=d["y"],
            width=d.get("width", 0.0),
            height=d.get("height", 0.0),
            font_size=d.get("font_size", 0.0),
        )


@dataclass(frozen=True)
class Line:
    """Tokens sharing one quantised y position, ordered left to right."""

    y: float
    tokens: Tuple[Token, ...] = ()

    @property
    def text(self) -> str:
        return " ".join(t.text for t in self.tokens)

    @property
    def item_count(self) -> int:
        return len(self.tokens)

    @property
    def avg_font_size(self) -> float:
        if not self.tokens:
            return 0.0
        return sum(t.font_size for t in self.tokens) / len(self.tokens)

    @property
    def spacing(self) -> float:
        """Mean horizontal step between consecutive token origins."""
        if len(self.tokens) < 2:
            return 0.0
        return (self.tokens[-1].x - self.tokens[0].x) / (len(self.tokens) - 1)

    def bbox(self) -> Tuple[float, float, float, float]:
        """Bounding box enclosing all tokens on this line."""
        if not self.tokens:
            return (0, 0, 0, 0)
        boxes = [t.bbox() for t in self.tokens]
        return (
            min(b[0] for b in boxes),
            min(b[1] for b in boxes),
            max(b[2] for b in boxes),
            max(b[3] for b in boxes),
        )

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dict.

        Derived fields are rounded for display; ``from_dict`` rebuilds them
        from the tokens.
        """
        return {
            "y": self.y,
            "text": self.text,
            "avg_font_size": round(self.avg_font_size, 3),
            "item_count": self.item_count,
            "spacing": round(self.spacing, 3),
            "tokens": [t.to_dict() for t in self.tokens],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Line":
        """Deserialize from a dict produced by :meth:`to_dict`."""
        return cls(
            y=d["y"],
            tokens=tuple(Token.from_dict(t) for t in d.get("tokens", [])),
        )


@dataclass(frozen=True)
class TableGrid:
    """Row/column cell matrix; rows are top to bottom, cells left to right."""

    rows: Tuple[Tuple[str, ...], ...] = ()

    @property
    def row_count(self) -> int:
        return len(self.rows)

    @property
    def column_count(self) -> int:
        """Widest row's cell count."""
        return max((len(r) for r in self.rows), default=0)

    def to_lists(self) -> List[List[str]]:
        return [list(r) for r in self.rows]

    @classmethod
    def from_lists(cls, rows: Sequence[Sequence[str]]) -> "TableGrid":
        return cls(rows=tuple(tuple(r) for r in rows))


@dataclass(frozen=True)
class ImageContent:
    """Recognised text of one embedded raster image.

    ``image_ref`` is an opaque handle chosen by the image source (e.g. the
    XObject name); the bbox is in the same scaled space as tokens.
    """

    text: str = ""
    image_ref: str = ""
    bbox: Tuple[float, float, float, float] = (0, 0, 0, 0)
    failed: bool = False
    error: Optional[str] = None

    def to_dict(self) -> dict:
        d: Dict[str, Any] = {
            "text": self.text,
            "image_ref": self.image_ref,
            "bbox": list(self.bbox),
            "failed": self.failed,
        }
        if self.error is not None:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "ImageContent":
        return cls(
            text=d.get("text", ""),
            image_ref=d.get("image_ref", ""),
            bbox=tuple(d.get("bbox", (0, 0, 0, 0))),
            failed=d.get("failed", False),
            error=d.get("error"),
        )


@dataclass(frozen=True)
class Block:
    """A vertically contiguous run of lines treated as one structural unit.

    Text-derived blocks satisfy ``y_start == lines[0].y`` and
    ``y_end == lines[-1].y``.  Image blocks have no lines; their y-range is
    the image's vertical extent.
    """

    kind: BlockKind
    lines: Tuple[Line, ...] = ()
    y_start: float = 0.0
    y_end: float = 0.0
    grid: Optional[TableGrid] = None
    image: Optional[ImageContent] = None

    @classmethod
    def from_lines(
        cls,
        kind: BlockKind,
        lines: Sequence[Line],
        grid: Optional[TableGrid] = None,
    ) -> "Block":
        lines = tuple(lines)
        return cls(
            kind=kind,
            lines=lines,
            y_start=lines[0].y,
            y_end=lines[-1].y,
            grid=grid,
        )

    @classmethod
    def from_image(cls, image: ImageContent) -> "Block":
        _, y0, _, y1 = image.bbox
        return cls(kind=BlockKind.image, y_start=y0, y_end=y1, image=image)

    def tokens(self) -> List[Token]:
        """All tokens in reading order (line by line, left to right)."""
        return [t for ln in self.lines for t in ln.tokens]

    def text(self) -> str:
        """Line texts joined by newlines, or the image's recognised text."""
        if self.image is not None:
            return self.image.text
        return "\n".join(ln.text for ln in self.lines)

    def font_size(self) -> float:
        """Average font size of the first line (0.0 for image blocks)."""
        return self.lines[0].avg_font_size if self.lines else 0.0

    @property
    def content(self) -> Any:
        """Kind-specific payload.

        Headers and text blocks give their text, paragraphs their lines
        joined into one run, tables their cell rows and images their
        recognised text.
        """
        if self.kind is BlockKind.image:
            return self.image.text if self.image else ""
        if self.kind is BlockKind.table:
            if self.grid is not None:
                return self.grid.to_lists()
            return [[t.text for t in ln.tokens] for ln in self.lines]
        if self.kind is BlockKind.paragraph:
            return " ".join(ln.text for ln in self.lines)
        return self.text()

    def contains(self, y: float) -> bool:
        return self.y_start <= y <= self.y_end

    def bbox(self) -> Tuple[float, float, float, float]:
        """Bounding box enclosing all lines (or the image)."""
        if self.image is not None:
            return self.image.bbox
        boxes = [ln.bbox() for ln in self.lines if ln.tokens]
        if not boxes:
            return (0, 0, 0, 0)
        return (
            min(b[0] for b in boxes),
            min(b[1] for b in boxes),
            max(b[2] for b in boxes),
            max(b[3] for b in boxes),
        )

    def to_dict(self) -> dict:
        """Serialize to JSON-friendly dict.  Eagerly evaluates bbox()."""
        d: Dict[str, Any] = {
            "kind": self.kind.value,
            "y_start": self.y_start,
            "y_end": self.y_end,
            "bbox": [round(v, 3) for v in self.bbox()],
            "text": self.text(),
            "lines": [ln.to_dict() for ln in self.lines],
        }
        if self.grid is not None:
            d["grid"] = self.grid.to_lists()
        if self.image is not None:
            d["image"] = self.image.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Block":
        """Reconstruct a Block from a dict produced by :meth:`to_dict`."""
        grid = d.get("grid")
        image = d.get("image")
        return cls(
            kind=BlockKind(d["kind"]),
            lines=tuple(Line.from_dict(ld) for ld in d.get("lines", [])),
            y_start=d.get("y_start", 0.0),
            y_end=d.get("y_end", 0.0),
            grid=TableGrid.from_lists(grid) if grid is not None else None,
            image=ImageContent.from_dict(image) if image is not None else None,
        )


@dataclass(frozen=True)
class Selection:
    """What the presentation layer shows for a hit-tested block."""

    kind: BlockKind
    text: str
    font_size: float

    @classmethod
    def from_block(cls, block: Block) -> "Selection":
        return cls(kind=block.kind, text=block.text(), font_size=block.font_size())
