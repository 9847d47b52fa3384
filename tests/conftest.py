"""Shared test fixtures for pagelayout."""

import pytest

from pagelayout.config import LayoutConfig
from pagelayout.models import Line, RawTextItem, Token

# ── Helpers ────────────────────────────────────────────────────────────


def make_token(
    text: str,
    x: float,
    y: float,
    font_size: float = 10.0,
    width: float | None = None,
) -> Token:
    """Create a Token with sane defaults (width ~ half an em per character)."""
    if width is None:
        width = len(text) * font_size * 0.5
    return Token(
        text=text, x=x, y=y, width=width, height=font_size, font_size=font_size
    )


def make_line(
    y: float,
    cells: list[tuple[float, str]],
    font_size: float = 10.0,
) -> Line:
    """Build a Line at *y* from ``(x, text)`` pairs (already left to right)."""
    return Line(y=y, tokens=tuple(make_token(t, x, y, font_size) for x, t in cells))


def make_item(
    text: str,
    x: float,
    y: float,
    height: float = 10.0,
    width: float = 30.0,
) -> RawTextItem:
    """Create a RawTextItem whose origin (x, y) is in bottom-up page space."""
    return RawTextItem(
        text=text, transform=(height, 0.0, 0.0, height, x, y), width=width, height=height
    )


def make_row(y: float, texts: list[str], x0: float = 50.0, step: float = 40.0, font_size: float = 10.0) -> list[Token]:
    """Tokens for one table row, evenly spaced from *x0*."""
    return [make_token(t, x0 + i * step, y, font_size) for i, t in enumerate(texts)]


# ── Fixtures ───────────────────────────────────────────────────────────


@pytest.fixture
def default_cfg() -> LayoutConfig:
    """Return a default LayoutConfig."""
    return LayoutConfig()


@pytest.fixture
def header_table_tokens() -> list[Token]:
    """A large-font title line above a three-row, two-column table.

    Title (y=100, font 20):  "Quarterly" "Title"
    Rows  (y=130/150/170, font 10, x=50/90):
        "Q1" "10"
        "Q2" "20"
        "Q3" "30"
    """
    return [
        make_token("Quarterly", 50, 100, 20),
        make_token("Title", 160, 100, 20),
        *make_row(130, ["Q1", "10"]),
        *make_row(150, ["Q2", "20"]),
        *make_row(170, ["Q3", "30"]),
    ]


@pytest.fixture
def paragraph_tokens() -> list[Token]:
    """Five single-token prose lines, font 11, 15 units apart from y=100."""
    sentences = [
        "The quick brown fox jumps over",
        "the lazy dog while the farmer",
        "watches from the porch with a",
        "cup of coffee and a newspaper",
        "that he has already read twice",
    ]
    return [make_token(s, 50, 100 + 15 * i, 11) for i, s in enumerate(sentences)]


def items_for(tokens: list[Token], viewport_height: float = 792.0) -> list[RawTextItem]:
    """Inverse of normalisation at scale 1: tokens back to source items."""
    return [
        RawTextItem(
            text=t.text,
            transform=(t.font_size, 0.0, 0.0, t.font_size, t.x, viewport_height - t.y),
            width=t.width,
            height=t.font_size,
        )
        for t in tokens
    ]
