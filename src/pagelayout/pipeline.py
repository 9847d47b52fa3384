"""Pipeline stage infrastructure and page/document entry points.

Provides a canonical contract for the 4-stage flow:

    ingest → layout → tables → ocr

Every stage produces a :class:`StageResult` that records whether it ran,
why it was skipped, and how long it took.  Gating logic is centralised in
:func:`gate` so that scripts, the viewer cache and tests behave
identically.

:func:`analyze_page` is the in-memory entry point: it takes the source's
text items for one page and returns a :class:`PageResult` without any
file I/O.  :func:`run_pipeline` and :func:`run_document` add the PDF
ingest stage on top.
"""

from __future__ import annotations

import logging
import time
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import (
    TYPE_CHECKING,
    Any,
    Dict,
    Generator,
    Iterable,
    List,
    Optional,
    Sequence,
    Tuple,
)

from .config import LayoutConfig
from .grouping import build_page_blocks, normalize_items, scan_tables
from .hittest import hit_test
from .models import Block, BlockKind, Line, RawTextItem, TableGrid, Token

if TYPE_CHECKING:
    from .ingest import PageImage
    from .ocr import OcrEngine

logger = logging.getLogger("pagelayout.pipeline")

# ── Skip reasons (exhaustive enumeration) ──────────────────────────────


class SkipReason(str, Enum):
    """Why a pipeline stage was skipped."""

    disabled_by_config = "disabled_by_config"
    missing_dependency = "missing_dependency"
    no_images = "no_images"
    no_tokens = "no_tokens"
    not_applicable = "not_applicable"


# ── Stage result ───────────────────────────────────────────────────────


@dataclass
class StageResult:
    """Outcome record for a single pipeline stage."""

    stage: str
    enabled: bool = False
    ran: bool = False
    status: str = "skipped"  # "success" | "skipped" | "failed"
    skip_reason: Optional[str] = None
    duration_ms: int = 0
    counts: Dict[str, Any] = field(default_factory=dict)
    inputs: Dict[str, Any] = field(default_factory=dict)
    error: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize stage result to a JSON-compatible dict."""
        d: Dict[str, Any] = {
            "stage": self.stage,
            "enabled": self.enabled,
            "ran": self.ran,
            "status": self.status,
        }
        if self.skip_reason is not None:
            d["skip_reason"] = self.skip_reason
        d["duration_ms"] = self.duration_ms
        if self.counts:
            d["counts"] = self.counts
        if self.inputs:
            d["inputs"] = self.inputs
        if self.error is not None:
            d["error"] = self.error
        return d


# ── Dependency probes ──────────────────────────────────────────────────


def _has_paddleocr() -> bool:
    """Return True if PaddleOCR is importable."""
    try:
        import os

        os.environ.setdefault("PADDLE_PDX_DISABLE_MODEL_SOURCE_CHECK", "True")
        import paddleocr  # noqa: F401

        return True
    except ImportError:
        return False


# ── Canonical gating function ──────────────────────────────────────────

# Ordered stage names — the canonical pipeline sequence.
STAGE_ORDER: List[str] = ["ingest", "layout", "tables", "ocr"]


def gate(
    stage: str,
    cfg: LayoutConfig,
    inputs: Dict[str, Any] | None = None,
) -> tuple[bool, Optional[str]]:
    """Decide whether *stage* should run.

    Parameters
    ----------
    stage : str
        One of :data:`STAGE_ORDER`.
    cfg : LayoutConfig
        Effective configuration for the run.
    inputs : dict, optional
        Lightweight metadata about upstream outputs (e.g.
        ``{"tokens": 120, "images": 2, "has_engine": True}``).

    Returns
    -------
    (should_run, skip_reason)
    """
    if inputs is None:
        inputs = {}

    if stage in ("ingest", "layout"):
        return True, None

    if stage == "tables":
        if not cfg.enable_table_scan:
            return False, SkipReason.disabled_by_config.value
        if inputs.get("tokens", 1) == 0:
            return False, SkipReason.no_tokens.value
        return True, None

    if stage == "ocr":
        if not cfg.enable_image_ocr:
            return False, SkipReason.disabled_by_config.value
        if not inputs.get("has_engine", False):
            return False, SkipReason.missing_dependency.value
        if inputs.get("images", 0) == 0:
            return False, SkipReason.no_images.value
        return True, None

    return False, SkipReason.not_applicable.value


# ── Stage context manager ──────────────────────────────────────────────


@contextmanager
def run_stage(
    stage: str,
    cfg: LayoutConfig,
    inputs: Dict[str, Any] | None = None,
) -> Generator[StageResult, None, None]:
    """Context manager that wraps a pipeline stage with gating + timing.

    Usage::

        with run_stage("tables", cfg, {"tokens": len(tokens)}) as sr:
            if sr.ran:
                tables = scan_tables(tokens, cfg)
                sr.counts["tables"] = len(tables)

    The yielded :class:`StageResult` has ``ran=True`` only when
    :func:`gate` approves the stage.
    """
    should_run, skip_reason = gate(stage, cfg, inputs)

    sr = StageResult(stage=stage)
    if stage == "tables":
        sr.enabled = cfg.enable_table_scan
    elif stage == "ocr":
        sr.enabled = cfg.enable_image_ocr
    else:
        sr.enabled = True

    if inputs:
        sr.inputs = inputs

    if not should_run:
        sr.ran = False
        sr.status = "skipped"
        sr.skip_reason = skip_reason
        yield sr
        return

    sr.ran = True
    t0 = time.perf_counter()
    try:
        yield sr
        if sr.status not in ("success", "failed"):
            sr.status = "success"
    except Exception as exc:
        sr.status = "failed"
        sr.error = {
            "type": type(exc).__name__,
            "message": str(exc),
            "stack": traceback.format_exc(),
        }
        # Re-raise so the outer handler can decide fallback policy.
        raise
    finally:
        sr.duration_ms = int((time.perf_counter() - t0) * 1000)


# ── Page-level result container ────────────────────────────────────────


@dataclass(frozen=True)
class PageResult:
    """Reconstructed layout of one page.

    ``blocks`` holds text-derived and image blocks in ascending ``y_start``
    order.  ``tables`` holds the grids found by the sliding-window scan,
    which is independent of block classification.  Stage bookkeeping is
    excluded from equality so re-running a page compares equal.  The
    ``error`` mapping makes instances unhashable.
    """

    __hash__ = None  # type: ignore[assignment]

    page_number: int
    blocks: Tuple[Block, ...] = ()
    tables: Tuple[TableGrid, ...] = ()
    text: str = ""
    scale: float = 1.0
    failed: bool = False
    error: Optional[Dict[str, str]] = None
    stages: Dict[str, StageResult] = field(
        default_factory=dict, compare=False, repr=False
    )

    def lines(self) -> List[Line]:
        """All lines of the page, in block order."""
        return [ln for blk in self.blocks for ln in blk.lines]

    def blocks_of(self, kind: BlockKind) -> List[Block]:
        return [b for b in self.blocks if b.kind is kind]

    def hit_test(self, y: float) -> Optional[Block]:
        return hit_test(self.blocks, y)

    def failed_images(self) -> List[Block]:
        return [b for b in self.blocks if b.image is not None and b.image.failed]

    def to_summary_dict(self) -> Dict[str, Any]:
        """Return a lightweight summary suitable for JSON serialisation."""
        d: Dict[str, Any] = {
            "page_number": self.page_number,
            "scale": self.scale,
            "failed": self.failed,
            "stages": {n: sr.to_dict() for n, sr in self.stages.items()},
            "counts": {
                "blocks": len(self.blocks),
                "lines": len(self.lines()),
                "tables": len(self.tables),
                **{k.value: len(self.blocks_of(k)) for k in BlockKind},
                "failed_images": len(self.failed_images()),
            },
        }
        if self.error is not None:
            d["error"] = self.error
        return d


def merge_image_blocks(
    text_blocks: Sequence[Block], image_blocks: Sequence[Block]
) -> List[Block]:
    """Insert image blocks into the text block sequence by y-position.

    The sort is stable and text blocks come first, so on equal ``y_start``
    a text block precedes an image block.
    """
    return sorted([*text_blocks, *image_blocks], key=lambda b: b.y_start)


# ── In-memory entry points ─────────────────────────────────────────────


def analyze_tokens(tokens: Iterable[Token], cfg: LayoutConfig | None = None) -> List[Block]:
    """Lines → blocks → classification for already-normalised tokens."""
    return build_page_blocks(tokens, cfg or LayoutConfig())


def analyze_page(
    items: Sequence[RawTextItem],
    viewport_height: float,
    page_number: int = 1,
    scale: float | None = None,
    images: Sequence["PageImage"] = (),
    ocr_engine: "OcrEngine | None" = None,
    cfg: LayoutConfig | None = None,
    stages: Dict[str, StageResult] | None = None,
) -> PageResult:
    """Reconstruct one page's layout from the source's text items.

    Parameters
    ----------
    items : sequence of RawTextItem
        Text runs in the source's appearance order.
    viewport_height : float
        Unscaled page height used to flip the y axis.
    page_number : int
        1-based page number recorded on the result.
    scale : float, optional
        Display scale; defaults to ``cfg.display_scale``.
    images : sequence of PageImage
        Embedded images to OCR into image blocks.
    ocr_engine : OcrEngine, optional
        Recogniser for *images*; the ocr stage is skipped without one.
    cfg : LayoutConfig, optional
        Defaults to ``LayoutConfig()``.
    stages : dict, optional
        Upstream stage results to carry on the returned page.
    """
    if cfg is None:
        cfg = LayoutConfig()
    if scale is None:
        scale = cfg.display_scale
    stages = dict(stages or {})

    with run_stage("layout", cfg) as sr_layout:
        tokens = normalize_items(items, viewport_height, scale)
        blocks = build_page_blocks(tokens, cfg)
        sr_layout.counts = {
            "tokens": len(tokens),
            "lines": sum(len(b.lines) for b in blocks),
            "blocks": len(blocks),
        }
    stages["layout"] = sr_layout

    tables: List[TableGrid] = []
    with run_stage("tables", cfg, {"tokens": len(tokens)}) as sr_tables:
        if sr_tables.ran:
            tables = scan_tables(tokens, cfg)
            sr_tables.counts = {"tables": len(tables)}
    stages["tables"] = sr_tables

    image_blocks: List[Block] = []
    ocr_inputs = {"images": len(images), "has_engine": ocr_engine is not None}
    with run_stage("ocr", cfg, ocr_inputs) as sr_ocr:
        if sr_ocr.ran:
            from .ocr import recognize_page_images

            image_blocks = recognize_page_images(images, ocr_engine, scale)
            sr_ocr.counts = {
                "images": len(image_blocks),
                "failed": sum(1 for b in image_blocks if b.image.failed),
            }
    stages["ocr"] = sr_ocr

    pr = PageResult(
        page_number=page_number,
        blocks=tuple(merge_image_blocks(blocks, image_blocks)),
        tables=tuple(tables),
        text=" ".join(it.text for it in items),
        scale=scale,
        stages=stages,
    )
    logger.debug(
        "analyze_page %d: %d tokens, %d blocks, %d scanned tables",
        page_number,
        len(tokens),
        len(pr.blocks),
        len(pr.tables),
    )
    return pr


# ── PDF-backed runners ─────────────────────────────────────────────────


def run_pipeline(
    pdf_path: Path | str,
    page_num: int,
    cfg: LayoutConfig | None = None,
    scale: float | None = None,
    ocr_engine: "OcrEngine | None" = None,
) -> PageResult:
    """Ingest one PDF page and reconstruct its layout.

    Parameters
    ----------
    pdf_path : Path or str
        Path to the source PDF.
    page_num : int
        0-based page index; the result's ``page_number`` is 1-based.
    cfg : LayoutConfig, optional
        Pipeline configuration.  Defaults to ``LayoutConfig()``.
    scale : float, optional
        Display scale; defaults to ``cfg.display_scale``.
    ocr_engine : OcrEngine, optional
        Recogniser used when ``cfg.enable_image_ocr`` is set.

    Raises
    ------
    IngestError
        When the page cannot be read.
    """
    from .ingest import load_page_source

    if cfg is None:
        cfg = LayoutConfig()

    want_images = cfg.enable_image_ocr and ocr_engine is not None
    with run_stage("ingest", cfg) as sr_ingest:
        src = load_page_source(
            pdf_path, page_num, with_images=want_images, resolution=cfg.ocr_resolution
        )
        sr_ingest.counts = {"items": len(src.items), "images": len(src.images)}

    pr = analyze_page(
        src.items,
        src.height,
        page_number=page_num + 1,
        scale=scale,
        images=src.images,
        ocr_engine=ocr_engine,
        cfg=cfg,
        stages={"ingest": sr_ingest},
    )
    logger.info(
        "run_pipeline page %d: %d blocks, %d tables",
        pr.page_number,
        len(pr.blocks),
        len(pr.tables),
    )
    return pr


# ── Document-level result ──────────────────────────────────────────────


@dataclass
class DocumentResult:
    """Aggregated result for a multi-page document run."""

    pdf_path: Optional[Path] = None
    pages: List[PageResult] = field(default_factory=list)
    config: Optional[LayoutConfig] = None

    def failed_pages(self) -> List[PageResult]:
        return [pr for pr in self.pages if pr.failed]

    def to_summary_dict(self) -> Dict[str, Any]:
        """Serialize document result to a summary dict."""
        return {
            "pdf": str(self.pdf_path) if self.pdf_path else None,
            "pages_processed": len(self.pages),
            "pages_failed": len(self.failed_pages()),
            "pages": [pr.to_summary_dict() for pr in self.pages],
        }


def run_document(
    pdf_path: Path | str,
    pages: List[int] | None = None,
    cfg: LayoutConfig | None = None,
    scale: float | None = None,
    ocr_engine: "OcrEngine | None" = None,
) -> DocumentResult:
    """Process several pages independently.

    A page that fails is recorded as a failed :class:`PageResult` and the
    run continues.  When image OCR is enabled and no engine is supplied,
    the PaddleOCR engine is initialised once here if it is installed.

    Parameters
    ----------
    pdf_path : Path or str
        Path to the source PDF.
    pages : list[int], optional
        0-based page indices.  ``None`` = all pages.
    cfg : LayoutConfig, optional
        Pipeline configuration.
    scale : float, optional
        Display scale.
    ocr_engine : OcrEngine, optional
        Recogniser for embedded images.
    """
    from .ingest import ingest_pdf

    if cfg is None:
        cfg = LayoutConfig()
    pdf_path = Path(pdf_path)

    meta = ingest_pdf(pdf_path)
    if pages is None:
        pages = list(range(meta.num_pages))

    if cfg.enable_image_ocr and ocr_engine is None:
        if _has_paddleocr():
            from .ocr import init_ocr_engine

            ocr_engine = init_ocr_engine(cfg)
        else:
            logger.warning("Image OCR enabled but paddleocr is not installed")

    dr = DocumentResult(pdf_path=pdf_path, config=cfg)
    for pg in pages:
        try:
            pr = run_pipeline(pdf_path, pg, cfg=cfg, scale=scale, ocr_engine=ocr_engine)
        except Exception as exc:
            logger.error("run_document page %d failed: %s", pg, exc)
            pr = PageResult(
                page_number=pg + 1,
                failed=True,
                error={"type": type(exc).__name__, "message": str(exc)},
            )
        dr.pages.append(pr)

    logger.info(
        "run_document: %d pages, %d failed", len(dr.pages), len(dr.failed_pages())
    )
    return dr
