"""Geometry-first page layout reconstruction.

Frequently-used symbols are re-exported here for convenience.
For specialised imports (CSV exporters, OCR internals, grouping
helpers, etc.) import directly from the relevant submodule, e.g.::

    from pagelayout.export.csv_export import export_tables_csv
    from pagelayout.grouping.tables import scan_tables
"""

# ── Core models & config ──────────────────────────────────────────────

from .config import ConfigLoadError, ConfigValidationError, LayoutConfig
from .content import DocumentContent, detect_content
from .export.overlay import draw_overlay
from .grouping import (
    build_lines,
    build_page_blocks,
    classify_block,
    extract_table_grid,
    group_blocks,
    normalize_items,
    scan_tables,
)
from .hittest import BlockIndex, hit_test
from .ingest import IngestError, PdfMeta, ingest_pdf, render_page_image
from .models import (
    Block,
    BlockKind,
    ImageContent,
    Line,
    RawTextItem,
    Selection,
    TableGrid,
    Token,
)
from .pipeline import (
    DocumentResult,
    PageResult,
    StageResult,
    analyze_page,
    analyze_tokens,
    run_document,
    run_pipeline,
)
from .viewer import PageLayoutCache

__all__ = [
    # Models & config
    "LayoutConfig",
    "ConfigLoadError",
    "ConfigValidationError",
    "RawTextItem",
    "Token",
    "Line",
    "Block",
    "BlockKind",
    "TableGrid",
    "ImageContent",
    "Selection",
    # Grouping
    "normalize_items",
    "build_lines",
    "group_blocks",
    "classify_block",
    "build_page_blocks",
    "extract_table_grid",
    "scan_tables",
    # Hit-testing & viewer
    "BlockIndex",
    "hit_test",
    "PageLayoutCache",
    # Pipeline
    "DocumentResult",
    "PageResult",
    "StageResult",
    "analyze_page",
    "analyze_tokens",
    "run_document",
    "run_pipeline",
    # Content
    "DocumentContent",
    "detect_content",
    # Ingest
    "IngestError",
    "PdfMeta",
    "ingest_pdf",
    "render_page_image",
    # Overlay
    "draw_overlay",
]
