"""Export module: produce CSV output from page layout results.

Each writer appends to its target so pages of one document can be
exported into a single file; the header row is written only when the
file is created.

Usage::

    from pagelayout.export import export_blocks_csv, export_tables_csv
    for pr in doc.pages:
        export_blocks_csv(pr, out_dir / "blocks.csv")
        export_tables_csv(pr, out_dir / "tables.csv")
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, List

from ..pipeline import PageResult


def _safe_str(val: Any) -> str:
    """Convert to string, handling None gracefully."""
    if val is None:
        return ""
    return str(val)


def _bbox_str(bbox: list | tuple | None) -> str:
    """Format a bbox as a compact string."""
    if not bbox:
        return ""
    return f"({bbox[0]:.1f}, {bbox[1]:.1f}, {bbox[2]:.1f}, {bbox[3]:.1f})"


def _append_rows(out_path: Path, rows: List[Dict[str, Any]]) -> Path:
    write_header = not out_path.exists()
    with open(out_path, "a", newline="", encoding="utf-8") as f:
        if rows:
            writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
            if write_header:
                writer.writeheader()
            writer.writerows(rows)
    return out_path


# ── Per-page export ────────────────────────────────────────────────────


def export_page_summary_csv(page: PageResult, out_path: Path) -> Path:
    """Write a single-row CSV with page-level summary counts."""
    summary = page.to_summary_dict()
    counts = summary["counts"]
    stages = summary["stages"]

    row = {
        "page": page.page_number,
        "scale": page.scale,
        "failed": page.failed,
        "blocks": counts["blocks"],
        "lines": counts["lines"],
        "headers": counts["header"],
        "tables": counts["table"],
        "paragraphs": counts["paragraph"],
        "text_blocks": counts["text"],
        "images": counts["image"],
        "failed_images": counts["failed_images"],
        "scanned_tables": counts["tables"],
        "ocr_status": stages.get("ocr", {}).get("status", "n/a"),
        "error": _safe_str((page.error or {}).get("message")),
    }
    return _append_rows(out_path, [row])


def export_blocks_csv(page: PageResult, out_path: Path) -> Path:
    """Export block-level data to CSV (one row per block)."""
    rows = []
    for i, blk in enumerate(page.blocks):
        rows.append(
            {
                "page": page.page_number,
                "block_index": i,
                "kind": blk.kind.value,
                "y_start": round(blk.y_start, 3),
                "y_end": round(blk.y_end, 3),
                "lines": len(blk.lines),
                "font_size": round(blk.font_size(), 3),
                "bbox": _bbox_str(blk.bbox()),
                "image_failed": blk.image.failed if blk.image else "",
                "text_preview": blk.text().replace("\n", " ")[:200],
            }
        )
    return _append_rows(out_path, rows)


def export_tables_csv(page: PageResult, out_path: Path) -> Path:
    """Export the page's scanned table grids, one row per cell.

    Cells are addressed by ``(table_index, row, col)`` so grids of any
    width share one set of columns.
    """
    rows = []
    for t_idx, grid in enumerate(page.tables):
        for r_idx, cells in enumerate(grid.rows):
            for c_idx, text in enumerate(cells):
                rows.append(
                    {
                        "page": page.page_number,
                        "table_index": t_idx,
                        "row": r_idx,
                        "col": c_idx,
                        "text": _safe_str(text),
                    }
                )
    return _append_rows(out_path, rows)
