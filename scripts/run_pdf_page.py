import argparse
import json
import logging
from datetime import datetime
from pathlib import Path

from pagelayout import (
    LayoutConfig,
    PageResult,
    detect_content,
    draw_overlay,
    ingest_pdf,
    render_page_image,
    run_document,
)
from pagelayout.export import (
    export_blocks_csv,
    export_page_summary_csv,
    export_tables_csv,
    serialize_page,
)
from pagelayout.viewer import SCALE_OPTIONS


def make_run_dir(name: str | None = None, root: Path = Path("runs")) -> Path:
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    run_name = f"run_{stamp}" if not name else f"run_{stamp}_{name}"
    run_dir = root / run_name
    for sub in ["artifacts", "overlays", "exports"]:
        (run_dir / sub).mkdir(parents=True, exist_ok=True)
    return run_dir


def parse_pages(spec: str | None) -> list[int] | None:
    """Parse ``"0,2,5-7"`` into zero-based page indices (None = all)."""
    if not spec:
        return None
    pages: list[int] = []
    for part in spec.split(","):
        part = part.strip()
        if "-" in part:
            lo, hi = part.split("-", 1)
            pages.extend(range(int(lo), int(hi) + 1))
        elif part:
            pages.append(int(part))
    return pages


def summarize(pr: PageResult) -> None:
    if pr.failed:
        print(f"Page {pr.page_number}: FAILED ({pr.error['message']})")
        return
    print(f"Page {pr.page_number}: blocks={len(pr.blocks)} tables={len(pr.tables)}")
    for i, blk in enumerate(pr.blocks, start=1):
        preview = blk.text().replace("\n", " ")[:60]
        print(
            f"  Block {i}: {blk.kind.value:<9} y=({blk.y_start:.1f}..{blk.y_end:.1f}) {preview}"
        )


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Reconstruct page layout from a PDF and save JSON, CSV and overlays"
    )
    parser.add_argument("pdf", type=Path, help="Path to PDF")
    parser.add_argument(
        "--pages", type=str, default=None, help="Zero-based pages, e.g. '0,2,4-6'"
    )
    parser.add_argument(
        "--config", type=Path, default=None, help="YAML or TOML layout config"
    )
    parser.add_argument(
        "--scale",
        type=float,
        default=None,
        choices=SCALE_OPTIONS,
        help="Display scale (1, 1.5 or 2)",
    )
    parser.add_argument("--ocr", action="store_true", help="OCR embedded images")
    parser.add_argument("--overlay", action="store_true", help="Render overlay PNGs")
    parser.add_argument(
        "--run-name", type=str, default=None, help="Optional suffix for the run folder"
    )
    parser.add_argument("--out", type=Path, default=Path("runs"), help="Runs root")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    cfg = LayoutConfig.from_file(args.config) if args.config else LayoutConfig()
    if args.ocr:
        cfg.enable_image_ocr = True
    scale = args.scale if args.scale is not None else cfg.display_scale

    run_dir = make_run_dir(args.run_name, args.out)
    pdf_stem = args.pdf.stem.replace(" ", "_")

    meta = ingest_pdf(args.pdf)
    doc = run_document(args.pdf, pages=parse_pages(args.pages), cfg=cfg, scale=scale)

    artifacts: dict[str, list[str]] = {"pages": [], "overlays": []}
    exports = run_dir / "exports"
    for pr in doc.pages:
        page_json = run_dir / "artifacts" / f"{pdf_stem}_page_{pr.page_number}_layout.json"
        page_json.write_text(json.dumps(serialize_page(pr), indent=2))
        artifacts["pages"].append(str(page_json))

        export_page_summary_csv(pr, exports / "pages.csv")
        export_blocks_csv(pr, exports / "blocks.csv")
        export_tables_csv(pr, exports / "tables.csv")

        if args.overlay and not pr.failed:
            info = meta.page(pr.page_number - 1)
            bg = render_page_image(
                args.pdf, pr.page_number - 1, resolution=int(72 * scale)
            )
            overlay_path = (
                run_dir / "overlays" / f"{pdf_stem}_page_{pr.page_number}_overlay.png"
            )
            draw_overlay(
                pr,
                page_width=info.width * scale,
                page_height=info.height * scale,
                out_path=overlay_path,
                background=bg,
            )
            artifacts["overlays"].append(str(overlay_path))

    content = detect_content(doc.pages)
    (exports / "content.json").write_text(json.dumps(content.to_dict(), indent=2))

    manifest = {
        "run_id": run_dir.name,
        "created_at": datetime.now().isoformat(),
        "pdf": meta.to_dict(),
        "scale": scale,
        "settings": cfg.to_dict(),
        "document": doc.to_summary_dict(),
        "artifacts": artifacts,
    }
    (run_dir / "manifest.json").write_text(json.dumps(manifest, indent=2))

    print(f"Run folder: {run_dir}")
    for pr in doc.pages:
        summarize(pr)


if __name__ == "__main__":
    main()
