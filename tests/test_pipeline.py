"""Tests for pagelayout.pipeline — gating, stage results and page analysis."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from PIL import Image

from conftest import items_for, make_item
from pagelayout.config import LayoutConfig
from pagelayout.ingest import IngestError, PageImage, PageInfo, PageSource, PdfMeta
from pagelayout.models import BlockKind, Selection
from pagelayout.pipeline import (
    STAGE_ORDER,
    DocumentResult,
    PageResult,
    SkipReason,
    StageResult,
    analyze_page,
    analyze_tokens,
    gate,
    run_document,
    run_pipeline,
    run_stage,
)


class _FakeEngine:
    def __init__(self, text="recognised text", exc=None):
        self.text = text
        self.exc = exc
        self.calls = 0

    def recognize(self, image):
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return self.text


def _image(ref="Im1", top=300.0, bottom=400.0, raster=True):
    img = Image.new("RGB", (20, 20), "white") if raster else None
    return PageImage(ref=ref, x0=50.0, top=top, x1=250.0, bottom=bottom, image=img)


class TestStageOrder:
    def test_all_stages_present(self):
        assert STAGE_ORDER == ["ingest", "layout", "tables", "ocr"]


class TestGate:
    def test_ingest_and_layout_always_run(self):
        cfg = LayoutConfig()
        assert gate("ingest", cfg) == (True, None)
        assert gate("layout", cfg) == (True, None)

    def test_tables_disabled(self):
        ok, reason = gate("tables", LayoutConfig(enable_table_scan=False))
        assert not ok
        assert reason == SkipReason.disabled_by_config.value

    def test_tables_no_tokens(self):
        ok, reason = gate("tables", LayoutConfig(), {"tokens": 0})
        assert not ok
        assert reason == "no_tokens"

    def test_ocr_disabled_by_default(self):
        ok, reason = gate("ocr", LayoutConfig(), {"images": 2, "has_engine": True})
        assert not ok
        assert reason == "disabled_by_config"

    def test_ocr_without_engine(self):
        cfg = LayoutConfig(enable_image_ocr=True)
        assert gate("ocr", cfg, {"images": 2})[1] == "missing_dependency"

    def test_ocr_without_images(self):
        cfg = LayoutConfig(enable_image_ocr=True)
        assert gate("ocr", cfg, {"images": 0, "has_engine": True})[1] == "no_images"

    def test_ocr_runs(self):
        cfg = LayoutConfig(enable_image_ocr=True)
        assert gate("ocr", cfg, {"images": 1, "has_engine": True}) == (True, None)

    def test_unknown_stage(self):
        assert gate("bogus", LayoutConfig()) == (False, "not_applicable")


class TestStageResult:
    def test_to_dict_minimal(self):
        d = StageResult(stage="layout").to_dict()
        assert d == {
            "stage": "layout",
            "enabled": False,
            "ran": False,
            "status": "skipped",
            "duration_ms": 0,
        }

    def test_to_dict_full(self):
        sr = StageResult(
            stage="tables",
            enabled=True,
            ran=True,
            status="success",
            counts={"tables": 2},
            inputs={"tokens": 10},
        )
        d = sr.to_dict()
        assert d["counts"] == {"tables": 2}
        assert d["inputs"] == {"tokens": 10}
        assert "skip_reason" not in d


class TestRunStage:
    def test_success(self):
        with run_stage("layout", LayoutConfig()) as sr:
            assert sr.ran
        assert sr.status == "success"
        assert sr.enabled

    def test_skipped(self):
        with run_stage("tables", LayoutConfig(enable_table_scan=False)) as sr:
            assert not sr.ran
        assert sr.status == "skipped"
        assert sr.skip_reason == "disabled_by_config"
        assert sr.enabled is False

    def test_failure_recorded_and_reraised(self):
        with pytest.raises(ValueError, match="bad"):
            with run_stage("layout", LayoutConfig()) as sr:
                raise ValueError("bad")
        assert sr.status == "failed"
        assert sr.error["type"] == "ValueError"
        assert sr.error["message"] == "bad"


# ── analyze_page ──────────────────────────────────────────────────────


class TestAnalyzePage:
    def test_header_and_table(self, header_table_tokens):
        pr = analyze_page(items_for(header_table_tokens), viewport_height=792)
        assert [b.kind for b in pr.blocks] == [BlockKind.header, BlockKind.table]
        assert pr.page_number == 1
        assert pr.stages["layout"].status == "success"

    def test_paragraph(self, paragraph_tokens):
        pr = analyze_page(items_for(paragraph_tokens), viewport_height=792)
        assert [b.kind for b in pr.blocks] == [BlockKind.paragraph]
        assert len(pr.blocks[0].lines) == 5

    def test_empty_page(self):
        pr = analyze_page([], viewport_height=792, page_number=4)
        assert pr.blocks == ()
        assert pr.tables == ()
        assert pr.text == ""
        assert pr.page_number == 4
        assert pr.hit_test(0) is None
        assert pr.hit_test(400) is None
        assert pr.stages["tables"].skip_reason == "no_tokens"

    def test_raw_text_in_source_order(self):
        items = [make_item("world", 100, 700), make_item("hello", 10, 700)]
        pr = analyze_page(items, viewport_height=792)
        assert pr.text == "world hello"

    def test_scan_tables_recorded(self, header_table_tokens):
        pr = analyze_page(items_for(header_table_tokens), viewport_height=792)
        assert len(pr.tables) == 1
        assert pr.tables[0].to_lists() == [
            ["Quarterly", "Title"],
            ["Q1", "10"],
            ["Q2", "20"],
            ["Q3", "30"],
        ]

    def test_table_scan_disabled(self, header_table_tokens):
        cfg = LayoutConfig(enable_table_scan=False)
        pr = analyze_page(items_for(header_table_tokens), viewport_height=792, cfg=cfg)
        assert pr.tables == ()
        assert pr.stages["tables"].status == "skipped"
        # Block classification is unaffected.
        assert pr.blocks_of(BlockKind.table)

    def test_scale(self, header_table_tokens):
        pr = analyze_page(items_for(header_table_tokens), viewport_height=792, scale=2.0)
        assert pr.scale == 2.0
        assert pr.blocks[0].y_start == 200
        assert pr.blocks[0].font_size() == 40

    def test_scale_defaults_to_config(self, header_table_tokens):
        cfg = LayoutConfig(display_scale=1.5)
        pr = analyze_page(items_for(header_table_tokens), viewport_height=792, cfg=cfg)
        assert pr.scale == 1.5
        assert pr.blocks[0].y_start == 150

    def test_idempotent(self, header_table_tokens):
        items = items_for(header_table_tokens)
        assert analyze_page(items, 792) == analyze_page(items, 792)

    def test_frozen(self):
        pr = analyze_page([], 792)
        with pytest.raises(AttributeError):
            pr.page_number = 2

    def test_hit_test_end_boundary(self, header_table_tokens):
        pr = analyze_page(items_for(header_table_tokens), viewport_height=792)
        table = pr.blocks[1]
        assert pr.hit_test(table.y_end) is table
        assert Selection.from_block(pr.hit_test(100)).font_size == 20

    def test_analyze_tokens(self, header_table_tokens):
        blocks = analyze_tokens(header_table_tokens)
        assert [b.kind for b in blocks] == [BlockKind.header, BlockKind.table]


class TestAnalyzePageImages:
    def test_image_blocks_merged_by_y(self, header_table_tokens):
        cfg = LayoutConfig(enable_image_ocr=True)
        engine = _FakeEngine("scanned")
        pr = analyze_page(
            items_for(header_table_tokens),
            viewport_height=792,
            images=[_image(top=140, bottom=160)],
            ocr_engine=engine,
            cfg=cfg,
        )
        assert [b.kind for b in pr.blocks] == [
            BlockKind.header,
            BlockKind.table,
            BlockKind.image,
        ]
        img = pr.blocks[2]
        assert img.content == "scanned"
        assert img.image.image_ref == "Im1"
        # Overlap with the table: text wins.
        assert pr.hit_test(150).kind is BlockKind.table
        assert pr.stages["ocr"].counts == {"images": 1, "failed": 0}

    def test_image_hit_outside_text(self, header_table_tokens):
        cfg = LayoutConfig(enable_image_ocr=True)
        pr = analyze_page(
            items_for(header_table_tokens),
            792,
            images=[_image()],
            ocr_engine=_FakeEngine(),
            cfg=cfg,
        )
        assert pr.hit_test(350).kind is BlockKind.image

    def test_image_y_scaled(self):
        cfg = LayoutConfig(enable_image_ocr=True)
        pr = analyze_page([], 792, scale=2.0, images=[_image()], ocr_engine=_FakeEngine(), cfg=cfg)
        (blk,) = pr.blocks
        assert (blk.y_start, blk.y_end) == (600, 800)

    def test_ocr_failure_flags_image(self):
        cfg = LayoutConfig(enable_image_ocr=True)
        engine = _FakeEngine(exc=RuntimeError("engine crashed"))
        pr = analyze_page([], 792, images=[_image()], ocr_engine=engine, cfg=cfg)
        (blk,) = pr.blocks
        assert blk.image.failed
        assert blk.image.error == "RuntimeError: engine crashed"
        assert pr.failed_images() == [blk]
        assert not pr.failed

    def test_missing_raster_flags_image(self):
        cfg = LayoutConfig(enable_image_ocr=True)
        engine = _FakeEngine()
        pr = analyze_page([], 792, images=[_image(raster=False)], ocr_engine=engine, cfg=cfg)
        assert pr.blocks[0].image.failed
        assert engine.calls == 0

    def test_ocr_disabled_ignores_images(self):
        engine = _FakeEngine()
        pr = analyze_page([], 792, images=[_image()], ocr_engine=engine)
        assert pr.blocks == ()
        assert engine.calls == 0
        assert pr.stages["ocr"].skip_reason == "disabled_by_config"


class TestPageResult:
    def test_defaults(self):
        pr = PageResult(page_number=1)
        assert pr.blocks == ()
        assert not pr.failed
        assert pr.lines() == []

    def test_not_hashable(self):
        pr = PageResult(page_number=2, failed=True, error={"type": "E", "message": "x"})
        assert PageResult.__hash__ is None
        with pytest.raises(TypeError):
            hash(pr)

    def test_to_summary_dict(self, header_table_tokens):
        pr = analyze_page(items_for(header_table_tokens), viewport_height=792)
        d = pr.to_summary_dict()
        assert d["counts"]["blocks"] == 2
        assert d["counts"]["lines"] == 4
        assert d["counts"]["header"] == 1
        assert d["counts"]["table"] == 1
        assert d["counts"]["tables"] == 1
        assert set(d["stages"]) == {"layout", "tables", "ocr"}

    def test_stages_ignored_in_equality(self):
        a = PageResult(page_number=1, stages={"layout": StageResult(stage="layout")})
        assert a == PageResult(page_number=1)


# ── PDF-backed runners ────────────────────────────────────────────────


def _source(page_num, tokens):
    return PageSource(index=page_num, width=612.0, height=792.0, items=items_for(tokens))


class TestRunPipeline:
    def test_page_number_is_one_based(self, header_table_tokens):
        src = _source(2, header_table_tokens)
        with patch("pagelayout.ingest.load_page_source", return_value=src) as load:
            pr = run_pipeline("doc.pdf", 2)
        assert pr.page_number == 3
        assert pr.stages["ingest"].counts == {"items": 8, "images": 0}
        assert load.call_args.kwargs["with_images"] is False

    def test_requests_images_with_engine(self, header_table_tokens):
        cfg = LayoutConfig(enable_image_ocr=True, ocr_resolution=150)
        src = _source(0, header_table_tokens)
        src.images = [_image()]
        with patch("pagelayout.ingest.load_page_source", return_value=src) as load:
            pr = run_pipeline("doc.pdf", 0, cfg=cfg, ocr_engine=_FakeEngine("x"))
        assert load.call_args.kwargs == {"with_images": True, "resolution": 150}
        assert pr.blocks_of(BlockKind.image)[0].content == "x"

    def test_ingest_error_propagates(self):
        with patch(
            "pagelayout.ingest.load_page_source", side_effect=IngestError("bad page")
        ):
            with pytest.raises(IngestError):
                run_pipeline("doc.pdf", 0)


class TestRunDocument:
    def _meta(self, n):
        return PdfMeta(
            path=Path("doc.pdf"),
            num_pages=n,
            pages=[PageInfo(i, 612.0, 792.0) for i in range(n)],
        )

    def test_all_pages_and_failure_isolated(self, header_table_tokens):
        def fake_load(pdf_path, page_num, with_images=False, resolution=200):
            if page_num == 1:
                raise IngestError("unreadable page")
            return _source(page_num, header_table_tokens)

        with patch("pagelayout.ingest.ingest_pdf", return_value=self._meta(3)), patch(
            "pagelayout.ingest.load_page_source", side_effect=fake_load
        ):
            dr = run_document("doc.pdf")

        assert [pr.page_number for pr in dr.pages] == [1, 2, 3]
        assert [pr.failed for pr in dr.pages] == [False, True, False]
        failed = dr.failed_pages()[0]
        assert failed.error == {"type": "IngestError", "message": "unreadable page"}
        assert failed.blocks == ()
        summary = dr.to_summary_dict()
        assert summary["pages_processed"] == 3
        assert summary["pages_failed"] == 1

    def test_page_subset(self, paragraph_tokens):
        load = MagicMock(side_effect=lambda p, n, **kw: _source(n, paragraph_tokens))
        with patch("pagelayout.ingest.ingest_pdf", return_value=self._meta(5)), patch(
            "pagelayout.ingest.load_page_source", load
        ):
            dr = run_document("doc.pdf", pages=[0, 4])
        assert [pr.page_number for pr in dr.pages] == [1, 5]

    def test_ocr_enabled_without_paddle(self, paragraph_tokens):
        cfg = LayoutConfig(enable_image_ocr=True)
        with patch("pagelayout.ingest.ingest_pdf", return_value=self._meta(1)), patch(
            "pagelayout.ingest.load_page_source",
            side_effect=lambda p, n, **kw: _source(n, paragraph_tokens),
        ), patch("pagelayout.pipeline._has_paddleocr", return_value=False):
            dr = run_document("doc.pdf", cfg=cfg)
        (pr,) = dr.pages
        assert pr.stages["ocr"].skip_reason == "missing_dependency"

    def test_ocr_engine_initialised_once(self, paragraph_tokens):
        cfg = LayoutConfig(enable_image_ocr=True)
        engine = _FakeEngine()
        with patch("pagelayout.ingest.ingest_pdf", return_value=self._meta(2)), patch(
            "pagelayout.ingest.load_page_source",
            side_effect=lambda p, n, **kw: _source(n, paragraph_tokens),
        ), patch("pagelayout.pipeline._has_paddleocr", return_value=True), patch(
            "pagelayout.ocr.init_ocr_engine", return_value=engine
        ) as init:
            run_document("doc.pdf", cfg=cfg)
        init.assert_called_once_with(cfg)

    def test_document_result_defaults(self):
        dr = DocumentResult()
        assert dr.pages == []
        assert dr.to_summary_dict()["pdf"] is None
