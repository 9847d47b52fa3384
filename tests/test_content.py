"""Tests for pagelayout.content — document-wide tables, paragraphs and text."""

from conftest import items_for
from pagelayout.content import DetectedParagraph, detect_content
from pagelayout.pipeline import PageResult, analyze_page


class TestDetectContent:
    def test_empty(self):
        content = detect_content([])
        assert content.tables == []
        assert content.paragraphs == []
        assert content.text == ""

    def test_collects_across_pages(self, header_table_tokens, paragraph_tokens):
        p1 = analyze_page(items_for(header_table_tokens), 792, page_number=1)
        p2 = analyze_page(items_for(paragraph_tokens), 792, page_number=2)
        content = detect_content([p1, p2])

        assert [t.page_number for t in content.tables] == [1]
        assert content.tables[0].grid.row_count == 4
        (para,) = content.paragraphs
        assert para.page_number == 2
        assert para.font_size == 11
        assert para.text.startswith("The quick brown fox jumps over the lazy dog")
        assert "\n" not in para.text
        assert content.text == p1.text + "\n\n" + p2.text

    def test_failed_pages_skipped(self, paragraph_tokens):
        ok = analyze_page(items_for(paragraph_tokens), 792, page_number=1)
        bad = PageResult(page_number=2, failed=True, error={"type": "X", "message": "y"})
        content = detect_content([ok, bad])
        assert len(content.paragraphs) == 1
        assert content.text == ok.text

    def test_to_dict(self, paragraph_tokens):
        pr = analyze_page(items_for(paragraph_tokens), 792)
        d = detect_content([pr]).to_dict()
        assert set(d) == {"tables", "paragraphs", "text"}
        assert d["paragraphs"][0]["page_number"] == 1

    def test_paragraph_dict(self):
        p = DetectedParagraph(page_number=3, text="abc", font_size=11.12345)
        assert p.to_dict() == {"page_number": 3, "text": "abc", "font_size": 11.123}
