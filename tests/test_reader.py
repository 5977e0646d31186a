"""Tests for Jekyll cleanup, image extraction, and document reading."""

import pytest

from epubtree.errors import FileReadError
from epubtree.reader import clean_content, extract_images, natural_sort_key, read_document


class TestCleanContent:

    def test_removes_inline_attribute_list(self):
        assert clean_content('Some text {:target="_blank"} more text') == "Some text  more text"

    def test_removes_toc_marker(self):
        assert clean_content("# Title\n- TOC\n{:toc}\nContent") == "# Title\n\n\nContent"

    def test_plain_markdown_unchanged(self):
        assert clean_content("Plain markdown content") == "Plain markdown content"

    @pytest.mark.parametrize("text", [
        "# Title\n- TOC\n{:toc}\nContent",
        "- - TOCTOC",
        "{{:a}:b}",
        "{:x}- T{:y}OC",
        "no markup at all",
        "",
    ])
    def test_idempotent(self, text):
        once = clean_content(text)
        assert clean_content(once) == once

    def test_marker_exposed_by_removal_is_removed(self):
        assert clean_content("- - TOCTOC") == ""
        assert clean_content("{{:a}:b}") == ""


class TestExtractImages:

    def test_single_image(self):
        assert extract_images("![alt](/book/img/a.png)") == ["/book/img/a.png"]

    def test_document_order_with_duplicates(self):
        text = (
            "![one](/book/a.png) text ![two](b.png)\n"
            "more ![three](/book/a.png)\n"
        )
        assert extract_images(text) == ["/book/a.png", "b.png", "/book/a.png"]

    def test_no_images(self):
        assert extract_images("[a link](/book/page.html) and text") == []

    def test_empty_alt(self):
        assert extract_images("![](/book/x.png)") == ["/book/x.png"]


class TestReadDocument:

    def test_reads_and_cleans(self, tmp_path):
        path = tmp_path / "doc.md"
        path.write_text("# Title {: .no_toc}\n- TOC\n", encoding="utf-8")
        assert read_document(str(path)) == "# Title \n\n"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileReadError) as exc:
            read_document(str(tmp_path / "nope.md"))
        assert "nope.md" in str(exc.value)

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "bad.md"
        path.write_bytes(b"\xff\xfe\xfa")
        with pytest.raises(FileReadError):
            read_document(str(path))


def test_natural_sort_key():
    names = ["10.md", "2.md", "b.md", "A.md"]
    assert sorted(names, key=natural_sort_key) == ["2.md", "10.md", "A.md", "b.md"]
