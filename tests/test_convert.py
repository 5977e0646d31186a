"""Tests for front-matter decoding and the pandoc converter (pandoc mocked)."""

import os
import subprocess

import pytest

from epubtree.chapters import ChapterMeta
from epubtree.convert import (
    PandocConverter,
    decode_metadata,
    split_front_matter,
    to_xhtml,
)
from epubtree.errors import ConversionError, MetadataDecodeError


DOCUMENT = """---
title: Test Title
nav_order: 5
---

# Heading

Some **bold** text.
"""


class TestFrontMatter:

    def test_split(self):
        block, body = split_front_matter(DOCUMENT)
        assert block == "title: Test Title\nnav_order: 5\n"
        assert body == "\n# Heading\n\nSome **bold** text.\n"

    def test_no_front_matter(self):
        block, body = split_front_matter("# Just a heading\n")
        assert block is None
        assert body == "# Just a heading\n"

    def test_horizontal_rule_later_is_not_front_matter(self):
        text = "# Title\n\n---\n\nafter\n"
        assert split_front_matter(text) == (None, text)

    def test_decode(self):
        assert decode_metadata("title: Intro\nnav_order: 3\n") == ChapterMeta("Intro", 3)

    def test_decode_missing_block(self):
        assert decode_metadata(None) == ChapterMeta("", 0)

    def test_decode_empty_block(self):
        assert decode_metadata("") == ChapterMeta("", 0)

    def test_decode_missing_order(self):
        assert decode_metadata("title: Intro\n") == ChapterMeta("Intro", 0)

    def test_decode_non_string_title(self):
        assert decode_metadata("title: 2024\n").title == "2024"

    @pytest.mark.parametrize("block", [
        "title: [unclosed\n",
        "- just\n- a list\n",
        "title: Intro\nnav_order: first\n",
        "title: Intro\nnav_order: true\n",
    ])
    def test_decode_errors(self, block):
        with pytest.raises(MetadataDecodeError):
            decode_metadata(block)


def test_to_xhtml_closes_void_tags():
    html = '<p>a<br>b</p><hr><img src="x.png" alt="x"><br />'
    assert to_xhtml(html) == '<p>a<br/>b</p><hr/><img src="x.png" alt="x"/><br />'


class FakeRun:
    """Stands in for subprocess.run."""

    def __init__(self, returncode=0, stdout="", stderr=""):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


class TestPandocConverter:

    def test_convert(self, monkeypatch):
        fake = FakeRun(stdout="<h1>Heading</h1>\n<p>Some <strong>bold</strong><br>text.</p>\n")
        monkeypatch.setattr(subprocess, "run", fake)

        html, meta = PandocConverter().convert(DOCUMENT)

        assert meta == ChapterMeta("Test Title", 5)
        assert "<br/>" in html
        cmd, kwargs = fake.calls[0]
        assert cmd[0] == "pandoc"
        assert "--to" in cmd and "html5" in cmd
        assert "--highlight-style=monokai" in cmd
        # front-matter is not sent to pandoc
        assert kwargs["input"].startswith("\n# Heading")

    def test_from_string_disables_yaml_blocks(self):
        converter = PandocConverter(extensions="pipe_tables")
        assert converter.from_str == "markdown-yaml_metadata_block+pipe_tables"
        assert PandocConverter(extensions="").from_str == "markdown-yaml_metadata_block"

    def test_pandoc_failure(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", FakeRun(returncode=64, stderr="bad input\n"))
        with pytest.raises(ConversionError) as exc:
            PandocConverter().convert(DOCUMENT)
        assert "exit 64" in str(exc.value)
        assert "bad input" in str(exc.value)

    def test_pandoc_missing(self, monkeypatch):
        def missing(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])

        monkeypatch.setattr(subprocess, "run", missing)
        with pytest.raises(ConversionError, match="not found"):
            PandocConverter().convert(DOCUMENT)

    def test_metadata_error_skips_pandoc(self, monkeypatch):
        fake = FakeRun()
        monkeypatch.setattr(subprocess, "run", fake)
        with pytest.raises(MetadataDecodeError):
            PandocConverter().convert("---\nnav_order: x\n---\nbody\n")
        assert fake.calls == []

    def test_stylesheet_renders_highlighting_css(self, monkeypatch):
        templates = []

        class TemplateRun(FakeRun):
            def __call__(self, cmd, **kwargs):
                template = next(a for a in cmd if a.startswith("--template="))
                path = template.split("=", 1)[1]
                with open(path, encoding="utf-8") as f:
                    templates.append((path, f.read()))
                return super().__call__(cmd, **kwargs)

        fake = TemplateRun(stdout="code span.kw { color: #66d9ef; }\n\n")
        monkeypatch.setattr(subprocess, "run", fake)

        css = PandocConverter(highlight_style="kate").stylesheet()

        assert css == "code span.kw { color: #66d9ef; }\n"
        cmd, kwargs = fake.calls[0]
        assert "--standalone" in cmd
        assert "--highlight-style=kate" in cmd
        assert "```" in kwargs["input"]
        path, content = templates[0]
        assert "$highlighting-css$" in content
        assert not os.path.exists(path)

    def test_stylesheet_empty_output(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", FakeRun(stdout="\n"))
        assert PandocConverter().stylesheet() == ""

    def test_stylesheet_pandoc_failure(self, monkeypatch):
        monkeypatch.setattr(subprocess, "run", FakeRun(returncode=1, stderr="unknown style\n"))
        with pytest.raises(ConversionError, match="unknown style"):
            PandocConverter(highlight_style="nope").stylesheet()
