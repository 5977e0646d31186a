"""Pytest configuration and shared fixtures."""

import threading

import pytest

from epubtree.convert import Converter, decode_metadata, split_front_matter
from epubtree.errors import ConversionError, PackageError
from epubtree.package import PackageBuilder


def write_chapter(directory, name, title, order, body=""):
    """Write `<name>.md` with just-the-docs front-matter."""
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.md"
    path.write_text(
        f"---\ntitle: {title}\nnav_order: {order}\n---\n\n{body}",
        encoding="utf-8",
    )
    return path


class StubConverter(Converter):
    """Decodes front-matter for real, wraps the body verbatim instead of running pandoc."""

    def __init__(self, fail_marker="FAIL-CONVERSION", css=""):
        self.fail_marker = fail_marker
        self.css = css
        self.calls = []
        self._lock = threading.Lock()

    def convert(self, text):
        with self._lock:
            self.calls.append(text)
        block, body = split_front_matter(text)
        meta = decode_metadata(block)
        if self.fail_marker in body:
            raise ConversionError("stub conversion failure")
        return f"<div>{body}</div>", meta

    def stylesheet(self):
        return self.css


class RecordingPackage(PackageBuilder):
    """PackageBuilder that records every call."""

    def __init__(self, fail_assets=(), fail_sections=()):
        self.fail_assets = set(fail_assets)
        self.fail_sections = set(fail_sections)
        self.metadata = None
        self.cover = None
        self.stylesheets = []
        self.stylesheet_extra = []
        self.assets = []
        self.sections = []
        self.written = None
        self._lock = threading.Lock()

    def set_metadata(self, title, author, identifier, lang):
        self.metadata = (title, author, identifier, lang)

    def add_cover(self, path):
        self.cover = path
        return "images/cover.jpg"

    def add_stylesheet(self, path, name="style.css", extra=None):
        self.stylesheets.append(path)
        self.stylesheet_extra.append(extra)
        return f"css/{name}"

    def register_asset(self, path, name):
        if name in self.fail_assets:
            raise PackageError(f"cannot add {name}")
        with self._lock:
            self.assets.append((path, name))
        return f"images/{name}"

    def register_top_section(self, markup, title, filename, stylesheet=None):
        if filename in self.fail_sections:
            raise PackageError(f"cannot add {filename}")
        self.sections.append((None, filename, title, markup, stylesheet))
        return filename

    def register_sub_section(self, parent, markup, title, filename, stylesheet=None):
        if filename in self.fail_sections:
            raise PackageError(f"cannot add {filename}")
        self.sections.append((parent, filename, title, markup, stylesheet))
        return filename

    def write(self, output):
        self.written = output


@pytest.fixture
def converter():
    return StubConverter()


@pytest.fixture
def package():
    return RecordingPackage()


@pytest.fixture
def book_dir(tmp_path):
    """
    A small book repository:

        book/
            img/shared.png
            docs/it/
                a.md          order 2, no images
                b.md          order 1, /book/img/shared.png
                b/
                    b1.md     order 1, /book/img/shared.png + /book/img/missing.png
    """
    root = tmp_path / "book"
    (root / "img").mkdir(parents=True)
    (root / "img" / "shared.png").write_bytes(b"\x89PNG\r\n\x1a\nfake")

    docs = root / "docs" / "it"
    write_chapter(docs, "a", "Chapter A", 2, "Plain text.\n")
    write_chapter(docs, "b", "Chapter B", 1, "![diagram](/book/img/shared.png)\n")
    write_chapter(
        docs / "b", "b1", "Chapter B1", 1,
        "![again](/book/img/shared.png)\n![gone](/book/img/missing.png)\n",
    )
    return root
