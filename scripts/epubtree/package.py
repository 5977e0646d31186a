"""
EPUB package writer.

The core talks to the package through the PackageBuilder interface, the
same way format builders share one base class. EpubPackage is the EbookLib
implementation: it keeps registered sections in a tree so the table of
contents mirrors the chapter nesting.
"""

import mimetypes
import os
import threading
from abc import ABC, abstractmethod

from ebooklib import epub

from epubtree.errors import PackageError


IMAGE_DIR = "images"
CSS_DIR = "css"
COVER_NAME = "cover.jpg"


class PackageBuilder(ABC):
    """
    Abstract sink for everything that ends up in the book file.

    Section ids are the section filenames; a sub-section names its parent
    by that id.
    """

    @abstractmethod
    def set_metadata(self, title, author, identifier, lang):
        ...

    @abstractmethod
    def add_cover(self, path):
        ...

    @abstractmethod
    def add_stylesheet(self, path, name="style.css", extra=None):
        """Add a CSS file, with `extra` CSS appended. Returns its internal path."""
        ...

    @abstractmethod
    def register_asset(self, path, name):
        """Add an image file. Returns its internal path."""
        ...

    @abstractmethod
    def register_top_section(self, markup, title, filename, stylesheet=None):
        """Add a top-level section. Returns its id."""
        ...

    @abstractmethod
    def register_sub_section(self, parent, markup, title, filename, stylesheet=None):
        """Add a section nested under `parent`. Returns its id."""
        ...

    @abstractmethod
    def write(self, output):
        ...


class _SectionNode:
    def __init__(self, item):
        self.item = item
        self.children = []


class EpubPackage(PackageBuilder):
    """
    PackageBuilder writing an EPUB 3 file with EbookLib.

    EbookLib is not safe for concurrent writes, so every registration runs
    under one lock.
    """

    def __init__(self, lang="it"):
        self.book = epub.EpubBook()
        self.lang = lang
        self._lock = threading.Lock()
        # written by EbookLib itself
        self._filenames = {"nav.xhtml", "toc.ncx"}
        self._sections = {}
        self._toc = []
        self._spine = []
        self._has_cover = False

    # ── Metadata ───────────────────────────────────────────

    def set_metadata(self, title, author, identifier, lang):
        with self._lock:
            self.lang = lang
            self.book.set_identifier(identifier)
            self.book.set_title(title)
            self.book.set_language(lang)
            self.book.add_author(author)

    # ── Binary items ───────────────────────────────────────

    def _reserve(self, file_name):
        if file_name in self._filenames:
            raise PackageError(f"Filename already used: {file_name}")
        self._filenames.add(file_name)

    @staticmethod
    def _read(path):
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            raise
        except OSError as e:
            raise PackageError(f"Cannot read {path}: {e.strerror or e}") from e

    def add_cover(self, path):
        content = self._read(path)
        file_name = f"{IMAGE_DIR}/{COVER_NAME}"
        with self._lock:
            self._reserve(file_name)
            self._reserve("cover.xhtml")
            self.book.set_cover(file_name, content)
            self._has_cover = True
        return file_name

    def add_stylesheet(self, path, name="style.css", extra=None):
        content = self._read(path)
        if extra:
            content = content.rstrip(b"\n") + b"\n\n" + extra.encode("utf-8")
        file_name = f"{CSS_DIR}/{name}"
        with self._lock:
            self._reserve(file_name)
            self.book.add_item(epub.EpubItem(
                uid=f"css_{len(self._filenames)}",
                file_name=file_name,
                media_type="text/css",
                content=content,
            ))
        return file_name

    def register_asset(self, path, name):
        content = self._read(path)
        file_name = f"{IMAGE_DIR}/{name}"
        media_type = mimetypes.guess_type(name)[0] or "application/octet-stream"
        with self._lock:
            self._reserve(file_name)
            self.book.add_item(epub.EpubImage(
                uid=f"image_{len(self._filenames)}",
                file_name=file_name,
                media_type=media_type,
                content=content,
            ))
        return file_name

    # ── Sections ───────────────────────────────────────────

    def _make_section(self, markup, title, filename, stylesheet):
        item = epub.EpubHtml(
            title=title,
            file_name=filename,
            lang=self.lang,
            # lxml rejects an empty document at write time
            content=markup if markup.strip() else "<div></div>",
        )
        if stylesheet:
            item.add_link(href=stylesheet, rel="stylesheet", type="text/css")
        return item

    def register_top_section(self, markup, title, filename, stylesheet=None):
        with self._lock:
            self._reserve(filename)
            node = _SectionNode(self._make_section(markup, title, filename, stylesheet))
            self.book.add_item(node.item)
            self._sections[filename] = node
            self._toc.append(node)
            self._spine.append(node.item)
        return filename

    def register_sub_section(self, parent, markup, title, filename, stylesheet=None):
        with self._lock:
            parent_node = self._sections.get(parent)
            if parent_node is None:
                raise PackageError(f"Parent section not found: {parent}")
            self._reserve(filename)
            node = _SectionNode(self._make_section(markup, title, filename, stylesheet))
            self.book.add_item(node.item)
            self._sections[filename] = node
            parent_node.children.append(node)
            self._spine.append(node.item)
        return filename

    @property
    def section_ids(self):
        """Registered section ids, in registration order."""
        return [item.file_name for item in self._spine]

    # ── Output ─────────────────────────────────────────────

    def _toc_entry(self, node):
        if not node.children:
            return node.item
        return (
            epub.Section(node.item.title, href=node.item.file_name),
            [self._toc_entry(child) for child in node.children],
        )

    def write(self, output):
        """Add navigation documents and write the EPUB to `output`."""
        with self._lock:
            self.book.toc = [self._toc_entry(node) for node in self._toc]
            self.book.add_item(epub.EpubNcx())
            self.book.add_item(epub.EpubNav())
            spine = ["cover"] if self._has_cover else []
            self.book.spine = spine + ["nav"] + self._spine

            out_dir = os.path.dirname(os.path.abspath(output))
            try:
                os.makedirs(out_dir, exist_ok=True)
                epub.write_epub(output, self.book, {})
            except OSError as e:
                raise PackageError(f"Cannot write {output}: {e.strerror or e}") from e
