"""
Chapter tree: data model and directory loader.

A book is a directory of markdown chapters. A chapter `intro.md` with a
sibling directory `intro/` gets the chapters of that directory as its
children, recursively:

    docs/it/
        intro.md          → Chapter("intro")
        intro/
            setup.md      →     Chapter("setup")
        tools.md          → Chapter("tools")

Siblings are ordered by the `nav_order` front-matter key.
"""

import os
import threading
from concurrent.futures import ThreadPoolExecutor

from epubtree.errors import ConversionError, DirectoryReadError, MetadataDecodeError
from epubtree.reader import extract_images, natural_sort_key, read_document


SOURCE_EXTENSION = ".md"

DEFAULT_WORKERS = 10


class ChapterMeta:
    """Front-matter fields used to title and order a chapter."""

    def __init__(self, title="", order=0):
        self.title = title
        self.order = order

    def __eq__(self, other):
        if not isinstance(other, ChapterMeta):
            return NotImplemented
        return (self.title, self.order) == (other.title, other.order)

    def __repr__(self):
        return f"ChapterMeta(title={self.title!r}, order={self.order!r})"


class Chapter:
    """
    One document of the book plus its nested sub-chapters.

    Attributes:
        filename:  base name of the source file, extension stripped
        metadata:  ChapterMeta decoded from front-matter
        content:   markdown source after Jekyll cleanup
        markup:    rendered XHTML; image paths are rewritten in place
                   once assets are resolved
        images:    raw image references found in this chapter's own
                   content, in document order (not rewritten)
        children:  ordered sub-chapters, empty for a leaf
    """

    def __init__(self, filename, metadata, content, markup, images=None, children=None):
        self.filename = filename
        self.metadata = metadata
        self.content = content
        self.markup = markup
        self.images = list(images or [])
        self.children = list(children or [])

    @property
    def title(self):
        return self.metadata.title

    @property
    def order(self):
        return self.metadata.order

    def __repr__(self):
        return (
            f"Chapter({self.filename!r}, order={self.order}, "
            f"children={len(self.children)})"
        )


def iter_chapters(chapters):
    """Yield every chapter of the tree, depth-first, parent before children."""
    for chapter in chapters:
        yield chapter
        yield from iter_chapters(chapter.children)


def count_chapters(chapters):
    return sum(1 for _ in iter_chapters(chapters))


def list_sources(md_path):
    """
    List the markdown files of a chapter directory, in natural filename order.

    Directories are not descended into here; they only matter as the
    children container of a same-named file.
    """
    try:
        entries = os.listdir(md_path)
    except OSError as e:
        raise DirectoryReadError(md_path, e.strerror or str(e)) from e

    names = [
        name for name in entries
        if os.path.splitext(name)[1] == SOURCE_EXTENSION
        and os.path.isfile(os.path.join(md_path, name))
    ]
    names.sort(key=natural_sort_key)
    return names


def get_chapters(converter, md_path, workers=DEFAULT_WORKERS, verbose=False, slots=None):
    """
    Load and convert the chapters of a directory, recursing into sub-chapters.

    Sibling files are converted in parallel when workers > 1. Results keep
    their enumeration slot, so the final sort by order does not depend on
    completion order; equal orders stay in filename order. The first
    failing sibling (in filename order) aborts the whole directory.

    Each directory level has its own pool, but every level shares `slots`,
    a semaphore of `workers` permits held while a file is read and
    converted, so at most `workers` conversions run at once across the
    whole tree.

    Returns: list of Chapter sorted by metadata.order.
    """
    if verbose:
        print(f"  Loading chapters: {md_path}")

    names = list_sources(md_path)
    if slots is None:
        slots = threading.BoundedSemaphore(workers)

    if workers > 1 and len(names) > 1:
        with ThreadPoolExecutor(max_workers=min(workers, len(names))) as pool:
            futures = [
                pool.submit(process_markdown_file, converter, md_path, name, workers, verbose, slots)
                for name in names
            ]
            try:
                chapters = [future.result() for future in futures]
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
    else:
        chapters = [
            process_markdown_file(converter, md_path, name, workers, verbose, slots)
            for name in names
        ]

    chapters.sort(key=lambda chapter: chapter.order)
    return chapters


def process_markdown_file(converter, md_path, name, workers=DEFAULT_WORKERS, verbose=False,
                          slots=None):
    """Read, clean, and convert one markdown file; load its sub-chapters if any."""
    if slots is None:
        slots = threading.BoundedSemaphore(workers)
    path = os.path.join(md_path, name)

    # released before recursing: a parent waiting on its children holds no permit
    with slots:
        content = read_document(path)
        images = extract_images(content)
        try:
            markup, metadata = converter.convert(content)
        except (ConversionError, MetadataDecodeError) as e:
            raise type(e)(f"{path}: {e}") from e

    filename = os.path.splitext(name)[0]
    chapter = Chapter(
        filename=filename,
        metadata=metadata,
        content=content,
        markup=markup,
        images=images,
    )

    child_dir = os.path.join(md_path, filename)
    if os.path.isdir(child_dir):
        chapter.children = get_chapters(converter, child_dir, workers, verbose, slots)

    if verbose:
        print(f"    {path}: '{metadata.title}' ({len(images)} images)")

    return chapter
