"""
Markdown → XHTML conversion.

The chapter tree builder depends only on the Converter interface:
convert(text) returns (markup, ChapterMeta) or raises ConversionError /
MetadataDecodeError. PandocConverter is the concrete adapter; tests swap in
a stub.
"""

import os
import re
import subprocess
import tempfile
from abc import ABC, abstractmethod

import yaml

from epubtree.chapters import ChapterMeta
from epubtree.errors import ConversionError, MetadataDecodeError


FRONT_MATTER = re.compile(
    r"\A---[ \t]*\r?\n(.*?)^(?:---|\.\.\.)[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)

# Void elements left unclosed by raw HTML passthrough break XHTML parsers
VOID_TAG = re.compile(r"<(br|hr|img)\b([^>]*?)\s*(?<!/)>", re.IGNORECASE)


def split_front_matter(text):
    """Split a document into (front-matter block or None, body)."""
    match = FRONT_MATTER.match(text)
    if not match:
        return None, text
    return match.group(1), text[match.end():]


def decode_metadata(block):
    """
    Decode a YAML front-matter block into ChapterMeta.

    Follows the just-the-docs convention: `title` and `nav_order`.
    A missing block yields an untitled chapter with order 0.
    """
    if block is None:
        return ChapterMeta()

    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as e:
        raise MetadataDecodeError(f"Invalid front-matter: {e}") from e

    if data is None:
        return ChapterMeta()
    if not isinstance(data, dict):
        raise MetadataDecodeError(
            f"Front-matter must be a YAML mapping, got {type(data).__name__}"
        )

    order = data.get("nav_order", 0)
    if order is None:
        order = 0
    if isinstance(order, bool) or not isinstance(order, int):
        raise MetadataDecodeError(f"nav_order must be an integer, got {order!r}")

    title = data.get("title")
    return ChapterMeta(title="" if title is None else str(title), order=order)


def to_xhtml(html):
    """Self-close void elements so the markup is well-formed XHTML."""
    return VOID_TAG.sub(r"<\1\2/>", html)


class Converter(ABC):
    """Renders one cleaned markdown document."""

    @abstractmethod
    def convert(self, text):
        """Return (markup, ChapterMeta)."""
        ...

    def stylesheet(self):
        """CSS the rendered markup relies on (e.g. code highlighting), or ""."""
        return ""


# Pandoc only fills $highlighting-css$ when the document has highlighted code
HIGHLIGHT_SAMPLE = "```python\npass\n```\n"
HIGHLIGHT_TEMPLATE = "$highlighting-css$\n"


class PandocConverter(Converter):
    """
    Converter backed by the pandoc binary.

    Front-matter is decoded here and stripped before the body reaches
    pandoc, with pandoc's own YAML metadata blocks disabled so a later
    `---` line is never taken for metadata.

    Chapters are rendered as fragments, which carry the token classes of
    highlighted code but not their styles; stylesheet() returns the CSS
    for the configured highlight style.
    """

    def __init__(self, extensions="pipe_tables+raw_html", highlight_style="monokai",
                 pandoc="pandoc"):
        self.extensions = extensions
        self.highlight_style = highlight_style
        self.pandoc = pandoc

    @property
    def from_str(self):
        """The pandoc --from string including extensions."""
        base = "markdown-yaml_metadata_block"
        return f"{base}+{self.extensions}" if self.extensions else base

    def command(self, extra_args=None):
        cmd = [
            self.pandoc,
            "--from", self.from_str,
            "--to", "html5",
            "--wrap=none",
            f"--highlight-style={self.highlight_style}",
        ]
        if extra_args:
            cmd.extend(extra_args)
        return cmd

    def run_pandoc(self, source, extra_args=None):
        """Run pandoc on `source`, returning stdout. Raises ConversionError."""
        try:
            result = subprocess.run(
                self.command(extra_args),
                input=source,
                capture_output=True,
                text=True,
                encoding="utf-8",
            )
        except FileNotFoundError as e:
            raise ConversionError(f"{self.pandoc} not found on PATH") from e

        if result.returncode != 0:
            detail = "\n".join((result.stderr or "").strip().splitlines()[:20])
            raise ConversionError(
                f"pandoc failed (exit {result.returncode})"
                + (f": {detail}" if detail else "")
            )
        return result.stdout

    def convert(self, text):
        block, body = split_front_matter(text)
        meta = decode_metadata(block)
        return to_xhtml(self.run_pandoc(body)), meta

    def stylesheet(self):
        fd, template = tempfile.mkstemp(prefix="highlight_", suffix=".html")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(HIGHLIGHT_TEMPLATE)
            css = self.run_pandoc(
                HIGHLIGHT_SAMPLE,
                ["--standalone", f"--template={template}"],
            )
        finally:
            os.remove(template)
        return css.strip() + "\n" if css.strip() else ""
