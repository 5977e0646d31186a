"""
Document reading helpers.

Reads a chapter source file, strips the Jekyll-only markup the EPUB
renderer does not understand, and finds the images the document embeds.
"""

import re

from epubtree.errors import FileReadError


# ── Jekyll cleanup patterns ────────────────────────────────────────────
#
# Each: (description, compiled regex, replacement)

JEKYLL_PATTERNS = [
    ("Kramdown inline attribute list ({: .class}, {:toc})",
     re.compile(r"\{:[^}]*\}"), ""),
    ("just-the-docs table of contents marker",
     re.compile(re.escape("- TOC")), ""),
]

# ![alt](path): path captured verbatim, prefix included
IMAGE_PATTERN = re.compile(r"!\[.*?\]\((.*?)\)")


def natural_sort_key(s):
    """Sort strings with embedded numbers naturally (2.md before 10.md)."""
    return [
        int(text) if text.isdigit() else text.lower()
        for text in re.split(r"(\d+)", s)
    ]


def clean_content(text):
    """
    Remove Jekyll-specific markup from markdown source.

    Patterns are applied until the text stops changing: removing one
    marker can join its neighbours into another, and cleaning must be
    idempotent.
    """
    while True:
        cleaned = text
        for _, pattern, replacement in JEKYLL_PATTERNS:
            cleaned = pattern.sub(replacement, cleaned)
        if cleaned == text:
            return cleaned
        text = cleaned


def extract_images(text):
    """Return the image paths referenced in text, in document order, duplicates kept."""
    return [match.group(1) for match in IMAGE_PATTERN.finditer(text)]


def read_document(path):
    """Read a markdown file and return its cleaned text. Raises FileReadError."""
    try:
        with open(path, "rb") as f:
            raw = f.read()
    except OSError as e:
        raise FileReadError(path, e.strerror or str(e)) from e

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FileReadError(path, "not valid UTF-8") from e

    return clean_content(text)
