"""
epubtree — markdown chapter tree to EPUB.

Public API:
    from epubtree.config import BookConfig
    from epubtree.chapters import get_chapters
    from epubtree.assets import AssetResolver
    from epubtree.sections import create_sections
    from epubtree.package import EpubPackage
    from epubtree.pipeline import build_book
"""
