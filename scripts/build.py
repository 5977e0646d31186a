#!/usr/bin/env python3
"""
Build script for markdown-epub-tree.

Converts the markdown chapter tree of a Jekyll book into a single EPUB.
See `python build.py --help` for options and environment variables.

Requires: pandoc, PyYAML, EbookLib
"""

import os
import sys

# Ensure epubtree is importable from the scripts/ directory
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from epubtree.cli import main


if __name__ == "__main__":
    sys.exit(main())
