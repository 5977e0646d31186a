"""
Command-line entry point: build the EPUB from a Jekyll markdown book.

Usage:
    python build.py                          Configure from environment (UUID, INPUT, ...)
    python build.py --config book.yaml       Load settings from a YAML file
    python build.py --input /tmp/book -v     Override a setting, verbose output

Requires: pandoc, PyYAML, EbookLib
"""

import argparse
import sys
import traceback

from epubtree.config import BookConfig, ConfigError
from epubtree.errors import BuildError
from epubtree.pipeline import build_book


def cmd_build(args):
    """Load configuration and run the conversion. Returns an exit status."""
    overrides = {
        "input": args.input,
        "docs_dir": args.docs_dir,
        "output": args.output,
        "cover": args.cover,
        "style": args.style,
        "uuid": args.uuid,
        "workers": args.workers,
    }

    try:
        config = BookConfig.load(config_file=args.config, overrides=overrides)
    except ConfigError as e:
        print(f"Error: {e}")
        return 1

    config.summary()
    print(f"\n{'─' * 60}")
    print(f"  Building EPUB: {config.title}")
    print(f"{'─' * 60}")

    try:
        result = build_book(config, verbose=args.verbose)
    except BuildError as e:
        print(f"Error: {e}")
        return 1

    print(f"\n{'─' * 60}")
    result.summary()
    return 0


def build_parser():
    parser = argparse.ArgumentParser(
        description="Build an EPUB from a tree of markdown chapters",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
environment:
  INPUT, DOCS_DIR, OUTPUT, COVER, STYLE, UUID   (flags take precedence)

examples:
  UUID=... %(prog)s                          Build with defaults
  %(prog)s --config book.yaml -v            Build from a config file
  %(prog)s --input ../book --output out.epub
        """,
    )

    parser.add_argument("--config", help="YAML config file")

    paths = parser.add_argument_group("paths")
    paths.add_argument("--input", help="Book repository root")
    paths.add_argument("--docs-dir", help="Chapter root, relative to --input")
    paths.add_argument("--output", help="EPUB file to write")
    paths.add_argument("--cover", help="Cover image")
    paths.add_argument("--style", help="CSS stylesheet")

    opts = parser.add_argument_group("options")
    opts.add_argument("--uuid", help="Book identifier (UUID)")
    opts.add_argument("--workers", type=int, help="Parallel conversions/image reads")
    opts.add_argument("--verbose", "-v", action="store_true")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        return cmd_build(args)
    except KeyboardInterrupt:
        print("\nCancelled.")
        return 1
    except Exception as e:
        log_path = "build_error.log"
        with open(log_path, "w") as f:
            traceback.print_exc(file=f)
        print(f"\nUnexpected error: {e}")
        print(f"Full traceback written to {log_path}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
