"""
End-to-end conversion: chapter tree → images → sections → EPUB file.

Any BuildError aborts the run; nothing is written unless every phase
succeeded. Missing images are the only condition that is reported and
skipped.
"""

from epubtree.assets import AssetResolver
from epubtree.chapters import count_chapters, get_chapters
from epubtree.convert import PandocConverter
from epubtree.errors import BuildError, PackageError
from epubtree.package import EpubPackage
from epubtree.sections import create_sections


class BuildResult:
    """Counts reported at the end of a successful run."""

    def __init__(self, output, chapters, top_level, images_registered, images_missing):
        self.output = output
        self.chapters = chapters
        self.top_level = top_level
        self.images_registered = images_registered
        self.images_missing = images_missing

    def summary(self):
        print(f"  Chapters: {self.chapters} ({self.top_level} top-level)")
        print(f"  Images:   {self.images_registered} added, {self.images_missing} missing")
        print(f"  ✓ {self.output}")


def make_converter(config):
    return PandocConverter(
        extensions=config.markdown_extensions,
        highlight_style=config.highlight_style,
    )


def build_book(config, converter=None, package=None, verbose=False):
    """
    Run a full conversion for a loaded BookConfig.

    `converter` and `package` default to PandocConverter and EpubPackage.
    Returns a BuildResult.
    """
    converter = converter or make_converter(config)
    package = package or EpubPackage(lang=config.lang)

    # ── Chapters ───────────────────────────────────────────
    chapters = get_chapters(converter, config.docs_path, workers=config.workers, verbose=verbose)
    total = count_chapters(chapters)
    print(f"  ✓ Loaded {total} chapters ({len(chapters)} top-level)")

    # ── Metadata, cover, stylesheet ────────────────────────
    highlight_css = converter.stylesheet()
    try:
        package.set_metadata(config.title, config.author, config.identifier, config.lang)
        package.add_cover(config.cover)
        css_path = package.add_stylesheet(config.style, extra=highlight_css)
    except (OSError, PackageError) as e:
        raise BuildError(f"Cannot set up package: {e}") from e
    if verbose:
        print(f"  Cover: {config.cover}")
        print(f"  CSS:   {config.style} → {css_path}")

    # ── Images ─────────────────────────────────────────────
    resolver = AssetResolver(
        package,
        config.input,
        prefix=config.image_prefix,
        workers=config.workers,
        verbose=verbose,
    )
    counts = resolver.resolve(chapters)

    # ── Sections ───────────────────────────────────────────
    created = create_sections(package, chapters, css_path, verbose=verbose)
    print(f"  ✓ Created {created} sections")

    # ── Write ──────────────────────────────────────────────
    try:
        package.write(config.output)
    except PackageError as e:
        raise BuildError(str(e)) from e

    return BuildResult(
        output=config.output,
        chapters=total,
        top_level=len(chapters),
        images_registered=counts["registered"],
        images_missing=counts["missing"],
    )
