"""
Error types raised while building the chapter tree and assembling the package.

Every fatal condition of a conversion run derives from BuildError, so the
CLI can report it with a single handler. A missing image is not an error:
it is counted and reported by the asset resolver.
"""


class BuildError(Exception):
    """Base for fatal conversion errors."""
    pass


class DirectoryReadError(BuildError):
    """A chapter directory could not be listed."""

    def __init__(self, path, reason=None):
        self.path = path
        msg = f"Cannot read directory {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class FileReadError(BuildError):
    """A chapter source file could not be read."""

    def __init__(self, path, reason=None):
        self.path = path
        msg = f"Cannot read file {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class ConversionError(BuildError):
    """The converter failed to render a document."""
    pass


class MetadataDecodeError(BuildError):
    """The front-matter of a document could not be decoded."""
    pass


class AssetRegistrationError(BuildError):
    """An existing image could not be added to the package."""

    def __init__(self, path, reason=None):
        self.path = path
        msg = f"Cannot add image {path}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class SectionRegistrationError(BuildError):
    """A chapter could not be added to the package as a section."""

    def __init__(self, title, reason=None):
        self.title = title
        msg = f"Cannot create chapter '{title}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class PackageError(Exception):
    """Raised by a package writer for its own failures."""
    pass
