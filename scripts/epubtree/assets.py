"""
Image resolution for the chapter tree.

Two phases, in order:
    1. Collect the unique image references of the whole tree and add each
       existing file to the package once (in parallel, bounded).
    2. Rewrite every chapter's markup, descendants included, so each
       registered reference points at its internal package path.

Phase 2 only starts after every worker of phase 1 has finished. Images
that do not exist on disk are reported and left untouched in the markup.
"""

import os
import re
import threading
from concurrent.futures import ThreadPoolExecutor

from epubtree.chapters import iter_chapters
from epubtree.errors import AssetRegistrationError


DEFAULT_PREFIX = "/book"

# Bound on images read at once (file descriptors)
MAX_WORKERS = 10


def collect_unique_images(chapters):
    """Unique image references of the tree, in first-seen (pre-order) order."""
    unique = {}
    for chapter in iter_chapters(chapters):
        for image in chapter.images:
            unique.setdefault(image, None)
    return list(unique)


def filesystem_path(image, base_path, prefix=DEFAULT_PREFIX):
    """
    Map a raw image reference to a file path.

    The logical root prefix (`/book/img/a.png`) is replaced by base_path.
    Other absolute paths are used as-is, relative ones are resolved against
    base_path.
    """
    if prefix and (image == prefix or image.startswith(prefix.rstrip("/") + "/")):
        return base_path + image[len(prefix.rstrip("/")):]
    if os.path.isabs(image):
        return image
    return os.path.join(base_path, image)


def internal_name(image):
    """Flatten a reference into a package filename: /book/img/a.png → book_img_a.png"""
    return image.lstrip("/").replace("/", "_")


def replace_image_paths(chapters, registered, images=None):
    """
    Rewrite registered references in the markup of every chapter of the tree.

    `images` lists every reference of the tree, missing ones included; they
    take part in matching so a longer missing reference is kept as written
    instead of having a registered prefix of it rewritten.
    """
    if not registered:
        return
    references = set(registered) | set(images or ())
    # Single pass, longest alternative first: rewritten paths are not matched again
    ordered = sorted(references, key=len, reverse=True)
    pattern = re.compile("|".join(re.escape(image) for image in ordered))
    for chapter in iter_chapters(chapters):
        chapter.markup = pattern.sub(
            lambda m: registered.get(m.group(0), m.group(0)), chapter.markup
        )


class AssetResolver:
    """
    Adds the images of a chapter tree to a package.

    Usage:
        resolver = AssetResolver(package, base_path)
        resolver.resolve(chapters)
        resolver.summary()     # {"registered": 12, "missing": 1}
    """

    def __init__(self, package, base_path, prefix=DEFAULT_PREFIX, workers=MAX_WORKERS,
                 verbose=False):
        self.package = package
        self.base_path = base_path
        self.prefix = prefix
        self.workers = max(1, min(workers, MAX_WORKERS))
        self.verbose = verbose
        self._lock = threading.Lock()
        self._registered = {}
        self._missing = []

    @property
    def missing(self):
        """Filesystem paths of images that were not found."""
        with self._lock:
            return list(self._missing)

    def is_registered(self, image):
        with self._lock:
            return image in self._registered

    def summary(self):
        with self._lock:
            return {"registered": len(self._registered), "missing": len(self._missing)}

    def resolve(self, chapters):
        """Register every unique image, then rewrite markup. Raises AssetRegistrationError."""
        images = collect_unique_images(chapters)

        if self.workers > 1 and len(images) > 1:
            with ThreadPoolExecutor(max_workers=self.workers) as pool:
                futures = [pool.submit(self._register, image) for image in images]
                try:
                    for future in futures:
                        future.result()
                except BaseException:
                    for future in futures:
                        future.cancel()
                    raise
        else:
            for image in images:
                self._register(image)

        with self._lock:
            registered = dict(self._registered)
            missing = len(self._missing)

        replace_image_paths(chapters, registered, images)

        print(f"  Images: {len(registered)} added, {missing} missing")
        if missing:
            print(f"  Warning: {missing} image(s) not found, references left unresolved")

        return self.summary()

    def _mark_missing(self, fs_path):
        print(f"  Warning: image not found, skipping: {fs_path}")
        with self._lock:
            self._missing.append(fs_path)

    def _register(self, image):
        fs_path = filesystem_path(image, self.base_path, self.prefix)

        if not os.path.exists(fs_path):
            self._mark_missing(fs_path)
            return

        try:
            internal = self.package.register_asset(fs_path, internal_name(image))
        except FileNotFoundError:
            self._mark_missing(fs_path)
            return
        except Exception as e:
            raise AssetRegistrationError(fs_path, e) from e

        with self._lock:
            self._registered[image] = internal

        if self.verbose:
            print(f"    Image added: {fs_path} → {internal}")
