"""
Section assembly: add the chapter tree to the package, parent before children.

Filenames encode the ancestor chain so nested chapters never collide:

    intro        → intro.xhtml
      setup      → intro__setup.xhtml          (parent: intro.xhtml)
        linux    → intro__setup__linux.xhtml   (parent: intro__setup.xhtml)
"""

from epubtree.errors import SectionRegistrationError


SECTION_EXTENSION = ".xhtml"
SEPARATOR = "__"


def section_filename(chapter, parent=None):
    """Package filename of a chapter; `parent` is the parent section's filename."""
    if not parent:
        return f"{chapter.filename}{SECTION_EXTENSION}"
    base = parent[:-len(SECTION_EXTENSION)] if parent.endswith(SECTION_EXTENSION) else parent
    return f"{base}{SEPARATOR}{chapter.filename}{SECTION_EXTENSION}"


def create_sections(package, chapters, stylesheet=None, parent=None, verbose=False):
    """
    Register every chapter of the tree as a package section, depth-first.

    Top-level chapters become sections, nested ones sub-sections of their
    parent's filename. Returns the number of sections created; the first
    failure raises SectionRegistrationError and stops the walk.
    """
    created = 0

    for chapter in chapters:
        filename = section_filename(chapter, parent)

        try:
            if parent:
                package.register_sub_section(
                    parent, chapter.markup, chapter.title, filename, stylesheet
                )
            else:
                package.register_top_section(
                    chapter.markup, chapter.title, filename, stylesheet
                )
        except Exception as e:
            raise SectionRegistrationError(chapter.title, e) from e

        created += 1
        if verbose:
            print(f"    Section: {filename}")

        if chapter.children:
            created += create_sections(
                package, chapter.children, stylesheet, filename, verbose
            )

    return created
