"""Path utilities for converting between absolute and library-relative paths.

Snapshot keys and catalog paths are relative to the library root and always
use forward slashes, so a snapshot taken on one platform diffs cleanly
against one taken on another.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath


def to_relative(absolute_path: Path, library_root: Path) -> str:
    """Convert an absolute path to a slash-separated relative path string.

    Example:
        >>> to_relative(Path("/library/Books/Dune.epub"), Path("/library"))
        'Books/Dune.epub'
    """
    try:
        rel_path = absolute_path.relative_to(library_root)
    except ValueError:
        return absolute_path.as_posix()
    return rel_path.as_posix()


def to_absolute(relative_path: str, library_root: Path) -> Path:
    """Convert a slash-separated relative path string to an absolute Path.

    Example:
        >>> to_absolute("Books/Dune.epub", Path("/library"))
        PosixPath('/library/Books/Dune.epub')
    """
    return library_root.joinpath(*PurePosixPath(relative_path).parts)


def top_level_folder(relative_path: str) -> str | None:
    """Return the first path component of a relative path, or None for root files."""
    parts = PurePosixPath(relative_path).parts
    return parts[0] if len(parts) > 1 else None
