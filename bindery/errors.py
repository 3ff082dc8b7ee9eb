"""Exception hierarchy for Bindery.

Failures are grouped so callers can tell a fatal scan problem from a
broken document or a failed reconciliation step:

- ScanError: the library root cannot be walked at all
- ExtractionError: metadata could not be read from an added file
- SyncError: a reconciliation step failed; carries the step name
- EpubError and subclasses: structural problems inside an EPUB container
"""

from __future__ import annotations

__all__ = [
    "BinderyError",
    "ScanError",
    "ExtractionError",
    "SyncError",
    "SyncCancelled",
    "EpubError",
    "InvalidArchiveError",
    "MissingContainerError",
    "MalformedXMLError",
    "MissingRootFileError",
    "MimetypeNotFirstError",
    "MissingMimetypeError",
    "InvalidMimetypeError",
    "MissingPackageError",
    "MalformedPackageError",
]


class BinderyError(Exception):
    """Base exception for all Bindery failures."""


class ScanError(BinderyError):
    """Raised when the library root cannot be enumerated."""


class ExtractionError(BinderyError):
    """Raised when metadata extraction fails for one of the added files."""

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"failed to extract metadata from {path}: {cause}")
        self.path = path
        self.cause = cause


class SyncError(BinderyError):
    """A reconciliation step failed.

    ``op`` names the failing step (e.g. ``sync.load_snapshot``) so the
    message reads ``<op>: <cause>``.
    """

    def __init__(self, op: str, cause: BaseException) -> None:
        super().__init__(f"{op}: {cause}")
        self.op = op
        self.cause = cause


class SyncCancelled(BinderyError):
    """Raised when a pass is cancelled before the catalog transaction starts."""


class EpubError(BinderyError):
    """Base class for EPUB container validation failures."""


class InvalidArchiveError(EpubError):
    """The file is not a readable zip archive."""


class MissingContainerError(EpubError):
    """META-INF/container.xml is absent."""

    def __init__(self) -> None:
        super().__init__("missing container descriptor (META-INF/container.xml)")


class MalformedXMLError(EpubError):
    """A descriptor inside the archive is not well-formed XML."""


class MissingRootFileError(EpubError):
    """container.xml does not point to a package document."""

    def __init__(self) -> None:
        super().__init__("missing root-file path in container descriptor")


class MimetypeNotFirstError(EpubError):
    """The mimetype entry is not the first entry stored in the archive."""

    def __init__(self, message: str = "mimetype not first entry in archive") -> None:
        super().__init__(message)


class MissingMimetypeError(MimetypeNotFirstError):
    """The mimetype entry is absent."""

    def __init__(self) -> None:
        super().__init__("missing mimetype entry")


class InvalidMimetypeError(EpubError):
    """The mimetype entry does not read ``application/epub+zip``."""

    def __init__(self, found: bytes) -> None:
        super().__init__(f"invalid mimetype: {found[:64]!r}")
        self.found = found


class MissingPackageError(EpubError):
    """The package document named by container.xml is absent."""

    def __init__(self, path: str) -> None:
        super().__init__(f"missing package descriptor: {path}")
        self.path = path


class MalformedPackageError(EpubError):
    """The package document root is not an OPF <package> element."""
