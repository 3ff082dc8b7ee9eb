"""Filesystem snapshotter for Bindery.

Walks the library tree and produces a content-addressed snapshot
(relative path -> SHA-256 hex digest) of every regular file.

- unreadable files and sub-directories are collected as soft failures
- a root that cannot be enumerated is fatal (ScanError)
- hashing is fanned out over a bounded thread pool; results are merged
  into one snapshot sorted by path
"""

from __future__ import annotations

import dataclasses
import hashlib
import os
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from pathlib import Path
from threading import Event
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .errors import ScanError, SyncCancelled
from .logging_config import get_logger
from .path_utils import to_relative
from .snapshot import Snapshot

logger = get_logger(__name__)


def _should_ignore(name: str, ignore_patterns: Iterable[str]) -> bool:
    """Check if file/folder should be ignored based on patterns or macOS temp files."""
    # Skip macOS temporary/metadata files (._*)
    if name.startswith("._"):
        return True
    return name in ignore_patterns


def hash_file(path: Path, chunk_size: int = 1024 * 1024) -> str:
    """Return the SHA-256 hex digest of a file's contents."""
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


@dataclasses.dataclass
class ScanResult:
    """Snapshot plus the per-file failures met while building it."""

    snapshot: Snapshot
    failures: Dict[str, str] = dataclasses.field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def walk_library(
    root: Path,
    ignore_patterns: Tuple[str, ...],
    failures: Dict[str, str],
) -> Iterator[Path]:
    """Yield every regular file under root, respecting ignore patterns.

    Sub-directories that cannot be listed are recorded in ``failures``.
    Raises ScanError when the root itself cannot be listed.
    """
    root_errors: List[OSError] = []

    def onerror(exc: OSError) -> None:
        if exc.filename is not None and Path(exc.filename) == root:
            root_errors.append(exc)
            return
        rel = to_relative(Path(exc.filename), root) if exc.filename else "?"
        failures[rel] = str(exc)
        logger.warning(f"✗ {rel} - Unable to list: {exc}")

    for dirpath, dirnames, filenames in os.walk(root, onerror=onerror):
        dir_path = Path(dirpath)

        # Filter out ignored directories in-place so os.walk doesn't descend
        dirnames[:] = [
            d for d in dirnames if not _should_ignore(d, ignore_patterns)
        ]

        for name in filenames:
            if _should_ignore(name, ignore_patterns):
                continue
            file_path = dir_path / name
            if file_path.is_file():
                yield file_path

    if root_errors:
        exc = root_errors[0]
        raise ScanError(f"cannot walk library root {root}: {exc}") from exc


class LocalSnapshotter:
    """Snapshot a library directory on the local disk."""

    def __init__(
        self,
        root: Path,
        ignore_patterns: Tuple[str, ...] = (),
        workers: int = 4,
        chunk_size: int = 1024 * 1024,
    ):
        self.root = root
        self.ignore_patterns = tuple(ignore_patterns)
        self.workers = max(1, workers)
        self.chunk_size = chunk_size

    def snapshot(self, stop_event: Optional[Event] = None) -> ScanResult:
        """Hash every file under the root.

        Raises ScanError if the root is missing or cannot be listed and
        SyncCancelled if ``stop_event`` is set while scanning.
        """
        root = self.root.resolve()
        if not root.exists():
            raise ScanError(f"Library path does not exist: {root}")
        if not root.is_dir():
            raise ScanError(f"Library path is not a directory: {root}")

        failures: Dict[str, str] = {}
        files = list(walk_library(root, self.ignore_patterns, failures))
        logger.info(f"[SCAN] {root} ({len(files)} files)")

        hashes: Dict[str, str] = {}
        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="BinderyHasher"
        ) as pool:
            pending = {
                pool.submit(hash_file, path, self.chunk_size): to_relative(path, root)
                for path in files
            }
            while pending:
                if stop_event is not None and stop_event.is_set():
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise SyncCancelled("scan cancelled")
                done, _ = wait(pending, timeout=0.5, return_when=FIRST_COMPLETED)
                for future in done:
                    rel = pending.pop(future)
                    try:
                        hashes[rel] = future.result()
                    except OSError as exc:
                        failures[rel] = str(exc)
                        logger.warning(f"✗ {rel} - Unable to hash: {exc}")

        snapshot = MappingProxyType(dict(sorted(hashes.items())))
        return ScanResult(snapshot=snapshot, failures=failures)
