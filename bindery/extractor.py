"""Metadata extraction for newly added library files.

Dispatches on file extension:
- .epub      -> EPUB package document (epub.py)
- .cbz/.cbr  -> ComicInfo.xml (comicinfo.py)
- others     -> title derived from the file name

Any failure is fatal for the whole batch; nothing is returned for a
partially processed set of paths.
"""

from __future__ import annotations

from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from threading import Event
from typing import Callable, Dict, Iterable, Optional

from .archive import is_comic_file
from .comicinfo import read_comic_metadata
from .epub import read_epub_metadata
from .errors import ExtractionError, SyncCancelled
from .logging_config import get_logger
from .metadata import Metadata, metadata_from_filename
from .path_utils import to_absolute

logger = get_logger(__name__)


def extract_file(path: Path) -> Metadata:
    """Read metadata from a single file on disk."""
    if path.suffix.lower() == ".epub":
        return read_epub_metadata(path)
    if is_comic_file(path):
        return read_comic_metadata(path)
    return metadata_from_filename(path)


class FileMetadataExtractor:
    """Extract metadata for library-relative paths under ``root``."""

    def __init__(
        self,
        root: Path,
        workers: int = 4,
        extract_fn: Callable[[Path], Metadata] = extract_file,
    ):
        self.root = root
        self.workers = max(1, workers)
        self.extract_fn = extract_fn

    def extract(
        self, paths: Iterable[str], stop_event: Optional[Event] = None
    ) -> Dict[str, Metadata]:
        """Return metadata keyed by the given relative paths.

        Raises ExtractionError for the first file that fails and
        SyncCancelled if ``stop_event`` is set.
        """
        paths = sorted(set(paths))
        if not paths:
            return {}

        root = self.root.resolve()
        results: Dict[str, Metadata] = {}
        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="BinderyExtractor"
        ) as pool:
            pending: Dict[Future, str] = {
                pool.submit(self.extract_fn, to_absolute(rel, root)): rel
                for rel in paths
            }
            while pending:
                if stop_event is not None and stop_event.is_set():
                    pool.shutdown(wait=False, cancel_futures=True)
                    raise SyncCancelled("metadata extraction cancelled")
                done, _ = wait(pending, timeout=0.5, return_when=FIRST_COMPLETED)
                for future in done:
                    rel = pending.pop(future)
                    try:
                        results[rel] = future.result()
                    except Exception as exc:
                        pool.shutdown(wait=False, cancel_futures=True)
                        raise ExtractionError(rel, exc) from exc
                    logger.debug(f"✓ {rel} - metadata extracted")

        return {rel: results[rel] for rel in paths}
