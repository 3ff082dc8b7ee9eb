"""Library reconciliation for Bindery.

One pass runs: scan -> load previous snapshot -> diff -> extract metadata
for added files -> one catalog transaction (authors, new items, soft
deletes, moves, snapshot replacement).

Everything before the transaction is read-only, so an abort there leaves
the catalog untouched. Inside the transaction any failure rolls back and
the previous snapshot stays authoritative; the next pass recomputes the
same diff and retries.
"""

from __future__ import annotations

from contextlib import contextmanager
from threading import Event
from typing import (
    ContextManager,
    Dict,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Protocol,
)

from .errors import ScanError, SyncCancelled, SyncError
from .logging_config import get_logger
from .mapper import build_library_items, collect_author_names
from .metadata import Metadata
from .models import Author, LibraryItem
from .scanner import ScanResult
from .snapshot import compare_snapshots

logger = get_logger(__name__)


class Snapshotter(Protocol):
    def snapshot(self, stop_event: Optional[Event] = None) -> ScanResult:
        ...


class SnapshotRepo(Protocol):
    def get_library_snapshot(self) -> Dict[str, str]:
        ...

    def replace_snapshot(self, snapshot: Mapping[str, str]) -> None:
        ...


class MetadataExtractor(Protocol):
    def extract(
        self, paths: Iterable[str], stop_event: Optional[Event] = None
    ) -> Dict[str, Metadata]:
        ...


class AuthorRepo(Protocol):
    def get_or_create_authors(self, names: Iterable[str]) -> List[Author]:
        ...


class LibraryItemRepo(Protocol):
    def create_library_items(self, items: Iterable[LibraryItem]) -> None:
        ...

    def get_library_items_by_hash(self, hashes: Iterable[str]) -> List[LibraryItem]:
        ...

    def update_library_items(self, items: Iterable[LibraryItem]) -> None:
        ...


class TransactionSession(Protocol):
    def transaction(self) -> ContextManager:
        ...


@contextmanager
def _step(op: str) -> Iterator[None]:
    """Annotate failures of one step with its operation name."""
    try:
        yield
    except (SyncError, SyncCancelled):
        raise
    except Exception as exc:
        raise SyncError(op, exc) from exc


def _check_cancelled(stop_event: Optional[Event], stage: str) -> None:
    if stop_event is not None and stop_event.is_set():
        raise SyncCancelled(f"sync cancelled before {stage}")


class LibrarySync:
    """Reconcile the catalog with the current state of the library tree."""

    def __init__(
        self,
        *,
        session: TransactionSession,
        snapshotter: Snapshotter,
        metadata_extractor: MetadataExtractor,
        snapshot_repo: SnapshotRepo,
        item_repo: LibraryItemRepo,
        author_repo: AuthorRepo,
    ):
        self.session = session
        self.snapshotter = snapshotter
        self.metadata_extractor = metadata_extractor
        self.snapshot_repo = snapshot_repo
        self.item_repo = item_repo
        self.author_repo = author_repo

    def scan_library(self, stop_event: Optional[Event] = None) -> dict:
        """Run one reconciliation pass.

        :param stop_event: cancels the pass while scanning or extracting;
            ignored once the catalog transaction has started.
        :return: stats dict (added, moved, removed, skipped, scan_errors).
        :raises SyncError: a step failed; ``op`` names it.
        :raises SyncCancelled: the pass was cancelled before persisting.
        """
        with _step("sync.snapshot"):
            result = self.snapshotter.snapshot(stop_event)
        if result.failures:
            if not result.snapshot:
                detail = "; ".join(f"{p}: {e}" for p, e in sorted(result.failures.items()))
                raise SyncError("sync.snapshot", ScanError(f"no files could be read ({detail})"))
            for path, error in sorted(result.failures.items()):
                logger.error(f"✗ {path} - {error}")
            logger.warning(
                f"Continuing with partial snapshot ({len(result.failures)} unreadable)"
            )
        snapshot = dict(result.snapshot)

        _check_cancelled(stop_event, "loading snapshot")
        with _step("sync.load_snapshot"):
            old_snapshot = self.snapshot_repo.get_library_snapshot()

        diff = compare_snapshots(old_snapshot, snapshot)
        logger.info(
            f"[DIFF] {len(diff.added)} added, {len(diff.moved)} moved, "
            f"{len(diff.removed)} removed"
        )

        _check_cancelled(stop_event, "metadata extraction")
        with _step("sync.extract_metadata"):
            metadata_by_path = self.metadata_extractor.extract(diff.added_paths(), stop_event)

        names = collect_author_names(metadata_by_path.values())

        _check_cancelled(stop_event, "persisting")
        stats = {
            "added": 0,
            "moved": len(diff.moved),
            "removed": len(diff.removed),
            "skipped": 0,
            "scan_errors": len(result.failures),
        }

        with _step("sync.transaction"), self.session.transaction():
            with _step("sync.resolve_authors"):
                authors = self.author_repo.get_or_create_authors(names)
            authors_by_name = {author.name: author for author in authors}

            new_items, skipped = build_library_items(
                diff.added.values(), metadata_by_path, authors_by_name
            )
            for path in skipped:
                snapshot.pop(path, None)

            with _step("sync.create_items"):
                self.item_repo.create_library_items(new_items)

            hashes = sorted(set(diff.moved) | set(diff.removed))
            with _step("sync.fetch_items"):
                existing = self.item_repo.get_library_items_by_hash(hashes)

            # Only the item sitting at the vanished path changes; other items
            # sharing the hash still point at files that exist
            touched: List[LibraryItem] = []
            for item in existing:
                removed = diff.removed.get(item.hash)
                if removed is not None and removed.path == item.path:
                    item.mark_deleted()
                    logger.info(f"[-] Removed: {item.path}")
                    touched.append(item)
                    continue
                moved = diff.moved.get(item.hash)
                if moved is not None and moved.path == item.path and moved.new_path:
                    logger.info(f"[→] Moved: {item.path} → {moved.new_path}")
                    item.update_path(moved.new_path)
                    touched.append(item)

            with _step("sync.update_items"):
                self.item_repo.update_library_items(touched)

            with _step("sync.replace_snapshot"):
                self.snapshot_repo.replace_snapshot(snapshot)

            for item in new_items:
                logger.info(f"[+] Added: {item.path}")
            stats["added"] = len(new_items)
            stats["skipped"] = len(skipped)

        return stats
