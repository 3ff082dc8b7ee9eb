"""Wire the reconciliation engine to the local disk and the SQLite catalog."""

from __future__ import annotations

import threading
from typing import Optional

from sqlmodel import Session

from .config import BinderyConfig
from .database import TransactionSession, get_engine, init_db
from .extractor import FileMetadataExtractor
from .logging_config import get_logger
from .repository import Repository
from .scanner import LocalSnapshotter
from .sync import LibrarySync

logger = get_logger(__name__)


def build_library_sync(session: Session, config: BinderyConfig) -> LibrarySync:
    """Assemble a LibrarySync backed by ``session``."""
    repo = Repository(session)
    root = config.library_path
    return LibrarySync(
        session=TransactionSession(session, library_key=str(root.resolve())),
        snapshotter=LocalSnapshotter(
            root,
            ignore_patterns=config.scanner.ignore_patterns,
            workers=config.scanner.workers,
            chunk_size=config.scanner.chunk_size,
        ),
        metadata_extractor=FileMetadataExtractor(root, workers=config.scanner.workers),
        snapshot_repo=repo,
        item_repo=repo,
        author_repo=repo,
    )


def sync_library(
    config: BinderyConfig,
    stop_event: Optional[threading.Event] = None,
    timeout: Optional[float] = None,
) -> dict:
    """Run one reconciliation pass against the configured library.

    :param stop_event: set by the caller to cancel the pass.
    :param timeout: seconds after which the pass is cancelled; defaults to
        ``[sync] timeout_seconds``.
    :return: stats dict from LibrarySync.scan_library.
    """
    stop_event = stop_event or threading.Event()
    timeout = timeout if timeout is not None else config.sync.timeout

    timer: Optional[threading.Timer] = None
    if timeout:
        timer = threading.Timer(timeout, stop_event.set)
        timer.daemon = True
        timer.start()

    init_db()
    try:
        with Session(get_engine()) as session:
            return build_library_sync(session, config).scan_library(stop_event)
    finally:
        if timer is not None:
            timer.cancel()
