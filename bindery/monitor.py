"""Filesystem monitoring for Bindery.

Uses Watchdog to notice changes in the library tree. Events are only a
trigger: a burst of events is collected over the debounce window and then
one full reconciliation pass runs, which works out what actually changed
from the snapshots.
"""

from __future__ import annotations

import queue
import time
from pathlib import Path
from threading import Event, Thread
from typing import Callable, Iterable, List, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import BinderyConfig
from .errors import BinderyError
from .logging_config import get_logger
from .service import sync_library

logger = get_logger(__name__)


def _ignored(path: Path, ignore_patterns: Iterable[str]) -> bool:
    return path.name.startswith("._") or path.name in ignore_patterns


class LibraryEventHandler(FileSystemEventHandler):
    """Push the path of every relevant filesystem event onto a queue."""

    def __init__(self, task_queue: queue.Queue, ignore_patterns: Iterable[str] = ()):
        super().__init__()
        self.task_queue = task_queue
        self.ignore_patterns = tuple(ignore_patterns)

    def on_created(self, event: FileSystemEvent) -> None:
        path = Path(event.src_path)
        if _ignored(path, self.ignore_patterns):
            return
        self.task_queue.put(path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        path = Path(event.src_path)
        if _ignored(path, self.ignore_patterns):
            return
        self.task_queue.put(path)

    def on_moved(self, event: FileSystemEvent) -> None:
        src_path = Path(event.src_path)
        dest_path = Path(event.dest_path)
        if _ignored(src_path, self.ignore_patterns) and _ignored(dest_path, self.ignore_patterns):
            return
        self.task_queue.put(src_path)
        self.task_queue.put(dest_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        path = Path(event.src_path)
        if _ignored(path, self.ignore_patterns):
            return
        self.task_queue.put(path)


def drain_batch(
    task_queue: queue.Queue,
    first: Path,
    window: float,
    stop_event: Event,
) -> List[Path]:
    """Collect event paths until the queue has been quiet for ``window`` seconds."""
    batch = [first]
    quiet_since = time.monotonic()
    while not stop_event.is_set() and (time.monotonic() - quiet_since) < window:
        try:
            batch.append(task_queue.get(timeout=0.1))
            quiet_since = time.monotonic()
        except queue.Empty:
            continue
    return batch


def process_queue(
    task_queue: queue.Queue,
    config: BinderyConfig,
    stop_event: Event,
    sync_fn: Callable[..., dict] = sync_library,
) -> None:
    """Worker loop: wait for events, debounce, run one sync per burst."""
    window = float(config.monitoring.debounce_seconds)

    while not stop_event.is_set():
        try:
            first = task_queue.get(timeout=1.0)
        except queue.Empty:
            continue

        batch = drain_batch(task_queue, first, window, stop_event)
        if stop_event.is_set():
            break
        logger.info(
            f"[WATCH] {len(batch)} filesystem events ({len(set(batch))} paths), syncing library"
        )
        for path in sorted(set(batch)):
            logger.debug(f"[WATCH] {path}")

        try:
            stats = sync_fn(config)
        except BinderyError as exc:
            logger.error(f"✗ Sync failed: {exc}")
            continue
        except Exception as exc:
            logger.exception(f"✗ Unexpected sync failure: {exc}")
            continue

        logger.info(
            f"Sync complete: {stats['added']} added, {stats['moved']} moved, "
            f"{stats['removed']} removed, {stats['skipped']} skipped."
        )


class LibraryMonitor:
    """Running observer plus its sync worker."""

    def __init__(self, observer: Observer, worker: Thread, stop_event: Event):
        self.observer = observer
        self.worker = worker
        self.stop_event = stop_event

    def stop(self) -> None:
        self.stop_event.set()
        self.observer.stop()
        self.observer.join()
        self.worker.join(timeout=5)


def start_file_monitoring(config: BinderyConfig) -> Optional[LibraryMonitor]:
    """Start filesystem monitoring if enabled in config."""
    if not config.monitoring.enabled:
        return None

    library_path = config.library_path
    if not library_path.exists():
        logger.error(f"Library path does not exist: {library_path}")
        return None

    task_queue: queue.Queue = queue.Queue()
    stop_event = Event()

    worker = Thread(
        target=process_queue,
        args=(task_queue, config, stop_event),
        daemon=True,
        name="BinderyMonitorWorker",
    )
    worker.start()

    event_handler = LibraryEventHandler(task_queue, config.scanner.ignore_patterns)
    observer = Observer()
    observer.schedule(event_handler, str(library_path), recursive=True)
    observer.start()

    return LibraryMonitor(observer, worker, stop_event)
