"""Library snapshots and the snapshot differ.

A snapshot maps every file path (relative, slash-separated) to the SHA-256
hex digest of its bytes. Comparing two snapshots classifies files as added,
removed or moved. The content hash is the only identity signal, so a rename
keeps its catalog entry while a delete followed by a new file does not.

Known limitations:
- content changed at an unchanged path is not reported
- with duplicate content the smallest old path (sorted) pairs with the
  smallest new path; further copies of that content are not reported
- a new copy of content that was already in the old snapshot is not
  reported as added
"""

from __future__ import annotations

import dataclasses
from typing import Dict, Mapping, Optional

Snapshot = Mapping[str, str]


@dataclasses.dataclass(frozen=True)
class FileInfo:
    hash: str
    path: str
    new_path: Optional[str] = None


@dataclasses.dataclass
class DiffResult:
    """Changes between two snapshots, each collection keyed by content hash."""

    added: Dict[str, FileInfo] = dataclasses.field(default_factory=dict)
    removed: Dict[str, FileInfo] = dataclasses.field(default_factory=dict)
    moved: Dict[str, FileInfo] = dataclasses.field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.moved)

    def added_paths(self) -> list[str]:
        return sorted(info.path for info in self.added.values())


def compare_snapshots(old: Snapshot, new: Snapshot) -> DiffResult:
    """Compare two snapshots. Pure and deterministic."""
    result = DiffResult()
    seen = set(old.values())

    for path in sorted(old):
        if path in new:
            continue
        digest = old[path]
        if digest not in result.removed:
            result.removed[digest] = FileInfo(hash=digest, path=path)

    for path in sorted(new):
        if path in old:
            continue
        digest = new[path]
        gone = result.removed.pop(digest, None)
        if gone is not None:
            result.moved[digest] = dataclasses.replace(gone, new_path=path)
        elif digest not in seen and digest not in result.added:
            result.added[digest] = FileInfo(hash=digest, path=path)

    return result
