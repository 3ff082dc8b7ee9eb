"""Data Access Layer for Bindery.

Encapsulates database operations using SQLModel/SQLAlchemy. Callers control
when to commit; every write method only flushes.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional

from sqlalchemy.orm import selectinload
from sqlmodel import Session, col, func, select

from .models import Author, ItemStatus, LibraryItem, SnapshotEntry


class Repository:
    """Snapshot, author and library item storage on one session."""

    def __init__(self, session: Session):
        self.session = session

    # --- Snapshot ---

    def get_library_snapshot(self) -> Dict[str, str]:
        """Return the last committed snapshot (empty on first run)."""
        rows = self.session.exec(select(SnapshotEntry)).all()
        return {row.path: row.hash for row in rows}

    def replace_snapshot(self, snapshot: Mapping[str, str]) -> None:
        """Replace the stored snapshot wholesale.

        Only rows that differ are touched, so the result equals ``snapshot``
        exactly without rewriting a large unchanged table.
        """
        rows = {row.path: row for row in self.session.exec(select(SnapshotEntry)).all()}

        for path, row in rows.items():
            if path not in snapshot:
                self.session.delete(row)
            elif row.hash != snapshot[path]:
                row.hash = snapshot[path]
                self.session.add(row)

        for path, digest in snapshot.items():
            if path not in rows:
                self.session.add(SnapshotEntry(path=path, hash=digest))

        self.session.flush()

    # --- Authors ---

    def get_or_create_authors(self, names: Iterable[str]) -> List[Author]:
        """Return one Author per unique name, creating missing ones."""
        unique = sorted(set(names))
        if not unique:
            return []

        statement = select(Author).where(col(Author.name).in_(unique))
        existing = {a.name: a for a in self.session.exec(statement).all()}

        for name in unique:
            if name not in existing:
                author = Author(name=name)
                self.session.add(author)
                existing[name] = author

        self.session.flush()
        return [existing[name] for name in unique]

    # --- Library items ---

    def create_library_items(self, items: Iterable[LibraryItem]) -> None:
        self.session.add_all(list(items))
        self.session.flush()

    def get_library_items_by_hash(self, hashes: Iterable[str]) -> List[LibraryItem]:
        """Return active items whose content hash is in ``hashes``."""
        unique = sorted(set(hashes))
        if not unique:
            return []
        statement = (
            select(LibraryItem)
            .where(col(LibraryItem.hash).in_(unique))
            .where(LibraryItem.status == ItemStatus.ACTIVE.value)
            .options(selectinload(LibraryItem.authors))
        )
        return list(self.session.exec(statement).all())

    def update_library_items(self, items: Iterable[LibraryItem]) -> None:
        for item in items:
            self.session.add(item)
        self.session.flush()

    # --- Read Methods (used by main) ---

    def get_item_by_path(self, path: str) -> Optional[LibraryItem]:
        statement = (
            select(LibraryItem)
            .where(LibraryItem.path == path)
            .where(LibraryItem.status == ItemStatus.ACTIVE.value)
            .options(selectinload(LibraryItem.authors))
        )
        return self.session.exec(statement).first()

    def get_all_items(self, include_deleted: bool = False) -> List[LibraryItem]:
        statement = select(LibraryItem)
        if not include_deleted:
            statement = statement.where(LibraryItem.status == ItemStatus.ACTIVE.value)
        return list(self.session.exec(statement.order_by(LibraryItem.path)).all())

    def count_authors(self) -> int:
        return self.session.exec(select(func.count()).select_from(Author)).one()
