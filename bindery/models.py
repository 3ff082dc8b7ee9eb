"""SQLModel database models for Bindery."""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Column
from sqlmodel import Field, Relationship, SQLModel

from .metadata import ItemType


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class ItemStatus(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"


class LibraryItemAuthorLink(SQLModel, table=True):
    __tablename__ = "library_item_authors"
    item_id: Optional[str] = Field(
        default=None, foreign_key="library_items.id", primary_key=True
    )
    author_id: Optional[str] = Field(
        default=None, foreign_key="authors.id", primary_key=True
    )


class Author(SQLModel, table=True):
    __tablename__ = "authors"
    id: str = Field(default_factory=_new_id, primary_key=True)
    name: str = Field(unique=True, index=True)
    created_at: datetime = Field(default_factory=_utcnow)

    items: List["LibraryItem"] = Relationship(
        back_populates="authors", link_model=LibraryItemAuthorLink
    )


class LibraryItemBase(SQLModel):
    title: str
    item_type: str = ItemType.BOOK.value
    description: str = ""
    path: str = Field(index=True)
    hash: str = Field(index=True)
    status: str = Field(default=ItemStatus.ACTIVE.value, index=True)
    deleted_at: Optional[datetime] = None


class LibraryItem(LibraryItemBase, table=True):
    __tablename__ = "library_items"
    id: str = Field(default_factory=_new_id, primary_key=True)
    subjects: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    languages: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    authors: List[Author] = Relationship(
        back_populates="items", link_model=LibraryItemAuthorLink
    )

    @property
    def is_deleted(self) -> bool:
        return self.status == ItemStatus.DELETED.value

    def mark_deleted(self) -> None:
        """Soft-delete: the row stays, status flips to deleted."""
        now = _utcnow()
        self.status = ItemStatus.DELETED.value
        self.deleted_at = now
        self.updated_at = now

    def update_path(self, path: str) -> None:
        self.path = path
        self.updated_at = _utcnow()


class SnapshotEntry(SQLModel, table=True):
    """One row per file of the last committed library snapshot."""

    __tablename__ = "snapshot_entries"
    path: str = Field(primary_key=True)
    hash: str = Field(index=True)
