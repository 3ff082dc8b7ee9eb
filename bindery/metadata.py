"""Bibliographic metadata extracted from one library file.

Metadata is not tied to any catalog identity yet; the mapper turns it into
LibraryItem rows once authors have been resolved.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field


class ItemType(str, Enum):
    BOOK = "book"
    COMIC = "comic"
    MANGA = "manga"


class Metadata(BaseModel):
    """Metadata read from a document (all optional)."""

    model_config = {"extra": "ignore"}

    title: str = ""
    authors: List[str] = Field(default_factory=list)
    publishers: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    subjects: List[str] = Field(default_factory=list)
    description: str = ""
    date: str = ""
    isbn: str = ""
    # Format-level hint (ComicInfo <Manga>); None lets the mapper decide
    item_type: Optional[ItemType] = None


def clean_list(values: Iterable[Optional[str]]) -> List[str]:
    """Strip values and drop empties and repeats, keeping first-seen order."""
    seen: set[str] = set()
    out: List[str] = []
    for value in values:
        if value is None:
            continue
        text = value.strip()
        if text and text not in seen:
            seen.add(text)
            out.append(text)
    return out


def metadata_from_filename(path: Path) -> Metadata:
    """Fallback metadata for files without embedded metadata."""
    return Metadata(title=path.stem.replace("_", " ").strip())
