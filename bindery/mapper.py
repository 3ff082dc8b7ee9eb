"""Turn extracted Metadata into catalog entities.

Candidates are validated through LibraryItemDraft. A candidate that fails
validation is skipped on its own; the rest of the batch still goes through.
"""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Mapping, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from .logging_config import get_logger
from .metadata import ItemType, Metadata, clean_list
from .models import Author, LibraryItem
from .path_utils import top_level_folder
from .snapshot import FileInfo

logger = get_logger(__name__)

MIN_TITLE_LEN = 2
MAX_TITLE_LEN = 150
MIN_DESCRIPTION_LEN = 2
MAX_DESCRIPTION_LEN = 2000
MIN_AUTHOR_NAME_LEN = 2
MAX_AUTHOR_NAME_LEN = 100

COMIC_SUFFIXES = {".cbz", ".cbr"}
MANGA_FOLDERS = {"manga"}
COMIC_FOLDERS = {"comic", "comics"}


class LibraryItemDraft(BaseModel):
    """Validated field set for a new LibraryItem."""

    title: str = Field(min_length=MIN_TITLE_LEN, max_length=MAX_TITLE_LEN)
    item_type: ItemType
    author_ids: List[str] = Field(min_length=1)
    subjects: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    description: str = ""
    path: str = Field(min_length=1)
    hash: str = Field(min_length=1)

    @field_validator("title", mode="before")
    @classmethod
    def _strip_title(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value

    @field_validator("description")
    @classmethod
    def _description_length(cls, value: str) -> str:
        # Empty is allowed; otherwise the usual bounds apply
        value = value.strip()
        if value and not (MIN_DESCRIPTION_LEN <= len(value) <= MAX_DESCRIPTION_LEN):
            raise ValueError(
                f"description must be {MIN_DESCRIPTION_LEN}-{MAX_DESCRIPTION_LEN} characters"
            )
        return value


def is_valid_author_name(name: str) -> bool:
    return MIN_AUTHOR_NAME_LEN <= len(name) <= MAX_AUTHOR_NAME_LEN


def collect_author_names(metadata: Iterable[Metadata]) -> List[str]:
    """Unique author names across a whole pass, sorted."""
    names: set[str] = set()
    for md in metadata:
        names.update(n for n in clean_list(md.authors) if is_valid_author_name(n))
    return sorted(names)


def guess_item_type(path: str, metadata: Metadata) -> ItemType:
    """Decide book/comic/manga for a library file.

    Order: explicit metadata hint, top-level folder name, file extension.
    """
    if metadata.item_type is not None:
        return metadata.item_type
    folder = (top_level_folder(path) or "").lower()
    if folder in MANGA_FOLDERS:
        return ItemType.MANGA
    if folder in COMIC_FOLDERS:
        return ItemType.COMIC
    if PurePosixPath(path).suffix.lower() in COMIC_SUFFIXES:
        return ItemType.COMIC
    return ItemType.BOOK


def _short_errors(exc: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
    )


def build_library_items(
    added: Iterable[FileInfo],
    metadata_by_path: Mapping[str, Metadata],
    authors_by_name: Mapping[str, Author],
) -> Tuple[List[LibraryItem], List[str]]:
    """Build LibraryItems for added files.

    Returns (items, skipped_paths). A path is skipped when it has no
    metadata or its candidate fails validation.
    """
    items: List[LibraryItem] = []
    skipped: List[str] = []

    for info in sorted(added, key=lambda f: f.path):
        md = metadata_by_path.get(info.path)
        if md is None:
            logger.warning(f"✗ {info.path} - no metadata extracted, skipping")
            skipped.append(info.path)
            continue

        authors: Dict[str, Author] = {}
        for name in clean_list(md.authors):
            author = authors_by_name.get(name)
            if author is not None:
                authors.setdefault(author.id, author)

        try:
            draft = LibraryItemDraft(
                title=md.title,
                item_type=guess_item_type(info.path, md),
                author_ids=list(authors),
                subjects=clean_list(md.subjects),
                languages=clean_list(md.languages),
                description=md.description,
                path=info.path,
                hash=info.hash,
            )
        except ValidationError as exc:
            logger.warning(f"✗ {info.path} - skipping item: {_short_errors(exc)}")
            skipped.append(info.path)
            continue

        item = LibraryItem(
            title=draft.title,
            item_type=draft.item_type.value,
            subjects=draft.subjects,
            languages=draft.languages,
            description=draft.description,
            path=draft.path,
            hash=draft.hash,
        )
        item.authors = list(authors.values())
        items.append(item)

    return items, skipped
