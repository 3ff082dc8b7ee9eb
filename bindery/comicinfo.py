"""ComicInfo.xml parsing for Bindery.

Reads ComicInfo.xml from inside CBZ/CBR archives and maps it to Metadata.
Archives without ComicInfo.xml fall back to filename-derived metadata.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from .archive import get_archive
from .metadata import ItemType, Metadata, clean_list, metadata_from_filename

# ComicInfo tag names (case-insensitive in XML)
TAG_MAP = {
    "title": "title",
    "series": "series",
    "writer": "writer",
    "penciller": "penciller",
    "month": "month",
    "year": "year",
    "summary": "summary",
    "languageiso": "language_iso",
    "genre": "genre",
    "tags": "tags",
    "publisher": "publisher",
    "gtin": "gtin",
    "manga": "manga",
}


class ComicInfoParsed(BaseModel):
    """Metadata parsed from ComicInfo.xml (all optional)."""

    model_config = {"extra": "ignore"}

    title: Optional[str] = None
    series: Optional[str] = None
    publisher: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    writer: Optional[str] = None
    penciller: Optional[str] = None
    summary: Optional[str] = None
    language_iso: Optional[str] = None
    genre: Optional[str] = None
    tags: Optional[str] = None
    gtin: Optional[str] = None
    manga: Optional[str] = None

    @property
    def is_manga(self) -> bool:
        # ComicInfo 2.0: Unknown | No | Yes | YesAndRightToLeft
        return (self.manga or "").lower().startswith("yes")


def _text(elem: Optional[ET.Element]) -> Optional[str]:
    if elem is None or elem.text is None:
        return None
    t = elem.text.strip()
    return t or None


def _int_or_none(s: Optional[str]) -> Optional[int]:
    if s is None:
        return None
    try:
        return int(s.strip())
    except ValueError:
        return None


def _local_name(tag: str) -> str:
    """Return tag without namespace (e.g. '{http://...}Year' -> 'year')."""
    return tag.split("}")[-1].lower() if "}" in tag else tag.lower()


def _split_names(value: Optional[str]) -> list[str]:
    return clean_list((value or "").split(","))


def parse_comicinfo_xml(xml_bytes: bytes) -> ComicInfoParsed:
    """Parse ComicInfo.xml content into a validated Pydantic model."""
    raw: dict[str, object] = {}
    try:
        root = ET.fromstring(xml_bytes)
    except ET.ParseError:
        return ComicInfoParsed()

    by_lower = {_local_name(elem.tag): elem for elem in root}

    for xml_tag_lower, our_key in TAG_MAP.items():
        text = _text(by_lower.get(xml_tag_lower))
        if text is None:
            continue
        if our_key in ("month", "year"):
            val = _int_or_none(text)
            if val is not None:
                raw[our_key] = val
        else:
            raw[our_key] = text

    return ComicInfoParsed.model_validate(raw)


def metadata_from_comicinfo(info: ComicInfoParsed, fallback_title: str) -> Metadata:
    """Map ComicInfo fields to Metadata.

    Writers then pencillers become authors; genre and tags become subjects.
    Without a <Title>, the series name or the fallback title is used.
    """
    date = ""
    if info.year:
        date = f"{info.year:04d}-{info.month:02d}" if info.month else f"{info.year:04d}"

    return Metadata(
        title=info.title or info.series or fallback_title,
        authors=clean_list(_split_names(info.writer) + _split_names(info.penciller)),
        publishers=clean_list([info.publisher]),
        languages=clean_list([info.language_iso]),
        subjects=clean_list(_split_names(info.genre) + _split_names(info.tags)),
        description=info.summary or "",
        date=date,
        isbn=info.gtin or "",
        item_type=ItemType.MANGA if info.is_manga else None,
    )


def read_comicinfo_from_archive(archive_path: Path) -> Optional[ComicInfoParsed]:
    """Read ComicInfo.xml from a comic archive and return the parsed model.

    Returns None when the archive has no (or an empty) ComicInfo.xml.
    Archive errors propagate to the caller.
    """
    with get_archive(archive_path) as archive:
        comicinfo_name = next(
            (n for n in archive.list_names() if Path(n).name.lower() == "comicinfo.xml"),
            None,
        )
        if comicinfo_name is None:
            return None
        raw = archive.read(comicinfo_name)

    if not raw.strip():
        return None
    return parse_comicinfo_xml(raw)


def read_comic_metadata(archive_path: Path) -> Metadata:
    """Return Metadata for a CBZ/CBR file."""
    fallback = metadata_from_filename(archive_path)
    info = read_comicinfo_from_archive(archive_path)
    if info is None:
        return fallback
    return metadata_from_comicinfo(info, fallback.title)
