"""EPUB container parsing for Bindery.

An EPUB is a zip archive holding:
- `mimetype`, stored first, containing exactly `application/epub+zip`
- `META-INF/container.xml`, which points at the package document (OPF)
- the OPF package document, whose <metadata> block carries Dublin Core fields

parse_epub() validates that structure step by step and raises a distinct
EpubError subclass for each broken invariant.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
import zipfile
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from pydantic import BaseModel, Field

from .errors import (
    InvalidArchiveError,
    InvalidMimetypeError,
    MalformedPackageError,
    MalformedXMLError,
    MimetypeNotFirstError,
    MissingContainerError,
    MissingMimetypeError,
    MissingPackageError,
    MissingRootFileError,
)
from .metadata import Metadata, clean_list

CONTAINER_PATH = "META-INF/container.xml"
MIMETYPE_PATH = "mimetype"
EPUB_MIMETYPE = b"application/epub+zip"

OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"


class EpubIdentifier(BaseModel):
    value: str = ""
    scheme: str = ""
    id: str = ""


class EpubCreator(BaseModel):
    name: str = ""
    id: str = ""
    role: str = ""  # EPUB 2 opf:role; EPUB 3 uses refining <meta> instead


class MetaProperty(BaseModel):
    """EPUB 3 <meta property=...> or EPUB 2 <meta name=... content=...>."""

    property: str = ""
    refines: str = ""
    id: str = ""
    value: str = ""
    name: str = ""
    content: str = ""


class EpubMetadata(BaseModel):
    identifiers: List[EpubIdentifier] = Field(default_factory=list)
    titles: List[str] = Field(default_factory=list)
    languages: List[str] = Field(default_factory=list)
    creators: List[EpubCreator] = Field(default_factory=list)
    contributors: List[EpubCreator] = Field(default_factory=list)
    publishers: List[str] = Field(default_factory=list)
    subjects: List[str] = Field(default_factory=list)
    description: str = ""
    dates: List[str] = Field(default_factory=list)
    rights: str = ""
    meta: List[MetaProperty] = Field(default_factory=list)


class EpubPackage(BaseModel):
    version: str = ""
    unique_identifier: str = ""
    metadata: EpubMetadata = Field(default_factory=EpubMetadata)

    @property
    def unique_id(self) -> Optional[str]:
        """Value of the identifier referenced by the unique-identifier attribute."""
        for ident in self.metadata.identifiers:
            if ident.id and ident.id == self.unique_identifier:
                return ident.value
        return None


def _local_name(tag: str) -> str:
    """Return tag without namespace (e.g. '{http://...}title' -> 'title')."""
    return tag.split("}")[-1] if "}" in tag else tag


def _text(elem: ET.Element) -> str:
    return "".join(elem.itertext()).strip()


def _attr(elem: ET.Element, name: str) -> str:
    """Read an attribute by local name, with or without the OPF namespace."""
    value = elem.get(name)
    if value is None:
        value = elem.get(f"{{{OPF_NS}}}{name}")
    return (value or "").strip()


def _parse_xml(data: bytes, what: str) -> ET.Element:
    try:
        return ET.fromstring(data)
    except ET.ParseError as exc:
        raise MalformedXMLError(f"malformed {what}: {exc}") from exc


def parse_container(xml_bytes: bytes) -> str:
    """Return the package document path declared by container.xml."""
    root = _parse_xml(xml_bytes, "container descriptor")
    for elem in root.iter():
        if _local_name(elem.tag) != "rootfile":
            continue
        full_path = (elem.get("full-path") or "").strip()
        if full_path:
            return full_path
    raise MissingRootFileError()


def _creator(elem: ET.Element) -> EpubCreator:
    return EpubCreator(name=_text(elem), id=_attr(elem, "id"), role=_attr(elem, "role"))


def parse_package_xml(xml_bytes: bytes) -> EpubPackage:
    """Parse an OPF package document into an EpubPackage."""
    root = _parse_xml(xml_bytes, "package descriptor")
    if _local_name(root.tag) != "package":
        raise MalformedPackageError(
            f"expected <package> root element, found <{_local_name(root.tag)}>"
        )

    md = EpubMetadata()
    block = next(
        (child for child in root if _local_name(child.tag) == "metadata"), None
    )
    if block is not None:
        # EPUB 2 sometimes nests Dublin Core fields in <dc-metadata>
        for elem in block.iter():
            tag = elem.tag
            if tag.startswith(f"{{{DC_NS}}}"):
                name = _local_name(tag)
                if name == "identifier":
                    md.identifiers.append(
                        EpubIdentifier(
                            value=_text(elem),
                            scheme=_attr(elem, "scheme"),
                            id=_attr(elem, "id"),
                        )
                    )
                elif name == "title":
                    md.titles.append(_text(elem))
                elif name == "language":
                    md.languages.append(_text(elem))
                elif name == "creator":
                    md.creators.append(_creator(elem))
                elif name == "contributor":
                    md.contributors.append(_creator(elem))
                elif name == "publisher":
                    md.publishers.append(_text(elem))
                elif name == "subject":
                    md.subjects.append(_text(elem))
                elif name == "date":
                    md.dates.append(_text(elem))
                elif name == "description" and not md.description:
                    md.description = _text(elem)
                elif name == "rights" and not md.rights:
                    md.rights = _text(elem)
            elif _local_name(tag) == "meta":
                md.meta.append(
                    MetaProperty(
                        property=elem.get("property", ""),
                        refines=elem.get("refines", ""),
                        id=elem.get("id", ""),
                        value=_text(elem),
                        name=elem.get("name", ""),
                        content=elem.get("content", ""),
                    )
                )

    return EpubPackage(
        version=root.get("version", ""),
        unique_identifier=root.get("unique-identifier", ""),
        metadata=md,
    )


def _first_stored(zf: zipfile.ZipFile) -> Optional[zipfile.ZipInfo]:
    infos = zf.infolist()
    if not infos:
        return None
    return min(infos, key=lambda info: info.header_offset)


def parse_epub(source: Union[str, Path, BinaryIO]) -> EpubPackage:
    """Open an EPUB (path or seekable binary file) and parse its package document.

    Validation order:
    1. container.xml present            -> MissingContainerError
    2. container names a package path   -> MissingRootFileError
    3. mimetype present, stored first,  -> MissingMimetypeError / MimetypeNotFirstError
       with the expected content        -> InvalidMimetypeError
    4. package document present         -> MissingPackageError
    5. package document parses          -> MalformedXMLError / MalformedPackageError
    """
    try:
        zf = zipfile.ZipFile(source, mode="r")
    except zipfile.BadZipFile as exc:
        raise InvalidArchiveError(f"not a zip archive: {exc}") from exc

    with zf:
        names = set(zf.namelist())

        if CONTAINER_PATH not in names:
            raise MissingContainerError()
        package_path = parse_container(zf.read(CONTAINER_PATH))

        if MIMETYPE_PATH not in names:
            raise MissingMimetypeError()
        first = _first_stored(zf)
        if first is None or first.filename != MIMETYPE_PATH:
            raise MimetypeNotFirstError()
        mimetype = zf.read(MIMETYPE_PATH)
        if mimetype != EPUB_MIMETYPE:
            raise InvalidMimetypeError(mimetype)

        if package_path not in names:
            raise MissingPackageError(package_path)
        return parse_package_xml(zf.read(package_path))


def _isbn(identifiers: List[EpubIdentifier]) -> str:
    for ident in identifiers:
        if ident.scheme.upper() == "ISBN" and ident.value:
            return ident.value
    for ident in identifiers:
        if ident.value.lower().startswith("urn:isbn:"):
            return ident.value[len("urn:isbn:"):]
    return ""


def metadata_from_epub(em: EpubMetadata) -> Metadata:
    """Map parsed EPUB metadata to a Metadata record.

    The first non-empty title and date win; creators become authors.
    """
    return Metadata(
        title=next((t for t in em.titles if t), ""),
        date=next((d for d in em.dates if d), ""),
        authors=clean_list(c.name for c in em.creators),
        publishers=clean_list(em.publishers),
        languages=clean_list(em.languages),
        subjects=clean_list(em.subjects),
        description=em.description,
        isbn=_isbn(em.identifiers),
    )


def read_epub_metadata(path: Path) -> Metadata:
    """Parse an EPUB file and return its Metadata."""
    package = parse_epub(path)
    return metadata_from_epub(package.metadata)
