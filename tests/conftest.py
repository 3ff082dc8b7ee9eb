"""Shared fixtures: EPUB builder and a throwaway SQLite catalog."""

import zipfile
from pathlib import Path
from typing import Optional, Sequence

import pytest
from sqlmodel import create_engine

from bindery.config import BinderyConfig, LibraryConfig, MonitoringConfig, ScannerConfig
from bindery.database import init_db

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""


def build_opf(
    title: str = "Dune",
    creators: Sequence[str] = ("Frank Herbert",),
    isbn: Optional[str] = "9780441013593",
    description: str = "Desert planet politics.",
    subjects: Sequence[str] = ("Science Fiction",),
    languages: Sequence[str] = ("en",),
) -> str:
    creator_xml = "\n".join(
        f'    <dc:creator opf:role="aut">{name}</dc:creator>' for name in creators
    )
    subject_xml = "\n".join(f"    <dc:subject>{s}</dc:subject>" for s in subjects)
    language_xml = "\n".join(f"    <dc:language>{lang}</dc:language>" for lang in languages)
    isbn_xml = (
        f'    <dc:identifier opf:scheme="ISBN">{isbn}</dc:identifier>' if isbn else ""
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="BookId">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
    <dc:identifier id="BookId">urn:uuid:2b6b7f4e-0000-4000-8000-000000000001</dc:identifier>
{isbn_xml}
    <dc:title>{title}</dc:title>
{creator_xml}
{language_xml}
{subject_xml}
    <dc:publisher>Chilton Books</dc:publisher>
    <dc:date>1965-08-01</dc:date>
    <dc:description>{description}</dc:description>
    <meta name="cover" content="cover-image"/>
  </metadata>
  <manifest/>
  <spine/>
</package>"""


def write_epub(
    path: Path,
    *,
    opf: Optional[str] = None,
    opf_path: str = "OEBPS/content.opf",
    container: Optional[str] = None,
    mimetype: Optional[bytes] = b"application/epub+zip",
    mimetype_first: bool = True,
    include_container: bool = True,
    include_opf: bool = True,
) -> Path:
    """Write a small EPUB; flags break individual structural rules."""
    opf = opf if opf is not None else build_opf()
    container = container if container is not None else CONTAINER_XML.format(opf_path=opf_path)

    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        if mimetype is not None and mimetype_first:
            zf.writestr("mimetype", mimetype, compress_type=zipfile.ZIP_STORED)
        if include_container:
            zf.writestr("META-INF/container.xml", container)
        if mimetype is not None and not mimetype_first:
            zf.writestr("mimetype", mimetype, compress_type=zipfile.ZIP_STORED)
        if include_opf:
            zf.writestr(opf_path, opf)
        zf.writestr("OEBPS/chapter1.xhtml", f"<html><body>{path.name}</body></html>")
    return path


@pytest.fixture
def make_epub():
    """Factory fixture: make_epub(path, **flags) -> path."""
    return write_epub


@pytest.fixture
def make_opf():
    return build_opf


@pytest.fixture
def db_engine(tmp_path, monkeypatch):
    """Point the module-level engine at a fresh SQLite file."""
    db_file = tmp_path / "library.db"
    monkeypatch.setattr("bindery.database.DB_PATH", db_file, raising=True)

    engine = create_engine(f"sqlite:///{db_file}", connect_args={"check_same_thread": False})
    monkeypatch.setattr("bindery.database.engine", engine, raising=True)

    init_db()
    yield engine
    engine.dispose()


@pytest.fixture
def library(tmp_path):
    lib = tmp_path / "library"
    lib.mkdir()
    return lib


@pytest.fixture
def config(library):
    return BinderyConfig(
        library=LibraryConfig(path=library, name="Test Library"),
        scanner=ScannerConfig(workers=2),
        monitoring=MonitoringConfig(enabled=False, debounce_seconds=0),
    )
