"""Tests for EPUB container validation and metadata mapping."""

import io
import zipfile

import pytest

from bindery.epub import (
    EpubCreator,
    EpubIdentifier,
    EpubMetadata,
    metadata_from_epub,
    parse_container,
    parse_epub,
    parse_package_xml,
    read_epub_metadata,
)
from bindery.errors import (
    EpubError,
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


def test_parse_valid_epub(tmp_path, make_epub):
    path = make_epub(tmp_path / "dune.epub")
    package = parse_epub(path)

    assert package.version == "2.0"
    assert package.unique_identifier == "BookId"
    assert package.unique_id == "urn:uuid:2b6b7f4e-0000-4000-8000-000000000001"

    md = package.metadata
    assert md.titles == ["Dune"]
    assert md.creators == [EpubCreator(name="Frank Herbert", role="aut")]
    assert md.languages == ["en"]
    assert md.subjects == ["Science Fiction"]
    assert md.publishers == ["Chilton Books"]
    assert md.dates == ["1965-08-01"]
    assert md.description == "Desert planet politics."
    assert any(m.name == "cover" and m.content == "cover-image" for m in md.meta)


def test_parse_epub_from_file_object(tmp_path, make_epub):
    data = make_epub(tmp_path / "dune.epub").read_bytes()
    package = parse_epub(io.BytesIO(data))
    assert package.metadata.titles == ["Dune"]


def test_not_a_zip(tmp_path):
    path = tmp_path / "broken.epub"
    path.write_bytes(b"this is not a zip archive")
    with pytest.raises(InvalidArchiveError):
        parse_epub(path)


def test_missing_container(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", include_container=False)
    with pytest.raises(MissingContainerError):
        parse_epub(path)


def test_malformed_container(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", container="<container><rootfiles>")
    with pytest.raises(MalformedXMLError):
        parse_epub(path)


def test_container_without_rootfile(tmp_path, make_epub):
    container = (
        '<container xmlns="urn:oasis:names:tc:opendocument:xmlns:container">'
        "<rootfiles/></container>"
    )
    path = make_epub(tmp_path / "a.epub", container=container)
    with pytest.raises(MissingRootFileError):
        parse_epub(path)


def test_missing_mimetype(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", mimetype=None)
    with pytest.raises(MissingMimetypeError):
        parse_epub(path)


def test_missing_mimetype_is_a_mimetype_not_first_error(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", mimetype=None)
    with pytest.raises(MimetypeNotFirstError):
        parse_epub(path)


def test_mimetype_not_first(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", mimetype_first=False)
    with pytest.raises(MimetypeNotFirstError) as excinfo:
        parse_epub(path)
    assert not isinstance(excinfo.value, MissingMimetypeError)


def test_wrong_mimetype(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", mimetype=b"application/zip")
    with pytest.raises(InvalidMimetypeError) as excinfo:
        parse_epub(path)
    assert excinfo.value.found == b"application/zip"


def test_mimetype_with_trailing_newline_is_rejected(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", mimetype=b"application/epub+zip\n")
    with pytest.raises(InvalidMimetypeError):
        parse_epub(path)


def test_missing_package(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", include_opf=False)
    with pytest.raises(MissingPackageError) as excinfo:
        parse_epub(path)
    assert excinfo.value.path == "OEBPS/content.opf"


def test_malformed_package(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", opf="<package><metadata>")
    with pytest.raises(MalformedXMLError):
        parse_epub(path)


def test_package_with_wrong_root_element(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", opf="<html><body/></html>")
    with pytest.raises(MalformedPackageError):
        parse_epub(path)


def test_all_structural_errors_share_a_base(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", include_container=False)
    with pytest.raises(EpubError):
        parse_epub(path)


def test_container_is_checked_before_mimetype(tmp_path, make_opf):
    """An archive with neither entry reports the missing container."""
    path = tmp_path / "empty.epub"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("OEBPS/content.opf", make_opf())
    with pytest.raises(MissingContainerError):
        parse_epub(path)


def test_package_at_root_of_archive(tmp_path, make_epub):
    path = make_epub(tmp_path / "a.epub", opf_path="content.opf")
    assert parse_epub(path).metadata.titles == ["Dune"]


def test_parse_container_returns_first_rootfile():
    xml = b"""<container xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="book/package.opf" media-type="application/oebps-package+xml"/>
    <rootfile full-path="alt/other.opf" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""
    assert parse_container(xml) == "book/package.opf"


def test_parse_epub3_package():
    xml = b"""<?xml version="1.0"?>
<package xmlns="http://www.idpf.org/2007/opf" version="3.0" unique-identifier="pub-id">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:identifier id="pub-id">urn:isbn:9780140449136</dc:identifier>
    <dc:title>The Odyssey</dc:title>
    <dc:title>A New Translation</dc:title>
    <dc:creator id="creator01">Homer</dc:creator>
    <meta refines="#creator01" property="role" scheme="marc:relators">aut</meta>
    <dc:contributor>Emily Wilson</dc:contributor>
    <dc:language>en</dc:language>
    <meta property="dcterms:modified">2018-01-01T00:00:00Z</meta>
  </metadata>
</package>"""
    package = parse_package_xml(xml)

    assert package.version == "3.0"
    assert package.unique_id == "urn:isbn:9780140449136"
    assert package.metadata.titles == ["The Odyssey", "A New Translation"]
    assert package.metadata.creators == [EpubCreator(name="Homer", id="creator01")]
    assert package.metadata.contributors[0].name == "Emily Wilson"
    role = next(m for m in package.metadata.meta if m.refines == "#creator01")
    assert role.property == "role"
    assert role.value == "aut"


def test_metadata_from_epub_maps_fields():
    em = EpubMetadata(
        identifiers=[EpubIdentifier(value="9780441013593", scheme="ISBN")],
        titles=["", "Dune"],
        creators=[EpubCreator(name=" Frank Herbert "), EpubCreator(name="Frank Herbert")],
        languages=["en"],
        subjects=["Science Fiction", "Classics"],
        publishers=["Chilton Books"],
        dates=["", "1965"],
        description="Desert planet politics.",
    )
    md = metadata_from_epub(em)

    assert md.title == "Dune"
    assert md.authors == ["Frank Herbert"]
    assert md.languages == ["en"]
    assert md.subjects == ["Science Fiction", "Classics"]
    assert md.publishers == ["Chilton Books"]
    assert md.date == "1965"
    assert md.isbn == "9780441013593"
    assert md.item_type is None


def test_isbn_from_urn_identifier():
    em = EpubMetadata(
        identifiers=[
            EpubIdentifier(value="urn:uuid:1234"),
            EpubIdentifier(value="urn:isbn:9780140449136"),
        ]
    )
    assert metadata_from_epub(em).isbn == "9780140449136"


def test_no_isbn():
    em = EpubMetadata(identifiers=[EpubIdentifier(value="urn:uuid:1234")])
    assert metadata_from_epub(em).isbn == ""


def test_read_epub_metadata(tmp_path, make_epub, make_opf):
    opf = make_opf(title="Emma", creators=["Jane Austen"], isbn=None, subjects=[])
    path = make_epub(tmp_path / "emma.epub", opf=opf)
    md = read_epub_metadata(path)
    assert md.title == "Emma"
    assert md.authors == ["Jane Austen"]
    assert md.subjects == []
    assert md.isbn == ""
