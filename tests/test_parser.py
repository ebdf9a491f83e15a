"""Unit tests for reading PDF files into the object model."""

from __future__ import annotations

import io
from decimal import Decimal

import pikepdf
import pytest

from pagebinder.errors import ParseError
from pagebinder.objects import INFO, MEDIA_BOX, ROOT, Name, Reference, Stream, String
from pagebinder.parser import parse


def _sample_pdf(*, pages: int = 1, object_streams: bool = False, **save_options) -> bytes:
    """Write a small document with pikepdf; page *n* is ``(100 + n) x 200`` points."""
    pdf = pikepdf.Pdf.new()
    for n in range(pages):
        pdf.add_blank_page(page_size=(100 + n, 200))
    pdf.pages[0].obj.Contents = pdf.make_stream(b"BT (hi) ET")
    pdf.docinfo["/Title"] = "Sample"

    mode = pikepdf.ObjectStreamMode.generate if object_streams else pikepdf.ObjectStreamMode.disable
    buffer = io.BytesIO()
    pdf.save(buffer, object_stream_mode=mode, compress_streams=False, **save_options)
    return buffer.getvalue()


class TestParseDocument:
    def test_reads_version_and_trailer(self):
        doc = parse(_sample_pdf())

        assert doc.version == "1.3"
        assert isinstance(doc.trailer[ROOT], Reference)
        assert doc.resolve(doc.trailer[INFO]) == {Name("Title"): String(b"Sample")}

    def test_page_enumeration(self):
        doc = parse(_sample_pdf(pages=3))

        assert doc.page_count == 3
        assert [doc.objects[page_id][MEDIA_BOX] for page_id in doc.page_ids()] == [
            [0, 0, 100, 200],
            [0, 0, 101, 200],
            [0, 0, 102, 200],
        ]

    def test_stream_payload_is_kept_raw(self):
        doc = parse(_sample_pdf())
        page = doc.objects[doc.page_ids()[0]]

        content = doc.resolve(page[Name("Contents")])

        assert isinstance(content, Stream)
        assert content.data == b"BT (hi) ET"
        assert Name("Length") not in content.dictionary

    def test_object_streams_are_unpacked(self):
        data = _sample_pdf(pages=2, object_streams=True)

        doc = parse(data)

        assert doc.version >= "1.5"
        assert doc.page_count == 2
        structural = [
            obj for obj in doc.objects.values()
            if isinstance(obj, Stream) and obj.dictionary.get(Name("Type")) in (Name("ObjStm"), Name("XRef"))
        ]
        assert structural == []


class TestParseValues:
    def _catalog_value(self, value):
        pdf = pikepdf.Pdf.new()
        pdf.add_blank_page()
        pdf.Root.Extra = value
        buffer = io.BytesIO()
        pdf.save(buffer)
        doc = parse(buffer.getvalue())
        return doc, doc.catalog()[Name("Extra")]

    def test_scalars(self):
        _, value = self._catalog_value(
            pikepdf.Array([1, -2, Decimal("0.5"), True, False, pikepdf.Name.Foo, pikepdf.String("hi")])
        )

        assert value == [1, -2, 0.5, True, False, Name("Foo"), String(b"hi")]
        assert isinstance(value[2], float)
        assert type(value[3]) is bool

    def test_nested_dictionary_with_reference(self):
        pdf = pikepdf.Pdf.new()
        pdf.add_blank_page()
        pdf.Root.Extra = pikepdf.Dictionary(First=pdf.pages[0].obj, Nested=pikepdf.Dictionary(Kind=pikepdf.Name.Box))
        buffer = io.BytesIO()
        pdf.save(buffer)

        doc = parse(buffer.getvalue())

        extra = doc.catalog()[Name("Extra")]
        assert extra[Name("First")] == Reference(doc.page_ids()[0])
        assert extra[Name("Nested")] == {Name("Kind"): Name("Box")}

    def test_binary_strings(self):
        _, value = self._catalog_value(pikepdf.String(b"\x00\xff(\\)"))

        assert value == String(b"\x00\xff(\\)")


class TestParseErrors:
    def test_not_a_pdf(self):
        with pytest.raises(ParseError):
            parse(b"not a pdf")

    def test_encrypted_documents_are_rejected(self):
        data = _sample_pdf(encryption=pikepdf.Encryption(owner="owner", user=""))

        with pytest.raises(ParseError, match="Encrypted"):
            parse(data)

    def test_password_protected_documents_are_rejected(self):
        data = _sample_pdf(encryption=pikepdf.Encryption(owner="owner", user="secret"))

        with pytest.raises(ParseError, match="Encrypted"):
            parse(data)
