"""Unit tests for PDF assembly — no network required."""

from __future__ import annotations

import struct
import zlib
from pathlib import Path

import pytest

from pagebinder import assembler
from pagebinder.assembler import assemble_pdf, merge_pdf_bytes, parse_documents
from pagebinder.errors import EmptyInputError, ParseError
from pagebinder.objects import MEDIA_BOX, PAGES, PARENT
from pagebinder.parser import parse
from pagebinder.renderer import render_page


def _create_minimal_png(*, width: int = 100, height: int = 100) -> bytes:
    """Create a minimal valid PNG image for testing."""

    def _chunk(chunk_type: bytes, data: bytes) -> bytes:
        c = chunk_type + data
        crc = struct.pack(">I", zlib.crc32(c) & 0xFFFFFFFF)
        return struct.pack(">I", len(data)) + c + crc

    signature = b"\x89PNG\r\n\x1a\n"
    ihdr_data = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    ihdr = _chunk(b"IHDR", ihdr_data)

    raw_data = b""
    for _ in range(height):
        raw_data += b"\x00" + b"\xff\x00\x00" * width
    idat = _chunk(b"IDAT", zlib.compress(raw_data))
    iend = _chunk(b"IEND", b"")

    return signature + ihdr + idat + iend


def _page_pdf(*, width: int = 100, height: int = 100) -> bytes:
    return render_page(_create_minimal_png(width=width, height=height))


class TestMergePdfBytes:
    def test_single_document_round_trips(self):
        page = _page_pdf()

        merged = merge_pdf_bytes([page])

        assert parse(merged).page_count == 1
        assert merge_pdf_bytes([page]) == merged

    def test_pages_keep_input_order(self):
        sizes = [(96, 96), (48, 96), (96, 48)]

        merged = parse(merge_pdf_bytes([_page_pdf(width=w, height=h) for w, h in sizes]))

        boxes = [
            [round(float(v)) for v in merged.objects[page_id][MEDIA_BOX]]
            for page_id in merged.page_ids()
        ]
        assert boxes == [[0, 0, 72, 72], [0, 0, 36, 72], [0, 0, 72, 36]]

    def test_every_page_points_at_the_root_pages_node(self):
        merged = parse(merge_pdf_bytes([_page_pdf(), _page_pdf(), _page_pdf()]))

        pages_ref = merged.catalog()[PAGES]
        assert {merged.objects[p][PARENT] for p in merged.page_ids()} == {pages_ref}

    def test_empty_input_raises(self):
        with pytest.raises(EmptyInputError):
            merge_pdf_bytes([])

    def test_corrupt_input_reports_index_before_merging(self, monkeypatch):
        def _fail_merge(documents):
            raise AssertionError("merge must not run")

        monkeypatch.setattr(assembler, "merge", _fail_merge)

        with pytest.raises(ParseError) as excinfo:
            merge_pdf_bytes([b"%PDF-1.4\ngarbage", _page_pdf()])

        assert excinfo.value.index == 0

    def test_parse_documents_reports_later_index(self):
        with pytest.raises(ParseError) as excinfo:
            parse_documents([_page_pdf(), _page_pdf(), b"not a pdf"])

        assert excinfo.value.index == 2
        assert "Document #2" in str(excinfo.value)


class TestAssemblePdf:
    def test_single_page(self, tmp_path: Path):
        out = tmp_path / "output.pdf"

        size = assemble_pdf(page_documents=[_page_pdf()], output_path=out)

        assert out.exists()
        assert size == out.stat().st_size
        assert out.read_bytes()[:5] == b"%PDF-"

    def test_multiple_pages(self, tmp_path: Path):
        out = tmp_path / "output.pdf"

        size = assemble_pdf(
            page_documents=[_page_pdf() for _ in range(3)],
            output_path=out,
        )

        assert size > 0
        assert parse(out.read_bytes()).page_count == 3

    def test_creates_parent_directories(self, tmp_path: Path):
        out = tmp_path / "nested" / "deep" / "output.pdf"

        assemble_pdf(page_documents=[_page_pdf()], output_path=out)

        assert out.exists()

    def test_empty_document_list_raises(self, tmp_path: Path):
        out = tmp_path / "output.pdf"

        with pytest.raises(EmptyInputError, match="must not be empty"):
            assemble_pdf(page_documents=[], output_path=out)

        assert not out.exists()
