"""End-to-end tests: image files in, one PDF out — no network required."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest
from PIL import Image

from pagebinder import ConversionResult, convert_images
from pagebinder.cli import _format_size, main
from pagebinder.errors import EmptyInputError, PageGenerationError
from pagebinder.objects import MEDIA_BOX
from pagebinder.parser import parse


def _write_image(path: Path, *, width: int, height: int, mode: str = "RGB") -> Path:
    color = (0, 128, 255, 64) if mode == "RGBA" else "orange"
    Image.new(mode, (width, height), color).save(path)
    return path


def _page_boxes(path: Path) -> list[list[int]]:
    doc = parse(path.read_bytes())
    return [
        [round(float(v)) for v in doc.objects[page_id][MEDIA_BOX]]
        for page_id in doc.page_ids()
    ]


class TestConvertImages:
    @pytest.mark.asyncio
    async def test_one_page_per_image_in_order(self, tmp_path: Path):
        images = [
            _write_image(tmp_path / "1.png", width=96, height=96),
            _write_image(tmp_path / "2.jpg", width=48, height=96),
            _write_image(tmp_path / "3.png", width=96, height=48, mode="RGBA"),
        ]

        result = await convert_images(images, tmp_path / "out")

        assert isinstance(result, ConversionResult)
        assert result.output_path == (tmp_path / "out" / "merged.pdf").resolve()
        assert result.page_count == 3
        assert result.failures == []
        assert result.total_bytes == result.output_path.stat().st_size
        assert _page_boxes(result.output_path) == [
            [0, 0, 72, 72],
            [0, 0, 36, 72],
            [0, 0, 72, 36],
        ]

    @pytest.mark.asyncio
    async def test_broken_image_aborts_by_default(self, tmp_path: Path):
        good = _write_image(tmp_path / "good.png", width=10, height=10)
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"garbage")

        with pytest.raises(PageGenerationError) as excinfo:
            await convert_images([good, bad], tmp_path / "out.pdf")

        assert excinfo.value.index == 1
        assert not (tmp_path / "out.pdf").exists()

    @pytest.mark.asyncio
    async def test_broken_image_skipped_when_partial(self, tmp_path: Path):
        good = _write_image(tmp_path / "good.png", width=10, height=10)
        bad = tmp_path / "bad.png"
        bad.write_bytes(b"garbage")

        result = await convert_images([bad, good], tmp_path / "out.pdf", allow_partial=True)

        assert result.page_count == 1
        assert [failure.index for failure in result.failures] == [0]
        assert len(_page_boxes(result.output_path)) == 1

    @pytest.mark.asyncio
    async def test_no_sources_raises(self, tmp_path: Path):
        with pytest.raises(EmptyInputError):
            await convert_images([], tmp_path / "out.pdf")


class TestCli:
    def test_format_size(self):
        assert _format_size(512) == "512.0 B"
        assert _format_size(2048) == "2.0 KB"

    def test_writes_pdf(self, tmp_path: Path, monkeypatch):
        first = _write_image(tmp_path / "a.png", width=20, height=20)
        second = _write_image(tmp_path / "b.png", width=40, height=20)
        out = tmp_path / "album.pdf"
        monkeypatch.setattr(
            sys,
            "argv",
            ["pagebinder", str(first), str(second), "--output", str(out), "--page-size", "a4"],
        )

        main()

        assert len(_page_boxes(out)) == 2

    def test_error_exits_with_status_one(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(
            sys,
            "argv",
            ["pagebinder", str(tmp_path / "missing.png"), "--output", str(tmp_path / "x.pdf")],
        )

        with pytest.raises(SystemExit) as excinfo:
            main()

        assert excinfo.value.code == 1
