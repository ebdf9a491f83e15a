"""Render a single image into a single-page PDF document."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass

import img2pdf
from PIL import Image, ImageColor, ImageOps, UnidentifiedImageError

from .errors import LayoutError, PageGenerationError

logger = logging.getLogger(__name__)

# Pixel density assumed when the page is sized after the image.
_SCREEN_DPI = 96.0

PAGE_SIZES_MM: dict[str, tuple[float, float]] = {
    "a3": (297.0, 420.0),
    "a4": (210.0, 297.0),
    "a5": (148.0, 210.0),
    "letter": (215.9, 279.4),
    "legal": (215.9, 355.6),
}

MARGINS_MM: dict[str, float] = {
    "none": 0.0,
    "small": 5.0,
    "medium": 10.0,
    "large": 20.0,
}

ORIENTATIONS = ("auto", "portrait", "landscape")

# Formats img2pdf embeds without re-encoding.
_EMBEDDABLE_FORMATS = {"JPEG", "PNG"}

_EXIF_ORIENTATION_TAG = 0x0112


@dataclass
class PageLayout:
    """How an image is placed on its page.

    ``page_size`` is ``"image"`` (page follows the image at 96 dpi) or one
    of :data:`PAGE_SIZES_MM`.  ``orientation`` only turns the page frame:
    ``"auto"`` follows the image, ``"portrait"``/``"landscape"`` force it.
    ``margin`` is a preset from :data:`MARGINS_MM` or millimetres.  Images
    are scaled to fit inside the margin, keeping their aspect ratio, and
    centred.  Transparent pixels are composited onto ``background``.
    """

    page_size: str = "image"
    orientation: str = "auto"
    margin: str | float = "none"
    background: str = "white"

    def __post_init__(self) -> None:
        self.page_size = self.page_size.lower()
        self.orientation = self.orientation.lower()

        if self.page_size != "image" and self.page_size not in PAGE_SIZES_MM:
            choices = ", ".join(["image", *PAGE_SIZES_MM])
            raise LayoutError(f"Unknown page size {self.page_size!r} (choose from {choices})")
        if self.orientation not in ORIENTATIONS:
            raise LayoutError(
                f"Unknown orientation {self.orientation!r} (choose from {', '.join(ORIENTATIONS)})"
            )
        if self.margin_mm < 0:
            raise LayoutError(f"Margin must not be negative: {self.margin!r}")
        if self.page_size != "image" and 2 * self.margin_mm >= min(PAGE_SIZES_MM[self.page_size]):
            raise LayoutError(f"Margin of {self.margin_mm} mm leaves no room on the page")
        try:
            ImageColor.getrgb(self.background)
        except ValueError:
            raise LayoutError(f"Unknown background colour {self.background!r}") from None

    @property
    def margin_mm(self) -> float:
        if isinstance(self.margin, (int, float)):
            return float(self.margin)
        preset = self.margin.lower()
        if preset in MARGINS_MM:
            return MARGINS_MM[preset]
        try:
            return float(preset)
        except ValueError:
            choices = ", ".join(MARGINS_MM)
            raise LayoutError(
                f"Unknown margin {self.margin!r} (choose from {choices} or a number of mm)"
            ) from None

    def page_size_pt(self, image_size: tuple[int, int]) -> tuple[float, float]:
        """Return the page ``(width, height)`` in points for an image of *image_size* pixels."""
        img_w, img_h = image_size
        if self.page_size == "image":
            border = 2 * img2pdf.mm_to_pt(self.margin_mm)
            width = img_w * 72.0 / _SCREEN_DPI + border
            height = img_h * 72.0 / _SCREEN_DPI + border
        else:
            width_mm, height_mm = PAGE_SIZES_MM[self.page_size]
            width, height = img2pdf.mm_to_pt(width_mm), img2pdf.mm_to_pt(height_mm)

        if self.orientation == "auto":
            landscape = img_w > img_h
        else:
            landscape = self.orientation == "landscape"
        short, long = sorted((width, height))
        return (long, short) if landscape else (short, long)

    def layout_fun(self, image_size: tuple[int, int]):
        page_w, page_h = self.page_size_pt(image_size)
        margin = img2pdf.mm_to_pt(self.margin_mm)
        return img2pdf.get_layout_fun(
            pagesize=(page_w, page_h),
            border=(margin, margin) if margin else None,
            fit=img2pdf.FitMode.into,
        )


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or "transparency" in img.info


def _exif_rotated(img: Image.Image) -> bool:
    return img.getexif().get(_EXIF_ORIENTATION_TAG, 1) != 1


def _flatten(img: Image.Image, background: str) -> Image.Image:
    """Composite *img* onto a solid *background* colour."""
    rgba = img.convert("RGBA")
    canvas = Image.new("RGB", rgba.size, background)
    canvas.paste(rgba, mask=rgba.getchannel("A"))
    return canvas


def _prepare(image: bytes, background: str) -> tuple[bytes, tuple[int, int]]:
    """Return image bytes img2pdf can embed as-is, plus the upright pixel size."""
    with Image.open(io.BytesIO(image)) as img:
        if img.format in _EMBEDDABLE_FORMATS and not _has_alpha(img) and not _exif_rotated(img):
            return image, img.size

        logger.debug("Re-encoding %s image (mode %s) as PNG", img.format, img.mode)
        upright = ImageOps.exif_transpose(img)
        if _has_alpha(upright):
            upright = _flatten(upright, background)
        elif upright.mode not in ("RGB", "L"):
            upright = upright.convert("RGB")

        buffer = io.BytesIO()
        upright.save(buffer, format="PNG")
        return buffer.getvalue(), upright.size


def render_page(image: bytes, layout: PageLayout | None = None, *, index: int = 0) -> bytes:
    """Render one image into a single-page PDF.

    Args:
        image: Encoded image bytes (any format Pillow can open).
        layout: Page geometry; defaults to a page sized after the image.
        index: Position of the image in its batch, used in error reports.

    Returns:
        The PDF document as bytes.

    Raises:
        PageGenerationError: If the image cannot be decoded or rendered.
    """
    layout = layout or PageLayout()

    try:
        data, size = _prepare(image, layout.background)
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise PageGenerationError(index, f"cannot decode image: {exc}") from exc

    layout_fun = layout.layout_fun(size)

    try:
        pdf_bytes = img2pdf.convert(
            data,
            layout_fun=layout_fun,
            engine=img2pdf.Engine.internal,
        )
    except (img2pdf.ImageOpenError, img2pdf.AlphaChannelError, ValueError, OSError) as exc:
        raise PageGenerationError(index, str(exc)) from exc

    logger.debug("Rendered image #%d (%dx%d px) into %d bytes", index + 1, *size, len(pdf_bytes))
    return pdf_bytes
