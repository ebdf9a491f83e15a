"""pagebinder: Bind a set of images into a single multi-page PDF."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .assembler import assemble_pdf, merge_pdf_bytes
from .errors import (
    DanglingReferenceError,
    EmptyInputError,
    ImageLoadError,
    LayoutError,
    PageBinderError,
    PageGenerationError,
    ParseError,
    SerializationError,
)
from .merge import merge
from .objects import Document
from .pages import RenderResult, render_pages
from .parser import parse
from .renderer import PageLayout, render_page
from .sources import load_images
from .writer import serialize

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ConversionResult",
    "DanglingReferenceError",
    "Document",
    "EmptyInputError",
    "ImageLoadError",
    "LayoutError",
    "PageBinderError",
    "PageGenerationError",
    "PageLayout",
    "ParseError",
    "RenderResult",
    "SerializationError",
    "assemble_pdf",
    "convert_images",
    "load_images",
    "merge",
    "merge_pdf_bytes",
    "parse",
    "render_page",
    "render_pages",
    "serialize",
]

DEFAULT_FILENAME = "merged.pdf"


@dataclass
class ConversionResult:
    """Result of converting a batch of images into one PDF."""

    image_count: int
    page_count: int
    failures: list[PageGenerationError]
    total_bytes: int
    output_path: Path


def _resolve_pdf_path(*, output: Path | str | None) -> Path:
    """Resolve the output PDF file path.

    Rules:
        - ``None`` → ``{cwd}/merged.pdf``
        - Ends in ``.pdf`` → treated as literal file path
        - Otherwise → treated as directory: ``{path}/merged.pdf``
    """
    if output is None:
        return Path(DEFAULT_FILENAME).resolve()

    output = Path(output)
    if output.suffix.lower() == ".pdf":
        return output.resolve()

    return (output / DEFAULT_FILENAME).resolve()


async def convert_images(
    sources: Sequence[str | Path],
    output: Path | str | None = None,
    *,
    layout: PageLayout | None = None,
    concurrency: int = 4,
    allow_partial: bool = False,
    on_page_done: Callable[[], None] | None = None,
) -> ConversionResult:
    """Convert images into a single PDF with one page per image.

    Pages follow the order of *sources*, whatever order the pages finish
    rendering in.

    Args:
        sources: Image file paths or ``http(s)://`` URLs.
        output: Output path: omit for ``merged.pdf`` in the CWD, pass a
            ``.pdf`` path to use it literally, or pass a directory to save
            ``merged.pdf`` inside it.
        layout: Page size, orientation, margin and background colour.
        concurrency: Maximum number of pages rendered at once.
        allow_partial: Skip images that fail to render instead of failing.
        on_page_done: Called once per rendered page.

    Returns:
        A :class:`ConversionResult` summarizing the outcome.

    Raises:
        EmptyInputError: If *sources* is empty.
        ImageLoadError: If a source cannot be read or downloaded.
        PageGenerationError: If an image cannot be rendered and
            *allow_partial* is false.

    Example::

        import asyncio
        from pagebinder import convert_images

        result = asyncio.run(convert_images(["a.png", "b.jpg"], "album.pdf"))
        print(f"Saved {result.page_count} pages to {result.output_path}")
    """
    if not sources:
        raise EmptyInputError("No images provided")

    pdf_path = _resolve_pdf_path(output=output)
    images = await load_images(sources)

    rendered = await render_pages(
        images,
        layout,
        concurrency=concurrency,
        allow_partial=allow_partial,
        on_page_done=on_page_done,
    )

    pdf_size = assemble_pdf(
        page_documents=rendered.documents,
        output_path=pdf_path,
    )

    return ConversionResult(
        image_count=len(sources),
        page_count=rendered.successes,
        failures=rendered.failures,
        total_bytes=pdf_size,
        output_path=pdf_path,
    )
