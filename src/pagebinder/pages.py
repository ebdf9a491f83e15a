"""Render many images into single-page PDFs in parallel."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from .errors import EmptyInputError, PageGenerationError
from .renderer import PageLayout, render_page

logger = logging.getLogger(__name__)

_DEFAULT_CONCURRENCY = 4


@dataclass
class RenderResult:
    """Outcome of rendering a batch of images."""

    documents: list[bytes] = field(default_factory=list)
    failures: list[PageGenerationError] = field(default_factory=list)

    @property
    def successes(self) -> int:
        return len(self.documents)


async def _render_one(
    index: int,
    image: bytes,
    layout: PageLayout,
    semaphore: asyncio.Semaphore,
) -> tuple[int, bytes | PageGenerationError]:
    """Render one image in a worker thread.

    Returns:
        ``(index, pdf_bytes)`` on success, or ``(index, error)`` on failure.
    """
    async with semaphore:
        try:
            pdf_bytes = await asyncio.to_thread(render_page, image, layout, index=index)
        except PageGenerationError as exc:
            return index, exc
    return index, pdf_bytes


async def render_pages(
    images: Sequence[bytes],
    layout: PageLayout | None = None,
    *,
    concurrency: int = _DEFAULT_CONCURRENCY,
    allow_partial: bool = False,
    on_page_done: Callable[[], None] | None = None,
) -> RenderResult:
    """Render every image into its own single-page PDF.

    Tasks finish in any order; the documents in the result are always in
    the order of *images*.

    Args:
        images: Encoded images, one page each.
        layout: Page geometry shared by every page.
        concurrency: Maximum number of pages rendered at once.
        allow_partial: Drop pages that fail to render instead of raising.
        on_page_done: Called once per finished page, successful or not.

    Returns:
        A :class:`RenderResult` with the ordered documents and any failures.

    Raises:
        EmptyInputError: If *images* is empty.
        PageGenerationError: For the first failed image (by index), unless
            *allow_partial* is set.
    """
    if not images:
        raise EmptyInputError("No images to render")

    layout = layout or PageLayout()
    semaphore = asyncio.Semaphore(concurrency)
    tasks = [
        _render_one(index=index, image=image, layout=layout, semaphore=semaphore)
        for index, image in enumerate(images)
    ]

    outcomes: list[tuple[int, bytes | PageGenerationError]] = []
    for finished in asyncio.as_completed(tasks):
        outcomes.append(await finished)
        if on_page_done is not None:
            on_page_done()

    outcomes.sort(key=lambda outcome: outcome[0])

    result = RenderResult()
    for index, outcome in outcomes:
        if isinstance(outcome, PageGenerationError):
            logger.warning("Image #%d failed: %s", index + 1, outcome.reason)
            result.failures.append(outcome)
        else:
            result.documents.append(outcome)

    if result.failures and not allow_partial:
        raise result.failures[0]
    if not result.documents:
        raise EmptyInputError("No pages could be generated")

    return result
