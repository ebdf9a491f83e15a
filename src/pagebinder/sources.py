"""Load image bytes from local files and http(s) URLs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from pathlib import Path

import httpx

from .errors import ImageLoadError

logger = logging.getLogger(__name__)

_DEFAULT_CONCURRENCY = 10
_DEFAULT_MAX_RETRIES = 3
_DEFAULT_TIMEOUT = 30.0


def is_url(source: str | Path) -> bool:
    return isinstance(source, str) and source.lower().startswith(("http://", "https://"))


async def _fetch_one(
    client: httpx.AsyncClient,
    index: int,
    url: str,
    semaphore: asyncio.Semaphore,
    *,
    max_retries: int = _DEFAULT_MAX_RETRIES,
    timeout: float = _DEFAULT_TIMEOUT,
) -> tuple[int, bytes | ImageLoadError]:
    """Download a single image with retries.

    Returns:
        ``(index, content)`` on success, or ``(index, error)`` once every
        attempt has failed.
    """
    async with semaphore:
        for attempt in range(1, max_retries + 1):
            try:
                response = await client.get(url, timeout=timeout, follow_redirects=True)
                response.raise_for_status()
                return index, response.content
            except httpx.HTTPError as exc:
                logger.debug("Attempt %d/%d for %s failed: %s", attempt, max_retries, url, exc)
                if attempt == max_retries:
                    return index, ImageLoadError(index, url, str(exc))
                await asyncio.sleep(1.0 * attempt)

    return index, ImageLoadError(index, url, "no download attempts were made")


def _read_one(index: int, source: str | Path) -> bytes:
    try:
        return Path(source).read_bytes()
    except OSError as exc:
        raise ImageLoadError(index, str(source), exc.strerror or str(exc)) from exc


async def load_images(
    sources: Sequence[str | Path],
    *,
    concurrency: int = _DEFAULT_CONCURRENCY,
    max_retries: int = _DEFAULT_MAX_RETRIES,
) -> list[bytes]:
    """Read every source, in order.

    Args:
        sources: File paths or ``http://``/``https://`` URLs.
        concurrency: Maximum number of concurrent downloads.
        max_retries: Number of attempts per download.

    Returns:
        The image bytes, aligned with *sources*.

    Raises:
        ImageLoadError: If any source cannot be read.
    """
    images: list[bytes | None] = [None] * len(sources)
    remote: list[tuple[int, str]] = []

    for index, source in enumerate(sources):
        if is_url(source):
            remote.append((index, str(source)))
        else:
            images[index] = _read_one(index, source)

    if remote:
        semaphore = asyncio.Semaphore(concurrency)
        async with httpx.AsyncClient() as client:
            results = await asyncio.gather(*(
                _fetch_one(
                    client=client,
                    index=index,
                    url=url,
                    semaphore=semaphore,
                    max_retries=max_retries,
                )
                for index, url in remote
            ))

        failures = [outcome for _, outcome in results if isinstance(outcome, ImageLoadError)]
        if failures:
            raise failures[0]
        for index, content in results:
            logger.debug("Downloaded image #%d (%d bytes)", index + 1, len(content))
            images[index] = content

    return [image for image in images if image is not None]
