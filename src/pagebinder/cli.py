"""Command-line interface for pagebinder."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TimeRemainingColumn,
)

from . import _resolve_pdf_path
from .assembler import assemble_pdf
from .errors import PageBinderError
from .pages import RenderResult, render_pages
from .renderer import ORIENTATIONS, PAGE_SIZES_MM, PageLayout
from .sources import load_images


def _format_size(num_bytes: int) -> str:
    """Format a byte count as a human-readable string."""
    value = float(num_bytes)
    for unit in ("B", "KB", "MB", "GB"):
        if abs(value) < 1024:
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} TB"


def configure_logging(*, level: int, console: Console) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pagebinder",
        description="Convert images into a single PDF with one page per image.",
    )
    parser.add_argument(
        "sources",
        nargs="+",
        help="Image files or http(s) URLs, in page order",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help=(
            "Output path: a .pdf file path, a directory, or omit for"
            " merged.pdf in CWD."
        ),
    )
    parser.add_argument(
        "--page-size",
        choices=["image", *PAGE_SIZES_MM],
        default="image",
        help="Page size; 'image' sizes each page after its image (default: image)",
    )
    parser.add_argument(
        "--orientation",
        choices=ORIENTATIONS,
        default="auto",
        help="Page orientation (default: follow the image)",
    )
    parser.add_argument(
        "--margin",
        default="none",
        help="Margin: none, small, medium, large, or millimetres (default: none)",
    )
    parser.add_argument(
        "--background",
        default="white",
        help="Colour behind transparent pixels (default: white)",
    )
    parser.add_argument(
        "--concurrency",
        type=int,
        default=4,
        help="Number of pages rendered in parallel (default: 4)",
    )
    parser.add_argument(
        "--allow-partial",
        action="store_true",
        default=False,
        help="Skip images that cannot be rendered instead of aborting",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Show debug logging",
    )
    return parser


async def _render_with_progress(
    *,
    console: Console,
    images: list[bytes],
    layout: PageLayout,
    concurrency: int,
    allow_partial: bool,
) -> RenderResult:
    """Render pages with a rich progress bar."""
    progress = Progress(
        SpinnerColumn(),
        "[progress.description]{task.description}",
        BarColumn(),
        MofNCompleteColumn(),
        TimeRemainingColumn(),
        console=console,
    )
    with progress:
        task_id = progress.add_task(
            description="Rendering pages",
            total=len(images),
        )
        return await render_pages(
            images,
            layout,
            concurrency=concurrency,
            allow_partial=allow_partial,
            on_page_done=lambda: progress.advance(task_id=task_id),
        )


async def _async_main(args: argparse.Namespace, console: Console) -> None:
    start_time = time.monotonic()

    layout = PageLayout(
        page_size=args.page_size,
        orientation=args.orientation,
        margin=args.margin,
        background=args.background,
    )
    pdf_path = _resolve_pdf_path(output=args.output)

    with console.status("[bold blue]Loading images..."):
        images = await load_images(args.sources)

    console.print(f"Loaded {len(images)} images")

    result = await _render_with_progress(
        console=console,
        images=images,
        layout=layout,
        concurrency=args.concurrency,
        allow_partial=args.allow_partial,
    )

    with console.status("[bold blue]Assembling PDF..."):
        pdf_size = assemble_pdf(
            page_documents=result.documents,
            output_path=pdf_path,
        )

    elapsed = time.monotonic() - start_time

    summary_lines = [
        f"[bold]Pages:[/bold] {result.successes}/{len(images)}",
    ]
    if result.failures:
        summary_lines.append(
            f"[bold red]Skipped:[/bold red] {len(result.failures)}"
        )
        for failure in result.failures:
            summary_lines.append(
                f"  [red]- {args.sources[failure.index]}: {failure.reason}[/red]"
            )
    summary_lines.append(
        f"[bold]PDF size:[/bold] {_format_size(pdf_size)}"
    )
    summary_lines.append(f"[bold]Output:[/bold] {pdf_path}")

    console.print(Panel(
        "\n".join(summary_lines),
        title=f"[bold green]Done in {elapsed:.1f}s[/bold green]",
        border_style="green" if not result.failures else "yellow",
    ))

    if result.failures:
        sys.exit(1)


def main() -> None:
    """Entry point for the ``pagebinder`` CLI command."""
    console = Console(stderr=True)
    parser = _build_parser()
    args = parser.parse_args()
    configure_logging(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        console=console,
    )

    try:
        asyncio.run(_async_main(args=args, console=Console()))
    except PageBinderError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        sys.exit(130)
