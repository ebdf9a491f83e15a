"""HTTP service converting uploaded images into a single PDF."""

from __future__ import annotations

import argparse
import asyncio
import io
import logging

from flask import Flask, request, send_file
from rich.console import Console

from .assembler import merge_pdf_bytes
from .cli import configure_logging
from .errors import LayoutError, PageBinderError, PageGenerationError
from .pages import render_pages
from .renderer import PageLayout

logger = logging.getLogger(__name__)

_DEFAULT_HOST = "0.0.0.0"
_DEFAULT_PORT = 3000
_DOWNLOAD_NAME = "merged.pdf"


def _layout_from_form() -> PageLayout:
    form = request.form
    return PageLayout(
        page_size=form.get("page_size", "image"),
        orientation=form.get("orientation", "auto"),
        margin=form.get("margin", "none"),
        background=form.get("background", "white"),
    )


def create_app(*, concurrency: int = 4) -> Flask:
    """Build the Flask application.

    Routes:
        ``GET /health``: liveness probe, answers ``OK``.
        ``POST /api/convert``: multipart upload with one or more ``images``
        file fields; answers with the merged PDF as an attachment.
    """
    app = Flask(__name__)

    @app.get("/health")
    def health_check():
        return "OK"

    @app.post("/api/convert")
    def convert_images_to_pdf():
        logger.info("Received convert request")
        uploads = request.files.getlist("images")
        if not uploads:
            return "No images provided. Send files with field name 'images'", 400

        try:
            layout = _layout_from_form()
        except LayoutError as exc:
            return str(exc), 400

        images = [upload.read() for upload in uploads]
        for number, image in enumerate(images, start=1):
            logger.info("Processing file #%d, size: %d bytes", number, len(image))

        try:
            rendered = asyncio.run(
                render_pages(images, layout, concurrency=concurrency)
            )
            logger.info("Generating PDF from %d images...", rendered.successes)
            pdf_bytes = merge_pdf_bytes(rendered.documents)
        except PageGenerationError as exc:
            return f"Failed to load image #{exc.index + 1}: {exc.reason}", 400
        except LayoutError as exc:
            return str(exc), 400
        except PageBinderError as exc:
            logger.exception("PDF generation failed")
            return f"Failed to generate PDF: {exc}", 500

        logger.info("PDF generated successfully! Size: %d bytes", len(pdf_bytes))
        return send_file(
            io.BytesIO(pdf_bytes),
            mimetype="application/pdf",
            as_attachment=True,
            download_name=_DOWNLOAD_NAME,
        )

    return app


def main() -> None:
    """Entry point for the ``pagebinder-server`` command."""
    parser = argparse.ArgumentParser(
        prog="pagebinder-server",
        description="Serve the image-to-PDF conversion API over HTTP.",
    )
    parser.add_argument("--host", default=_DEFAULT_HOST, help="Bind address (default: 0.0.0.0)")
    parser.add_argument("--port", type=int, default=_DEFAULT_PORT, help="Port (default: 3000)")
    parser.add_argument(
        "--concurrency",
        type=int,
        default=4,
        help="Pages rendered in parallel per request (default: 4)",
    )
    args = parser.parse_args()
    configure_logging(level=logging.INFO, console=Console(stderr=True))

    logger.info("Starting image to PDF API server on http://%s:%d", args.host, args.port)
    logger.info("  GET  /health       - Health check")
    logger.info("  POST /api/convert  - Convert images to PDF (form field 'images')")

    create_app(concurrency=args.concurrency).run(host=args.host, port=args.port)
