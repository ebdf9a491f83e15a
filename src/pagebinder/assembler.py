"""Assemble single-page PDF documents into a single PDF file."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from .errors import EmptyInputError, ParseError
from .merge import merge
from .objects import Document
from .parser import parse
from .writer import serialize

logger = logging.getLogger(__name__)


def parse_documents(buffers: Sequence[bytes]) -> list[Document]:
    """Parse every buffer, stopping at the first malformed one.

    Raises:
        ParseError: With ``index`` set to the offending buffer.
    """
    documents = []
    for index, buffer in enumerate(buffers):
        try:
            documents.append(parse(buffer))
        except ParseError as exc:
            raise ParseError(exc.reason, index=index) from exc
    return documents


def merge_pdf_bytes(buffers: Sequence[bytes]) -> bytes:
    """Merge PDF files given as bytes into one PDF, pages in input order.

    Every buffer is parsed before any merging starts, so a malformed input
    aborts the whole operation.

    Raises:
        EmptyInputError: If *buffers* is empty.
        ParseError: If a buffer is not a readable PDF.
        DanglingReferenceError: If a document references a missing object.
        SerializationError: If the merged document cannot be encoded.
    """
    if not buffers:
        raise EmptyInputError()

    documents = parse_documents(buffers)
    merged = merge(documents)
    pdf_bytes = serialize(merged)
    logger.info("Assembled %d documents into %d bytes", len(documents), len(pdf_bytes))
    return pdf_bytes


def assemble_pdf(*, page_documents: Sequence[bytes], output_path: Path) -> int:
    """Combine single-page PDFs into a single PDF file.

    Args:
        page_documents: Ordered PDF documents, as bytes.
        output_path: Path to write the output PDF.

    Returns:
        Size of the written PDF in bytes.

    Raises:
        EmptyInputError: If *page_documents* is empty.
        ParseError: If any document cannot be parsed.
    """
    if not page_documents:
        raise EmptyInputError("page_documents must not be empty")

    pdf_bytes = merge_pdf_bytes(page_documents)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(pdf_bytes)

    return len(pdf_bytes)
