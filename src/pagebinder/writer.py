"""Serialize :class:`~pagebinder.objects.Document` values to PDF bytes.

The object model is rebuilt as a pikepdf document and written by qpdf.
Stream payloads are written back exactly as stored, and the file ID is
derived from the content, so the same document always serializes to the
same bytes.  qpdf renumbers objects on write and drops objects that are
unreachable from the trailer.
"""

from __future__ import annotations

import io
import logging
import math
from typing import Any

import pikepdf

from .errors import SerializationError
from .objects import INFO, LENGTH, ROOT, Document, Name, ObjectId, Reference, Stream, String

logger = logging.getLogger(__name__)

_TRAILER_KEYS = (ROOT, INFO)


class _Builder:
    """Creates one pikepdf object per indirect object of a document."""

    def __init__(self, document: Document, pdf: pikepdf.Pdf) -> None:
        self.document = document
        self.pdf = pdf
        self.handles: dict[ObjectId, pikepdf.Object] = {}

    def build(self) -> None:
        # Containers are created empty first so that references between
        # them (Parent <-> Kids) can be wired in any order.
        for object_id in sorted(self.document.objects):
            value = self.document.objects[object_id]
            if isinstance(value, Stream):
                self.handles[object_id] = pikepdf.Stream(self.pdf, value.data)
            elif isinstance(value, dict):
                self.handles[object_id] = self.pdf.make_indirect(pikepdf.Dictionary())
            elif isinstance(value, list):
                self.handles[object_id] = self.pdf.make_indirect(pikepdf.Array())

        for object_id, handle in self.handles.items():
            value = self.document.objects[object_id]
            if isinstance(value, Stream):
                for key, item in value.dictionary.items():
                    if key != LENGTH:
                        handle[self.key(key)] = self.encode(item)
            elif isinstance(value, dict):
                for key, item in value.items():
                    handle[self.key(key)] = self.encode(item)
            else:
                for item in value:
                    handle.append(self.encode(item))

        for key in _TRAILER_KEYS:
            if key in self.document.trailer:
                self.pdf.trailer[self.key(key)] = self.encode(self.document.trailer[key])

    @staticmethod
    def key(name: Any) -> str:
        if not isinstance(name, str):
            raise SerializationError(f"Dictionary key {name!r} is not a name")
        return "/" + name

    def encode(self, value: Any) -> Any:
        """Convert a direct value of the object model for pikepdf."""
        if value is None or isinstance(value, (bool, int)):
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                raise SerializationError(f"Cannot encode real number {value}")
            return value
        if isinstance(value, Name):
            return pikepdf.Name("/" + value)
        if isinstance(value, String):
            return pikepdf.String(value.value)
        if isinstance(value, Reference):
            return self.resolve(value)
        if isinstance(value, list):
            return pikepdf.Array([self.encode(item) for item in value])
        if isinstance(value, dict):
            return pikepdf.Dictionary({self.key(key): self.encode(item) for key, item in value.items()})
        raise SerializationError(f"Cannot encode {type(value).__name__} value {value!r}")

    def resolve(self, reference: Reference) -> Any:
        if reference.target in self.handles:
            return self.handles[reference.target]
        if reference.target not in self.document.objects:
            raise SerializationError(f"Reference {reference} has no target object")
        # Indirect scalars are written inline.
        return self.encode(self.document.objects[reference.target])


def serialize(document: Document) -> bytes:
    """Encode *document* as a complete PDF file.

    Raises:
        SerializationError: If the trailer has no ``Root``, a reference has
            no target, or an object cannot be encoded.
    """
    if not isinstance(document.trailer.get(ROOT), Reference):
        raise SerializationError("Trailer has no Root reference")
    if any(object_id.number <= 0 for object_id in document.objects):
        raise SerializationError("Object numbers must be positive")

    try:
        with pikepdf.Pdf.new() as pdf:
            _Builder(document, pdf).build()
            buffer = io.BytesIO()
            pdf.save(
                buffer,
                min_version=document.version,
                compress_streams=False,
                stream_decode_level=pikepdf.StreamDecodeLevel.none,
                deterministic_id=True,
                fix_metadata_version=False,
            )
    except pikepdf.PdfError as exc:
        raise SerializationError(f"Cannot write PDF: {exc}") from exc

    logger.debug("Serialized %d objects into %d bytes", len(document.objects), buffer.tell())
    return buffer.getvalue()
