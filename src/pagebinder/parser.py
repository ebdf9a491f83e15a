"""Parse PDF files into :class:`~pagebinder.objects.Document` values.

Reading is delegated to pikepdf (qpdf), so classic cross-reference tables,
cross-reference streams, object streams and incremental updates are all
handled there.  The opened file is then copied into the plain object model
the merge works on.  Encrypted documents are rejected.
"""

from __future__ import annotations

import io
import logging
from decimal import Decimal
from typing import Any

import pikepdf

from .errors import ParseError
from .objects import INFO, LENGTH, ROOT, Document, Name, ObjectId, Reference, Stream, String

logger = logging.getLogger(__name__)

# Stream types that only carry cross-reference data; qpdf has already
# unpacked them into the object table.
_STRUCTURAL_TYPES = (pikepdf.Name.XRef, pikepdf.Name.ObjStm)
_TRAILER_KEYS = (ROOT, INFO)


def _convert(value: Any, *, indirect_as_reference: bool = True) -> Any:
    """Copy a pikepdf value into the object model.

    Indirect objects nested in a container become :class:`Reference`
    values.  qpdf hands scalars back as Python values, so an indirect
    scalar arrives already resolved and is kept inline.
    """
    if not isinstance(value, pikepdf.Object):
        if isinstance(value, Decimal):
            return float(value)
        return value
    if indirect_as_reference and value.is_indirect:
        return Reference.to(*value.objgen)
    if isinstance(value, pikepdf.Name):
        return Name(str(value)[1:])
    if isinstance(value, pikepdf.String):
        return String(bytes(value))
    if isinstance(value, pikepdf.Array):
        return [_convert(item) for item in value]
    if isinstance(value, pikepdf.Stream):
        dictionary = _convert(value.stream_dict, indirect_as_reference=False)
        dictionary.pop(LENGTH, None)
        return Stream(dictionary=dictionary, data=value.read_raw_bytes())
    if isinstance(value, pikepdf.Dictionary):
        return {Name(key[1:]): _convert(item) for key, item in value.items()}
    raise ParseError(f"Unsupported object {value!r}")


def _is_structural(obj: pikepdf.Object) -> bool:
    return isinstance(obj, pikepdf.Stream) and obj.get("/Type") in _STRUCTURAL_TYPES


def parse(data: bytes) -> Document:
    """Parse a complete PDF file.

    Raises:
        ParseError: If *data* is not a PDF that can be read.
    """
    try:
        with pikepdf.open(io.BytesIO(data)) as pdf:
            if pdf.is_encrypted:
                raise ParseError("Encrypted documents are not supported")

            document = Document(version=pdf.pdf_version)
            for obj in pdf.objects:
                if not isinstance(obj, pikepdf.Object) or _is_structural(obj):
                    continue
                object_id = ObjectId(*obj.objgen)
                if object_id.number <= 0:
                    continue
                document.objects[object_id] = _convert(obj, indirect_as_reference=False)

            for key in _TRAILER_KEYS:
                value = pdf.trailer.get("/" + key)
                if value is not None:
                    document.trailer[key] = _convert(value)
    except pikepdf.PasswordError as exc:
        raise ParseError("Encrypted documents are not supported") from exc
    except pikepdf.PdfError as exc:
        raise ParseError(f"Invalid PDF: {exc}") from exc

    if not isinstance(document.trailer.get(ROOT), Reference):
        raise ParseError("Trailer has no Root reference")

    logger.debug(
        "Parsed PDF-%s with %d objects", document.version, len(document.objects),
    )
    return document
