"""Concatenate independently generated PDF documents into one.

The merge works on the object table directly: every object of every input
is copied under a fresh identifier, references are rewritten through a
per-document mapping, and a new page tree and catalog are synthesized on
top of the migrated pages.  Page content is never decoded.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from .errors import DanglingReferenceError, EmptyInputError, ParseError
from .objects import (
    CATALOG,
    COUNT,
    INFO,
    KIDS,
    PAGES,
    PARENT,
    ROOT,
    TYPE,
    Document,
    Name,
    ObjectId,
    Reference,
    Stream,
)

logger = logging.getLogger(__name__)

IdMapping = dict[ObjectId, ObjectId]


@dataclass(frozen=True)
class IdAllocator:
    """Hands out consecutive object numbers for a merge target.

    The allocator is an immutable value: each call returns the advanced
    allocator alongside what it allocated, so two merges never share state.
    Number 0 is reserved for the head of the cross-reference free list.
    """

    next_number: int = 1

    def allocate(self, ids: Iterable[ObjectId]) -> tuple[IdAllocator, IdMapping]:
        """Map each id in *ids*, in iteration order, to a fresh identifier."""
        mapping: IdMapping = {}
        number = self.next_number
        for old_id in ids:
            mapping[old_id] = ObjectId(number, 0)
            number += 1
        return IdAllocator(number), mapping

    def take(self, count: int) -> tuple[IdAllocator, list[ObjectId]]:
        """Allocate *count* identifiers for newly synthesized objects."""
        ids = [ObjectId(self.next_number + i, 0) for i in range(count)]
        return IdAllocator(self.next_number + count), ids


def remap(obj: Any, mapping: IdMapping) -> Any:
    """Return a copy of *obj* with every reference rewritten through *mapping*.

    Raises:
        DanglingReferenceError: If a reference has no entry in *mapping*.
    """
    if isinstance(obj, Reference):
        try:
            return Reference(mapping[obj.target])
        except KeyError:
            raise DanglingReferenceError(obj) from None
    if isinstance(obj, dict):
        return {key: remap(value, mapping) for key, value in obj.items()}
    if isinstance(obj, list):
        return [remap(item, mapping) for item in obj]
    if isinstance(obj, Stream):
        return Stream(dictionary=remap(obj.dictionary, mapping), data=obj.data)
    return obj


def build_page_tree(
    objects: dict[ObjectId, Any],
    page_ids: Sequence[ObjectId],
    *,
    pages_id: ObjectId,
    catalog_id: ObjectId,
) -> None:
    """Add a single Pages node and a Catalog over *page_ids* to *objects*.

    Every page listed gets its ``Parent`` pointed at the new Pages node.
    """
    pages_ref = Reference(pages_id)
    for page_id in page_ids:
        objects[page_id][PARENT] = pages_ref

    objects[pages_id] = {
        TYPE: PAGES,
        KIDS: [Reference(page_id) for page_id in page_ids],
        COUNT: len(page_ids),
    }
    objects[catalog_id] = {
        TYPE: CATALOG,
        PAGES: pages_ref,
    }


def _version_key(version: str) -> tuple[int, ...]:
    try:
        return tuple(int(part) for part in version.split("."))
    except ValueError:
        return (0,)


def merge(documents: Sequence[Document]) -> Document:
    """Merge *documents* into one document with their pages in input order.

    A single document is returned unchanged.  The inputs are never mutated.

    Raises:
        EmptyInputError: If *documents* is empty.
        DanglingReferenceError: If an input holds a reference to an object
            missing from its own table.
        ParseError: If an input's page tree is malformed.
    """
    if not documents:
        raise EmptyInputError()
    if len(documents) == 1:
        return documents[0]

    allocator = IdAllocator()
    objects: dict[ObjectId, Any] = {}
    page_ids: list[ObjectId] = []
    info: Any = None

    for index, source in enumerate(documents):
        allocator, mapping = allocator.allocate(source.objects)
        try:
            for old_id, obj in source.objects.items():
                objects[mapping[old_id]] = remap(obj, mapping)

            source_pages = 0
            for old_id, inherited in source.walk_pages():
                new_id = mapping[old_id]
                page = objects[new_id]
                for key, value in inherited.items():
                    page[key] = remap(value, mapping)
                page_ids.append(new_id)
                source_pages += 1

            if info is None and isinstance(source.trailer.get(INFO), Reference):
                info = remap(source.trailer[INFO], mapping)
        except DanglingReferenceError as exc:
            raise DanglingReferenceError(exc.reference, index=index) from exc
        except ParseError as exc:
            raise ParseError(exc.reason, index=index) from exc

        logger.debug(
            "Copied document #%d: %d objects, %d pages",
            index, len(mapping), source_pages,
        )

    allocator, (pages_id, catalog_id) = allocator.take(2)
    build_page_tree(objects, page_ids, pages_id=pages_id, catalog_id=catalog_id)

    trailer: dict[Name, Any] = {ROOT: Reference(catalog_id)}
    if info is not None:
        trailer[INFO] = info

    version = max((doc.version for doc in documents), key=_version_key)
    logger.info(
        "Merged %d documents into %d pages (%d objects)",
        len(documents), len(page_ids), len(objects),
    )
    return Document(objects=objects, trailer=trailer, version=version)
