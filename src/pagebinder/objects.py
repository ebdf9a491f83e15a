"""In-memory PDF object model.

A :class:`Document` is a flat table of indirect objects keyed by
:class:`ObjectId`, plus a trailer dictionary and a version tag.  Objects
point at each other only through :class:`Reference` values, so the
page → Parent → Pages → Kids → page cycle never becomes a cycle of Python
objects.

PDF value kinds map onto Python as follows:

========== ===================
PDF        Python
========== ===================
null       ``None``
boolean    ``bool``
integer    ``int``
real       ``float``
string     :class:`String`
name       :class:`Name`
array      ``list``
dictionary ``dict`` (Name keys)
reference  :class:`Reference`
stream     :class:`Stream`
========== ===================
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from .errors import DanglingReferenceError, ParseError


class Name(str):
    """A PDF name, stored without its leading slash."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"Name({str.__repr__(self)})"


@dataclass(frozen=True)
class String:
    """A PDF string, kept as raw bytes."""

    value: bytes


class ObjectId(NamedTuple):
    number: int
    generation: int = 0

    def __str__(self) -> str:
        return f"{self.number} {self.generation} R"


@dataclass(frozen=True)
class Reference:
    """An indirect reference to another object of the same document."""

    target: ObjectId

    @classmethod
    def to(cls, number: int, generation: int = 0) -> Reference:
        return cls(ObjectId(number, generation))

    def __str__(self) -> str:
        return str(self.target)


@dataclass
class Stream:
    """A stream object: a dictionary plus an opaque payload."""

    dictionary: dict[Name, Any]
    data: bytes = b""


TYPE = Name("Type")
PAGE = Name("Page")
PAGES = Name("Pages")
KIDS = Name("Kids")
COUNT = Name("Count")
PARENT = Name("Parent")
CATALOG = Name("Catalog")
ROOT = Name("Root")
INFO = Name("Info")
SIZE = Name("Size")
LENGTH = Name("Length")
MEDIA_BOX = Name("MediaBox")

# Page attributes a page may take from its ancestors in the page tree.
INHERITABLE_KEYS = (
    Name("Resources"),
    MEDIA_BOX,
    Name("CropBox"),
    Name("Rotate"),
)


@dataclass
class Document:
    """A parsed PDF: object table, trailer and header version."""

    objects: dict[ObjectId, Any] = field(default_factory=dict)
    trailer: dict[Name, Any] = field(default_factory=dict)
    version: str = "1.3"

    def resolve(self, value: Any) -> Any:
        """Follow *value* if it is a reference, otherwise return it as-is."""
        if not isinstance(value, Reference):
            return value
        try:
            return self.objects[value.target]
        except KeyError:
            raise DanglingReferenceError(value) from None

    def catalog(self) -> dict[Name, Any]:
        root = self.trailer.get(ROOT)
        if not isinstance(root, Reference):
            raise ParseError("Trailer has no Root reference")
        catalog = self.resolve(root)
        if not isinstance(catalog, dict):
            raise ParseError(f"Root {root} is not a dictionary")
        return catalog

    def walk_pages(self) -> Iterator[tuple[ObjectId, dict[Name, Any]]]:
        """Yield ``(page_id, inherited)`` for every leaf page, in order.

        ``inherited`` holds the inheritable attributes (see
        :data:`INHERITABLE_KEYS`) that the page takes from its ancestors
        and does not define itself.  Nodes reached twice are skipped, which
        also protects against cyclic ``Kids`` arrays.
        """
        pages = self.catalog().get(PAGES)
        if not isinstance(pages, Reference):
            return
        visited: set[ObjectId] = set()
        yield from self._walk(pages, {}, visited)

    def _walk(
        self,
        ref: Reference,
        inherited: dict[Name, Any],
        visited: set[ObjectId],
    ) -> Iterator[tuple[ObjectId, dict[Name, Any]]]:
        if ref.target in visited:
            return
        visited.add(ref.target)

        node = self.resolve(ref)
        if not isinstance(node, dict):
            raise ParseError(f"Page tree node {ref} is not a dictionary")

        if node.get(TYPE) == PAGES or KIDS in node:
            scope = dict(inherited)
            for key in INHERITABLE_KEYS:
                if key in node:
                    scope[key] = node[key]
            kids = self.resolve(node.get(KIDS, []))
            if not isinstance(kids, list):
                raise ParseError(f"Kids of page tree node {ref} is not an array")
            for kid in kids:
                if isinstance(kid, Reference):
                    yield from self._walk(kid, scope, visited)
            return

        yield ref.target, {k: v for k, v in inherited.items() if k not in node}

    def page_ids(self) -> list[ObjectId]:
        return [page_id for page_id, _ in self.walk_pages()]

    @property
    def page_count(self) -> int:
        return len(self.page_ids())
