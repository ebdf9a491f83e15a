"""Exception hierarchy shared by the merge engine and the conversion pipeline."""

from __future__ import annotations


class PageBinderError(Exception):
    """Base exception for pagebinder errors."""


class EmptyInputError(PageBinderError):
    """Raised when there is nothing to merge or convert."""

    def __init__(self, message: str = "No documents to merge") -> None:
        super().__init__(message)


class ParseError(PageBinderError):
    """Raised when a byte buffer is not a well-formed PDF document."""

    def __init__(self, message: str, *, index: int | None = None) -> None:
        self.reason = message
        self.index = index
        if index is not None:
            message = f"Document #{index}: {message}"
        super().__init__(message)


class DanglingReferenceError(PageBinderError):
    """Raised when a reference has no target in the merged object table."""

    def __init__(self, reference: object, *, index: int | None = None) -> None:
        self.reference = reference
        self.index = index
        message = f"Reference {reference} has no target object"
        if index is not None:
            message = f"Document #{index}: {message}"
        super().__init__(message)


class SerializationError(PageBinderError):
    """Raised when a document cannot be encoded to bytes."""


class LayoutError(PageBinderError):
    """Raised when a page layout option is not recognised."""


class PageGenerationError(PageBinderError):
    """Raised when one image cannot be decoded or rendered to a page."""

    def __init__(self, index: int, reason: str) -> None:
        self.index = index
        self.reason = reason
        super().__init__(f"Failed to render image #{index + 1}: {reason}")


class ImageLoadError(PageBinderError):
    """Raised when an image source cannot be read or downloaded."""

    def __init__(self, index: int, source: str, reason: str) -> None:
        self.index = index
        self.source = source
        self.reason = reason
        super().__init__(f"Failed to load image #{index + 1} ({source}): {reason}")
