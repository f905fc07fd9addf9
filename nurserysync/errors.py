"""Exception types raised by the catalog core."""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for every catalog failure."""


class TransportError(CatalogError):
    """The remote store was unreachable or answered with an error status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SchemaError(CatalogError):
    """A remote response could not be normalised into items or pages."""


class ValidationError(CatalogError, ValueError):
    """Malformed caller input, rejected before any remote call."""


class NotFoundError(CatalogError, LookupError):
    """A mutation targeted an identifier the remote store does not hold."""


class MediaUploadError(CatalogError):
    """The media processor could not store an uploaded file."""


READ_FAILURES: tuple[type[CatalogError], ...] = (TransportError, SchemaError)
