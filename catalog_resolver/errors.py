from __future__ import annotations

"""
Exceptions raised by the catalog resolver.

Lookups that miss (unknown ids, empty searches, fuzzy misses) are not
errors and return typed empty results instead.  Exceptions are kept for
problems the caller has to fix: broken catalog input and malformed
filter bags.
"""

from typing import Optional


class CatalogError(Exception):
    """Base class for every error raised by the package."""
    pass


# ---------------------------
# Load / build
# ---------------------------

class CatalogLoadError(CatalogError):
    """Catalog input could not be read, validated or indexed."""

    def __init__(self, message: str, source: Optional[str] = None) -> None:
        self.source = source
        if source:
            message = f"{message} (source: {source})"
        super().__init__(message)


# ---------------------------
# Caller input
# ---------------------------

class UnknownFilterError(CatalogError, ValueError):
    """A filter or profile key that the record kind does not declare."""
    pass


class UnknownKindError(CatalogError, KeyError):
    """No record kind registered under the requested name."""
    pass
