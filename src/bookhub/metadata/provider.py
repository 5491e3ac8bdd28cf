# ABOUTME: BibliographicLookup protocol: the contract for ISBN enrichment sources.
# ABOUTME: Listing creation depends only on this, never on a concrete service.

from typing import Protocol, runtime_checkable

from bookhub.catalog.types import Book


@runtime_checkable
class BibliographicLookup(Protocol):
    """Best-effort bibliographic data for an ISBN.

    Implementations return None instead of raising when the book is unknown
    or the service misbehaves.
    """

    @property
    def name(self) -> str: ...

    def lookup_isbn(self, isbn: str) -> Book | None: ...
