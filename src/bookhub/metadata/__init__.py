# ABOUTME: Bibliographic lookup package: the lookup protocol and the Open Library source.
# ABOUTME: Used only when a new listing asks for ISBN enrichment.

from bookhub.metadata.openlibrary import OpenLibraryError, OpenLibraryLookup, RetryPolicy
from bookhub.metadata.provider import BibliographicLookup

__all__ = [
    "BibliographicLookup",
    "OpenLibraryError",
    "OpenLibraryLookup",
    "RetryPolicy",
]
