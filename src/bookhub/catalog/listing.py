# ABOUTME: Seller listing creation: validate a submission, optionally enrich it by ISBN, insert it.
# ABOUTME: Lookup data only fills fields the seller left blank.

import logging
from dataclasses import dataclass, field, fields, replace

from bookhub.catalog.types import MAX_CATEGORIES, Book
from bookhub.errors import ValidationFailedError
from bookhub.metadata.openlibrary import clean_isbn, is_valid_isbn
from bookhub.metadata.provider import BibliographicLookup

logger = logging.getLogger(__name__)

# Fields a lookup result may fill in when the submission leaves them empty.
_ENRICHABLE = (
    "title",
    "author",
    "publisher",
    "publication_date",
    "language",
    "pages",
    "description",
    "image_url",
    "categories",
)


@dataclass
class ListingRequest:
    """What a seller submits for a new listing."""

    title: str = ""
    author: str = ""
    original_price: float = 0.0
    discount: float = 0.0
    categories: tuple[str, ...] = field(default_factory=tuple)
    publisher: str = ""
    publication_date: str = ""
    language: str = ""
    isbn: str | None = None
    pages: int = 0
    description: str = ""
    image_url: str | None = None
    seller_id: str | None = None


def validate_listing(request: ListingRequest) -> dict[str, str]:
    """Collect every problem with a listing request.

    Returns:
        Mapping of field name to message; empty when the request is valid.
    """
    errors: dict[str, str] = {}
    if not request.title.strip():
        errors["title"] = "Title is required"
    if request.original_price < 0:
        errors["original_price"] = "Price cannot be negative"
    if not 0 <= request.discount <= 100:
        errors["discount"] = "Discount must be between 0 and 100"
    categories = [c for c in request.categories if c.strip()]
    if not 1 <= len(categories) <= MAX_CATEGORIES:
        errors["categories"] = f"Choose between 1 and {MAX_CATEGORIES} categories"
    if request.pages < 0:
        errors["pages"] = "Page count cannot be negative"
    if request.isbn and not is_valid_isbn(request.isbn):
        errors["isbn"] = "ISBN must have 10 or 13 digits"
    return errors


def enrich_request(request: ListingRequest, found: Book) -> ListingRequest:
    """Copy lookup data into the blank fields of a request."""
    updates = {}
    for name in _ENRICHABLE:
        if not getattr(request, name) and getattr(found, name):
            updates[name] = getattr(found, name)
    if updates:
        logger.info("Filled %s from lookup", ", ".join(sorted(updates)))
    return replace(request, **updates)


def build_book(request: ListingRequest) -> Book:
    """Turn a validated request into an unsaved Book with zeroed popularity."""
    values = {f.name: getattr(request, f.name) for f in fields(ListingRequest)}
    values["title"] = request.title.strip()
    values["categories"] = tuple(dict.fromkeys(c.strip() for c in request.categories if c.strip()))
    values["isbn"] = clean_isbn(request.isbn) if request.isbn else None
    return Book(**values)


def create_listing(
    repository,
    request: ListingRequest,
    lookup: BibliographicLookup | None = None,
) -> Book:
    """Validate, optionally enrich, and insert a new listing.

    A lookup that finds nothing (or fails) leaves the request as submitted.

    Raises:
        ValidationFailedError: If the (enriched) request is invalid.
        ConflictError: If a book with the same ISBN already exists.
    """
    if lookup is not None and request.isbn:
        found = lookup.lookup_isbn(request.isbn)
        if found is not None:
            request = enrich_request(request, found)
        else:
            logger.warning("No bibliographic data for ISBN %s, listing as submitted", request.isbn)

    errors = validate_listing(request)
    if errors:
        raise ValidationFailedError(errors)

    book = build_book(request)
    repository.insert(book)
    return book
