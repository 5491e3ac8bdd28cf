# ABOUTME: Unit tests for seller listing creation.
# ABOUTME: Covers validation batching, ISBN enrichment of blank fields, and insertion.

import logging
from typing import Any

import pytest

from bookhub.catalog.listing import (
    ListingRequest,
    build_book,
    create_listing,
    enrich_request,
    validate_listing,
)
from bookhub.catalog.types import Book
from bookhub.db.catalog import BookRepository
from bookhub.errors import ConflictError, ValidationFailedError


class FakeLookup:
    """Returns a canned Book for one ISBN and records every call."""

    def __init__(self, found: Book | None = None) -> None:
        self._found = found
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return "fake"

    def lookup_isbn(self, isbn: str) -> Book | None:
        self.calls.append(isbn)
        return self._found


def rose() -> Book:
    return Book(
        title="The Name of the Rose",
        author="Umberto Eco",
        publisher="Harcourt",
        publication_date="1994-09-28",
        language="eng",
        pages=536,
        description="Translated from the Italian.",
        image_url="https://covers.openlibrary.org/b/id/240727-L.jpg",
        categories=("Mystery", "Historical fiction"),
    )


class TestValidateListing:
    def test_valid(self) -> None:
        request = ListingRequest(title="Dune", original_price=10.0, categories=("SF",))
        assert validate_listing(request) == {}

    def test_collects_all_errors(self) -> None:
        request = ListingRequest(
            title="  ",
            original_price=-1.0,
            discount=150.0,
            pages=-3,
            isbn="12345",
        )
        assert set(validate_listing(request)) == {
            "title",
            "original_price",
            "discount",
            "categories",
            "pages",
            "isbn",
        }

    def test_too_many_categories(self) -> None:
        request = ListingRequest(title="x", categories=tuple("abcdef"))
        assert "categories" in validate_listing(request)

    def test_blank_categories_do_not_count(self) -> None:
        request = ListingRequest(title="x", categories=(" ", ""))
        assert "categories" in validate_listing(request)


class TestEnrichRequest:
    def test_fills_only_blank_fields(self) -> None:
        request = ListingRequest(title="My Rose", original_price=12.0, isbn="9780156001311")
        enriched = enrich_request(request, rose())
        assert enriched.title == "My Rose"
        assert enriched.author == "Umberto Eco"
        assert enriched.pages == 536
        assert enriched.categories == ("Mystery", "Historical fiction")
        assert enriched.original_price == 12.0

    def test_original_request_untouched(self) -> None:
        request = ListingRequest(isbn="9780156001311")
        enrich_request(request, rose())
        assert request.title == ""


class TestBuildBook:
    def test_normalizes_fields(self) -> None:
        request = ListingRequest(
            title="  Dune ",
            categories=("SF", " SF ", "Classics"),
            isbn="978-0-441-17271-9",
            seller_id="BH123456",
        )
        book = build_book(request)
        assert book.title == "Dune"
        assert book.categories == ("SF", "Classics")
        assert book.isbn == "9780441172719"
        assert book.seller_id == "BH123456"
        assert book.rating == 0.0
        assert book.total_purchases == 0


class TestCreateListing:
    """Tests for create_listing."""

    def test_inserts_book(self, repository: BookRepository) -> None:
        request = ListingRequest(title="Dune", original_price=10.0, categories=("SF",))
        book = create_listing(repository, request)
        assert book.id is not None
        assert repository.require(book.id).title == "Dune"

    def test_invalid_request_not_inserted(self, repository: BookRepository) -> None:
        with pytest.raises(ValidationFailedError):
            create_listing(repository, ListingRequest(original_price=10.0))
        assert repository.count() == 0

    def test_lookup_fills_blanks(self, repository: BookRepository) -> None:
        lookup = FakeLookup(rose())
        request = ListingRequest(original_price=15.0, isbn="9780156001311")
        book = create_listing(repository, request, lookup)
        assert lookup.calls == ["9780156001311"]
        stored = repository.require(book.id)
        assert stored.title == "The Name of the Rose"
        assert stored.author == "Umberto Eco"
        assert stored.categories == ("Mystery", "Historical fiction")

    def test_lookup_miss_lists_as_submitted(
        self, repository: BookRepository, caplog: Any
    ) -> None:
        request = ListingRequest(
            title="Rose", original_price=15.0, categories=("Mystery",), isbn="9780156001311"
        )
        with caplog.at_level(logging.WARNING):
            book = create_listing(repository, request, FakeLookup(None))
        assert repository.require(book.id).author == ""
        assert any("No bibliographic data" in r.message for r in caplog.records)

    def test_lookup_skipped_without_isbn(self, repository: BookRepository) -> None:
        lookup = FakeLookup(rose())
        request = ListingRequest(title="Dune", original_price=10.0, categories=("SF",))
        create_listing(repository, request, lookup)
        assert lookup.calls == []

    def test_duplicate_isbn_conflicts(self, repository: BookRepository) -> None:
        request = ListingRequest(
            title="Dune", original_price=10.0, categories=("SF",), isbn="9780441172719"
        )
        create_listing(repository, request)
        with pytest.raises(ConflictError):
            create_listing(repository, request)
