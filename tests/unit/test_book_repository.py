# ABOUTME: Unit tests for BookRepository CRUD, field lookups, and transactional updates.
# ABOUTME: Uses a temporary SQLite store per test.

from datetime import date, timedelta

import pytest

from bookhub.catalog.types import Book, Review
from bookhub.db.catalog import BookRepository, new_book_id, validate_book_id
from bookhub.errors import (
    ConflictError,
    InvalidArgumentError,
    InvalidIdError,
    NotFoundError,
    StorageUnavailableError,
)
from tests.fixtures.catalog_books import sample_books


@pytest.fixture()
def dracula() -> Book:
    return sample_books()[0]


class TestBookIds:
    def test_new_id_shape(self) -> None:
        book_id = new_book_id()
        assert len(book_id) == 24
        assert validate_book_id(book_id) == book_id

    @pytest.mark.parametrize("bad", ["", "xyz", "A" * 24, "0" * 23, None, 42])
    def test_malformed_ids_rejected(self, bad: object) -> None:
        with pytest.raises(InvalidIdError):
            validate_book_id(bad)

    def test_invalid_id_is_invalid_argument(self) -> None:
        assert issubclass(InvalidIdError, InvalidArgumentError)


class TestInsertAndGet:
    """Tests for insert, get, and require."""

    def test_insert_assigns_id(self, repository: BookRepository, dracula: Book) -> None:
        book_id = repository.insert(dracula)
        assert dracula.id == book_id
        validate_book_id(book_id)

    def test_insert_stamps_upload_date(self, repository: BookRepository, dracula: Book) -> None:
        repository.insert(dracula)
        assert dracula.upload_date == date.today().isoformat()

    def test_roundtrip(self, repository: BookRepository, dracula: Book) -> None:
        book_id = repository.insert(dracula)
        stored = repository.get(book_id)

        assert stored is not None
        assert stored.title == "Dracula"
        assert stored.author == "Bram Stoker"
        assert stored.categories == ("Horror", "Classics")
        assert stored.original_price == 500.0
        assert stored.rating == 0.0
        assert stored.review_count == 0
        assert stored.total_purchases == 0

    def test_get_missing_returns_none(self, repository: BookRepository) -> None:
        assert repository.get(new_book_id()) is None

    def test_require_missing_raises(self, repository: BookRepository) -> None:
        with pytest.raises(NotFoundError):
            repository.require(new_book_id())

    def test_get_malformed_id_raises(self, repository: BookRepository) -> None:
        with pytest.raises(InvalidIdError):
            repository.get("not-an-id")

    def test_duplicate_isbn_conflicts(self, repository: BookRepository) -> None:
        repository.insert(sample_books()[0])
        with pytest.raises(ConflictError):
            repository.insert(sample_books()[0])

    def test_books_without_isbn_do_not_conflict(self, repository: BookRepository) -> None:
        repository.insert(Book(title="Untitled one"))
        repository.insert(Book(title="Untitled two"))
        assert repository.count() == 2

    def test_other_constraint_failure_is_storage_error(
        self, repository: BookRepository
    ) -> None:
        """A stored review outside 1..5 breaks a CHECK constraint, not the ISBN index."""
        book = Book(title="Carmilla", reviews=(Review(reviewer_id="BH100001", rating=9.0),))
        with pytest.raises(StorageUnavailableError):
            repository.insert(book)
        assert repository.count() == 0
        assert book.id is None

    def test_insert_with_reviews_derives_rating(self, repository: BookRepository) -> None:
        book = Book(
            title="Carmilla",
            reviews=(
                Review(reviewer_id="BH100001", rating=5.0),
                Review(reviewer_id="BH100002", rating=3.0),
            ),
        )
        book_id = repository.insert(book)
        stored = repository.require(book_id)
        assert stored.review_count == 2
        assert stored.rating == pytest.approx(4.0)

    def test_get_all_in_insertion_order(self, stocked_repository) -> None:
        repository, books = stocked_repository
        assert [b.title for b in repository.get_all()] == [b.title for b in books]


class TestGetByField:
    """Tests for get_by_field."""

    def test_category_membership(self, stocked_repository) -> None:
        repository, _ = stocked_repository
        titles = [b.title for b in repository.get_by_field("category", "Horror")]
        assert titles == ["Dracula", "Frankenstein"]

    def test_category_is_exact(self, stocked_repository) -> None:
        repository, _ = stocked_repository
        assert repository.get_by_field("category", "Horr") == []

    def test_author_substring_case_insensitive(self, stocked_repository) -> None:
        repository, _ = stocked_repository
        titles = [b.title for b in repository.get_by_field("author", "SHELLEY")]
        assert titles == ["Frankenstein"]

    def test_title_unicode_case_insensitive(self, stocked_repository) -> None:
        repository, _ = stocked_repository
        titles = [b.title for b in repository.get_by_field("title", "émile")]
        assert titles == ["Émile"]

    def test_exact_seller(self, repository: BookRepository) -> None:
        repository.insert(Book(title="Mine", seller_id="BH111111"))
        repository.insert(Book(title="Theirs", seller_id="BH222222"))
        assert [b.title for b in repository.get_by_field("seller_id", "BH111111")] == ["Mine"]

    def test_featured(self, stocked_repository) -> None:
        repository, _ = stocked_repository
        assert [b.title for b in repository.featured()] == ["The Hobbit"]

    def test_unknown_field_rejected(self, repository: BookRepository) -> None:
        with pytest.raises(InvalidArgumentError):
            repository.get_by_field("password", "x")


class TestUpdateAndDelete:
    """Tests for update and delete."""

    def test_update_rewrites_fields(self, repository: BookRepository, dracula: Book) -> None:
        repository.insert(dracula)
        dracula.discount = 50.0
        dracula.description = "Revised blurb."

        assert repository.update(dracula) is True
        stored = repository.require(dracula.id)
        assert stored.discount == 50.0
        assert stored.current_price == pytest.approx(250.0)
        assert stored.description == "Revised blurb."

    def test_update_does_not_touch_reviews(
        self, repository: BookRepository, dracula: Book
    ) -> None:
        repository.insert(dracula)
        repository.add_review(dracula.id, Review(reviewer_id="BH100001", rating=5.0))
        dracula.rating = 1.0
        dracula.review_count = 0
        repository.update(dracula)

        stored = repository.require(dracula.id)
        assert stored.rating == 5.0
        assert stored.review_count == 1

    def test_update_missing_returns_false(self, repository: BookRepository) -> None:
        assert repository.update(Book(title="Ghost", id=new_book_id())) is False

    def test_update_without_id_rejected(self, repository: BookRepository) -> None:
        with pytest.raises(InvalidIdError):
            repository.update(Book(title="Ghost"))

    def test_delete(self, repository: BookRepository, dracula: Book) -> None:
        repository.insert(dracula)
        assert repository.delete(dracula.id) is True
        assert repository.get(dracula.id) is None

    def test_delete_missing_returns_false(self, repository: BookRepository) -> None:
        assert repository.delete(new_book_id()) is False

    def test_delete_held_book_conflicts(self, repository: BookRepository, dracula: Book) -> None:
        repository.insert(dracula)
        repository.borrow(dracula.id, "BH123456", 10)
        with pytest.raises(ConflictError):
            repository.delete(dracula.id)
        assert repository.get(dracula.id) is not None


class TestReviews:
    """Tests for add_review."""

    def test_add_review_recomputes(self, repository: BookRepository, dracula: Book) -> None:
        repository.insert(dracula)
        repository.add_review(dracula.id, Review(reviewer_id="BH100001", rating=4.0))
        book = repository.add_review(
            dracula.id, Review(reviewer_id="BH100002", rating=5.0, comment="Chilling")
        )

        assert book.review_count == 2
        assert book.rating == pytest.approx(4.5)
        assert [r.comment for r in book.reviews] == ["", "Chilling"]

    @pytest.mark.parametrize("rating", [0.0, 5.5, -1.0])
    def test_rating_out_of_range(
        self, repository: BookRepository, dracula: Book, rating: float
    ) -> None:
        repository.insert(dracula)
        with pytest.raises(InvalidArgumentError):
            repository.add_review(dracula.id, Review(reviewer_id="BH100001", rating=rating))
        assert repository.require(dracula.id).review_count == 0

    def test_missing_book(self, repository: BookRepository) -> None:
        with pytest.raises(NotFoundError):
            repository.add_review(new_book_id(), Review(reviewer_id="BH100001", rating=3.0))

    def test_top_rated_and_most_reviewed(self, stocked_repository) -> None:
        repository, books = stocked_repository
        repository.add_review(books[1].id, Review(reviewer_id="a", rating=5.0))
        repository.add_review(books[2].id, Review(reviewer_id="a", rating=3.0))
        repository.add_review(books[2].id, Review(reviewer_id="b", rating=3.0))

        assert [b.title for b in repository.top_rated(1)] == ["Frankenstein"]
        assert [b.title for b in repository.most_reviewed(1)] == ["Pather Panchali"]


class TestBorrowAndPurchase:
    """Tests for borrow, return_book, record_purchase, and page."""

    def test_borrow_sets_holder_and_dates(
        self, repository: BookRepository, dracula: Book
    ) -> None:
        repository.insert(dracula)
        book = repository.borrow(dracula.id, "BH123456", 20)

        assert book.holder_id == "BH123456"
        assert not book.is_available
        assert book.borrow_date == date.today().isoformat()
        assert book.return_date == (date.today() + timedelta(days=20)).isoformat()

    def test_borrow_held_book_conflicts(self, repository: BookRepository, dracula: Book) -> None:
        repository.insert(dracula)
        repository.borrow(dracula.id, "BH123456", 20)
        with pytest.raises(ConflictError):
            repository.borrow(dracula.id, "BH654321", 20)

    def test_return_clears_holder(self, repository: BookRepository, dracula: Book) -> None:
        repository.insert(dracula)
        repository.borrow(dracula.id, "BH123456", 20)
        book = repository.return_book(dracula.id)
        assert book.is_available
        assert book.return_date == date.today().isoformat()

    def test_record_purchase(self, repository: BookRepository, dracula: Book) -> None:
        repository.insert(dracula)
        repository.record_purchase(dracula.id, 2)
        repository.record_purchase(dracula.id)
        assert repository.require(dracula.id).total_purchases == 3

    def test_record_purchase_missing(self, repository: BookRepository) -> None:
        with pytest.raises(NotFoundError):
            repository.record_purchase(new_book_id())

    def test_borrow_many_lends_every_book(self, stocked_repository) -> None:
        repository, books = stocked_repository
        lent = repository.borrow_many({books[0].id: 7, books[1].id: 14}, "BH123456")
        assert [b.holder_id for b in lent] == ["BH123456", "BH123456"]
        assert lent[1].return_date == (date.today() + timedelta(days=14)).isoformat()

    def test_borrow_many_is_all_or_nothing(self, stocked_repository) -> None:
        """One book already on loan leaves every other book in the batch available."""
        repository, books = stocked_repository
        repository.borrow(books[1].id, "BH999999", 7)
        with pytest.raises(ConflictError, match="Frankenstein is already borrowed"):
            repository.borrow_many({books[0].id: 7, books[1].id: 7, books[2].id: 7}, "BH123456")
        assert repository.require(books[0].id).is_available
        assert repository.require(books[2].id).is_available
        assert repository.require(books[1].id).holder_id == "BH999999"

    def test_borrow_many_missing_book_lends_nothing(self, stocked_repository) -> None:
        repository, books = stocked_repository
        with pytest.raises(NotFoundError):
            repository.borrow_many({books[0].id: 7, new_book_id(): 7}, "BH123456")
        assert repository.require(books[0].id).is_available

    def test_borrow_many_rejects_bad_loan_length(self, stocked_repository) -> None:
        repository, books = stocked_repository
        with pytest.raises(InvalidArgumentError):
            repository.borrow_many({books[0].id: 0}, "BH123456")

    def test_record_purchases_is_all_or_nothing(self, stocked_repository) -> None:
        repository, books = stocked_repository
        with pytest.raises(NotFoundError):
            repository.record_purchases({books[0].id: 1, new_book_id(): 1})
        assert repository.require(books[0].id).total_purchases == 0

        repository.record_purchases({books[0].id: 2, books[1].id: 1})
        assert repository.require(books[0].id).total_purchases == 2
        assert repository.require(books[1].id).total_purchases == 1

    def test_page_window(self, stocked_repository) -> None:
        repository, books = stocked_repository
        assert [b.title for b in repository.page(1, 2)] == [b.title for b in books[1:3]]
