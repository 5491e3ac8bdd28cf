# ABOUTME: The catalog repository: CRUD, field lookups, reviews, and borrow state for books.
# ABOUTME: All access is serialized through one lock; writes run in immediate transactions.

import logging
import re
import secrets
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, timedelta
from typing import Any

from bookhub.catalog.types import MAX_REVIEW_RATING, MIN_REVIEW_RATING, Book, Review
from bookhub.db.mapping import UPDATABLE_COLUMNS, book_to_row, row_to_book, row_to_review
from bookhub.errors import (
    ConflictError,
    InvalidArgumentError,
    InvalidIdError,
    NotFoundError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)

_BOOK_ID_RE = re.compile(r"^[0-9a-f]{24}$")

# Fields get_by_field matches exactly vs. by case-insensitive substring.
EXACT_FIELDS = frozenset({"id", "seller_id", "holder_id", "isbn", "language", "featured"})
SUBSTRING_FIELDS = frozenset({"title", "author", "publisher", "description"})
CATEGORY_FIELD = "category"

_RECOMPUTE_RATING_SQL = (
    "UPDATE books SET "
    "rating = COALESCE((SELECT AVG(rating) FROM reviews WHERE book_id = :id), 0), "
    "review_count = (SELECT COUNT(*) FROM reviews WHERE book_id = :id), "
    "date_modified = strftime('%Y-%m-%dT%H:%M:%S', 'now') "
    "WHERE id = :id"
)


def new_book_id() -> str:
    """Generate a fresh 24-hex-character book identifier."""
    return secrets.token_hex(12)


def validate_book_id(book_id: Any) -> str:
    """Return book_id if it is well formed.

    Raises:
        InvalidIdError: If book_id is not a 24-character lowercase hex string.
    """
    if not isinstance(book_id, str) or not _BOOK_ID_RE.match(book_id):
        raise InvalidIdError(f"Malformed book id: {book_id!r}")
    return book_id


class BookRepository:
    """Wraps a sqlite3 connection and provides typed access to the books table.

    A re-entrant lock guards every call, so a reader always sees a book row
    together with the review rows that produced its rating.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._lock = threading.RLock()

    @contextmanager
    def _storage_guard(self, action: str) -> Iterator[None]:
        """Translate low-level SQLite failures into StorageUnavailableError."""
        try:
            yield
        except sqlite3.IntegrityError:
            raise
        except sqlite3.Error as exc:
            logger.error("Storage failure while %s", action, exc_info=True)
            raise StorageUnavailableError(f"Storage failure while {action}: {exc}") from exc

    @contextmanager
    def _transaction(self, action: str) -> Iterator[None]:
        """Run a block as one IMMEDIATE transaction under the repository lock."""
        with self._lock, self._storage_guard(action):
            self._conn.execute("BEGIN IMMEDIATE")
            try:
                yield
            except BaseException:
                self._conn.rollback()
                raise
            self._conn.commit()

    # --- Reads ---

    def _reviews_for(self, book_ids: list[str]) -> dict[str, list[Review]]:
        grouped: dict[str, list[Review]] = {book_id: [] for book_id in book_ids}
        if not book_ids:
            return grouped
        placeholders = ", ".join("?" for _ in book_ids)
        cursor = self._conn.execute(
            f"SELECT * FROM reviews WHERE book_id IN ({placeholders}) ORDER BY id",
            book_ids,
        )
        for row in cursor.fetchall():
            grouped[row["book_id"]].append(row_to_review(row))
        return grouped

    def _select(self, sql: str, params: Any = (), action: str = "reading books") -> list[Book]:
        with self._lock, self._storage_guard(action):
            rows = self._conn.execute(sql, params).fetchall()
            reviews = self._reviews_for([row["id"] for row in rows])
        return [row_to_book(row, reviews[row["id"]]) for row in rows]

    def get(self, book_id: str) -> Book | None:
        """Retrieve a book by id, or None if it does not exist.

        Raises:
            InvalidIdError: If the id is malformed.
        """
        validate_book_id(book_id)
        books = self._select("SELECT * FROM books WHERE id = ?", (book_id,), f"reading {book_id}")
        return books[0] if books else None

    def require(self, book_id: str) -> Book:
        """Like get(), but raises NotFoundError for a missing book."""
        book = self.get(book_id)
        if book is None:
            raise NotFoundError(f"Book with id {book_id} not found")
        return book

    def get_by_isbn(self, isbn: str) -> Book | None:
        books = self._select("SELECT * FROM books WHERE isbn = ?", (isbn,))
        return books[0] if books else None

    def get_all(self) -> list[Book]:
        """Return every book in insertion order."""
        return self._select("SELECT * FROM books ORDER BY rowid", action="reading all books")

    def count(self) -> int:
        with self._lock, self._storage_guard("counting books"):
            return self._conn.execute("SELECT COUNT(*) FROM books").fetchone()[0]

    def get_by_field(self, field: str, value: Any) -> list[Book]:
        """Return books whose field matches value.

        Exact match for id, seller_id, holder_id, isbn, language, featured,
        and category membership; case-insensitive substring match for
        title, author, publisher, and description.

        Raises:
            InvalidArgumentError: If the field is not queryable.
        """
        if field == CATEGORY_FIELD:
            where = (
                "EXISTS (SELECT 1 FROM json_each(books.categories) "
                "WHERE json_each.value = ?)"
            )
            param: Any = value
        elif field in EXACT_FIELDS:
            where = f"{field} = ?"
            param = int(bool(value)) if field == "featured" else value
        elif field in SUBSTRING_FIELDS:
            where = f"instr(casefold({field}), ?) > 0"
            param = str(value).casefold()
        else:
            raise InvalidArgumentError(f"Cannot query books by field {field!r}")

        return self._select(
            f"SELECT * FROM books WHERE {where} ORDER BY rowid",
            (param,),
            f"querying books by {field}",
        )

    def top_rated(self, limit: int) -> list[Book]:
        return self._select(
            "SELECT * FROM books ORDER BY rating DESC, rowid LIMIT ?", (limit,)
        )

    def most_reviewed(self, limit: int) -> list[Book]:
        return self._select(
            "SELECT * FROM books ORDER BY review_count DESC, rowid LIMIT ?", (limit,)
        )

    def featured(self) -> list[Book]:
        return self.get_by_field("featured", True)

    def page(self, skip: int, limit: int) -> list[Book]:
        """Return a window of books in insertion order."""
        return self._select(
            "SELECT * FROM books ORDER BY rowid LIMIT ? OFFSET ?", (limit, skip)
        )

    # --- Writes ---

    def insert(self, book: Book) -> str:
        """Add a book and assign its authoritative identifier.

        Any reviews already attached are stored too, and rating/review_count
        are derived from them.

        Returns:
            The new book id (also set on the passed Book).

        Raises:
            ConflictError: If a book with the same ISBN already exists.
            StorageUnavailableError: If the row breaks any other constraint.
        """
        book_id = new_book_id()
        row = book_to_row(book)
        row["id"] = book_id
        if not row["upload_date"]:
            row["upload_date"] = date.today().isoformat()
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)

        try:
            with self._transaction(f"inserting {book.title!r}"):
                self._conn.execute(
                    f"INSERT INTO books ({columns}) VALUES ({placeholders})",
                    list(row.values()),
                )
                for review in book.reviews:
                    self._insert_review(book_id, review)
                self._conn.execute(_RECOMPUTE_RATING_SQL, {"id": book_id})
        except sqlite3.IntegrityError as exc:
            if "books.isbn" in str(exc):
                raise ConflictError(f"Book with ISBN {book.isbn} already exists") from exc
            logger.error("Constraint failure while inserting %r: %s", book.title, exc)
            raise StorageUnavailableError(f"Could not store {book.title!r}: {exc}") from exc

        book.id = book_id
        book.upload_date = row["upload_date"]
        logger.info("Inserted book %s (%s)", book_id, book.title)
        return book_id

    def update(self, book: Book) -> bool:
        """Rewrite a book's mutable fields.

        Reviews, rating, and review_count are not touched; use add_review().

        Returns:
            True if a row was updated, False if no book has this id.

        Raises:
            InvalidIdError: If book.id is missing or malformed.
            ConflictError: If the new ISBN belongs to another book.
        """
        validate_book_id(book.id)
        row = book_to_row(book)
        set_clause = ", ".join(f"{column} = ?" for column in UPDATABLE_COLUMNS)
        set_clause += ", date_modified = strftime('%Y-%m-%dT%H:%M:%S', 'now')"
        values = [row[column] for column in UPDATABLE_COLUMNS]
        values.append(book.id)

        try:
            with self._transaction(f"updating {book.id}"):
                cursor = self._conn.execute(
                    f"UPDATE books SET {set_clause} WHERE id = ?",
                    values,
                )
        except sqlite3.IntegrityError as exc:
            raise ConflictError(f"Book with ISBN {book.isbn} already exists") from exc

        return cursor.rowcount > 0

    def delete(self, book_id: str) -> bool:
        """Delete a book and its reviews.

        Returns:
            True if deleted, False if no book has this id.

        Raises:
            ConflictError: If the book is currently held by a borrower.
        """
        validate_book_id(book_id)
        with self._transaction(f"deleting {book_id}"):
            row = self._conn.execute(
                "SELECT holder_id FROM books WHERE id = ?", (book_id,)
            ).fetchone()
            if row is None:
                return False
            if row["holder_id"]:
                raise ConflictError(
                    f"Book {book_id} is currently held by {row['holder_id']}"
                )
            self._conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
        logger.info("Deleted book %s", book_id)
        return True

    def _insert_review(self, book_id: str, review: Review) -> None:
        self._conn.execute(
            "INSERT INTO reviews (book_id, reviewer_id, rating, comment, review_date) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                book_id,
                review.reviewer_id,
                review.rating,
                review.comment,
                review.review_date.isoformat(),
            ),
        )

    def add_review(self, book_id: str, review: Review) -> Book:
        """Append a review and recompute the book's rating and review count.

        The insert and the recomputation from the stored reviews happen in
        one IMMEDIATE transaction, so concurrent appends cannot lose an update.

        Returns:
            The book as it stands after the review.

        Raises:
            InvalidArgumentError: If the rating is outside [1, 5] or the reviewer is empty.
            NotFoundError: If the book does not exist.
        """
        validate_book_id(book_id)
        if not MIN_REVIEW_RATING <= review.rating <= MAX_REVIEW_RATING:
            raise InvalidArgumentError(
                f"Review rating must be between {MIN_REVIEW_RATING:g} and "
                f"{MAX_REVIEW_RATING:g}, got {review.rating}"
            )
        if not review.reviewer_id:
            raise InvalidArgumentError("Reviewer id cannot be empty")

        with self._transaction(f"adding review to {book_id}"):
            exists = self._conn.execute(
                "SELECT 1 FROM books WHERE id = ?", (book_id,)
            ).fetchone()
            if exists is None:
                raise NotFoundError(f"Book with id {book_id} not found")
            self._insert_review(book_id, review)
            self._conn.execute(_RECOMPUTE_RATING_SQL, {"id": book_id})

        book = self.require(book_id)
        logger.info(
            "Added review to %s: review count %d, average rating %.2f",
            book_id,
            book.review_count,
            book.rating,
        )
        return book

    def borrow(self, book_id: str, holder_id: str, days: int) -> Book:
        """Mark a book as held by holder_id for the given number of days.

        Raises:
            NotFoundError: If the book does not exist.
            ConflictError: If someone already holds it.
        """
        return self.borrow_many({book_id: days}, holder_id)[0]

    def borrow_many(self, loans: dict[str, int], holder_id: str) -> list[Book]:
        """Lend several books to holder_id in one transaction.

        loans maps book id to loan length in days. Either every book is
        lent or none is.

        Raises:
            InvalidArgumentError: If holder_id is empty or a loan length is below 1.
            NotFoundError: If any book does not exist.
            ConflictError: If anyone already holds any of the books.
        """
        if not holder_id:
            raise InvalidArgumentError("Holder id cannot be empty")
        for book_id, days in loans.items():
            validate_book_id(book_id)
            if days < 1:
                raise InvalidArgumentError(f"Loan length must be positive, got {days}")

        today = date.today()
        with self._transaction(f"lending {len(loans)} book(s) to {holder_id}"):
            for book_id in loans:
                row = self._conn.execute(
                    "SELECT title, holder_id FROM books WHERE id = ?", (book_id,)
                ).fetchone()
                if row is None:
                    raise NotFoundError(f"Book with id {book_id} not found")
                if row["holder_id"]:
                    raise ConflictError(f"{row['title']} is already borrowed")
            for book_id, days in loans.items():
                self._conn.execute(
                    "UPDATE books SET holder_id = ?, borrow_date = ?, return_date = ?, "
                    "date_modified = strftime('%Y-%m-%dT%H:%M:%S', 'now') WHERE id = ?",
                    (
                        holder_id,
                        today.isoformat(),
                        (today + timedelta(days=days)).isoformat(),
                        book_id,
                    ),
                )
        logger.info("Lent %d book(s) to %s", len(loans), holder_id)
        return [self.require(book_id) for book_id in loans]

    def return_book(self, book_id: str) -> Book:
        """Clear the holder of a borrowed book and stamp the actual return date."""
        validate_book_id(book_id)
        with self._transaction(f"returning {book_id}"):
            cursor = self._conn.execute(
                "UPDATE books SET holder_id = NULL, return_date = ?, "
                "date_modified = strftime('%Y-%m-%dT%H:%M:%S', 'now') WHERE id = ?",
                (date.today().isoformat(), book_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(f"Book with id {book_id} not found")
        return self.require(book_id)

    def record_purchase(self, book_id: str, quantity: int = 1) -> None:
        """Atomically add quantity to a book's purchase count."""
        self.record_purchases({book_id: quantity})

    def record_purchases(self, quantities: dict[str, int]) -> None:
        """Add to several books' purchase counts in one transaction.

        Raises:
            InvalidArgumentError: If any quantity is below 1.
            NotFoundError: If any book does not exist; no count changes.
        """
        for book_id, quantity in quantities.items():
            validate_book_id(book_id)
            if quantity < 1:
                raise InvalidArgumentError(f"Purchase quantity must be positive, got {quantity}")
        with self._transaction(f"recording purchase of {len(quantities)} book(s)"):
            for book_id, quantity in quantities.items():
                cursor = self._conn.execute(
                    "UPDATE books SET total_purchases = total_purchases + ? WHERE id = ?",
                    (quantity, book_id),
                )
                if cursor.rowcount == 0:
                    raise NotFoundError(f"Book with id {book_id} not found")
