# ABOUTME: Converts between Book/Review dataclasses and SQLite row dictionaries.
# ABOUTME: Handles JSON serialization for categories and substitutes defaults for missing columns.

import json
import logging
from datetime import date
from typing import Any

from bookhub.catalog.types import Book, Review

logger = logging.getLogger(__name__)

# Columns an update may rewrite. id, rating, review_count, and the reviews
# table are owned by insert/add_review.
UPDATABLE_COLUMNS = (
    "title",
    "author",
    "publisher",
    "publication_date",
    "language",
    "isbn",
    "pages",
    "description",
    "image_url",
    "original_price",
    "current_price",
    "discount",
    "categories",
    "total_purchases",
    "seller_id",
    "holder_id",
    "upload_date",
    "borrow_date",
    "return_date",
    "featured",
)


def book_to_row(book: Book) -> dict[str, Any]:
    """Convert a Book to a dict suitable for INSERT/UPDATE.

    Serializes categories as a JSON array and writes the derived
    current_price so SQL-side sorts see the same value as Python.
    """
    return {
        "id": book.id,
        "title": book.title,
        "author": book.author,
        "publisher": book.publisher,
        "publication_date": book.publication_date,
        "language": book.language,
        "isbn": book.isbn or None,
        "pages": book.pages,
        "description": book.description,
        "image_url": book.image_url,
        "original_price": book.original_price,
        "current_price": book.current_price,
        "discount": book.discount,
        "categories": json.dumps(list(book.categories)),
        "rating": book.rating,
        "review_count": book.review_count,
        "total_purchases": book.total_purchases,
        "seller_id": book.seller_id,
        "holder_id": book.holder_id,
        "upload_date": book.upload_date,
        "borrow_date": book.borrow_date,
        "return_date": book.return_date,
        "featured": int(book.featured),
    }


def _parse_categories(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    try:
        values = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring malformed categories value: %r", raw)
        return ()
    if not isinstance(values, list):
        return ()
    return tuple(str(v) for v in values if v)


def row_to_review(row: Any) -> Review:
    """Convert a reviews row to a Review."""
    raw_date = row["review_date"]
    try:
        review_date = date.fromisoformat(raw_date) if raw_date else date.today()
    except ValueError:
        logger.warning("Unparsable review date %r, using today", raw_date)
        review_date = date.today()
    return Review(
        reviewer_id=row["reviewer_id"],
        rating=float(row["rating"]),
        comment=row["comment"] or "",
        review_date=review_date,
    )


def row_to_book(row: Any, reviews: list[Review] | None = None) -> Book:
    """Convert a books row (dict-like) back to a Book.

    Missing optional values become empty strings, zeros, or None rather than
    rejecting the record.
    """
    return Book(
        id=row["id"],
        title=row["title"] or "",
        author=row["author"] or "",
        publisher=row["publisher"] or "",
        publication_date=row["publication_date"] or "",
        language=row["language"] or "",
        isbn=row["isbn"],
        pages=row["pages"] or 0,
        description=row["description"] or "",
        image_url=row["image_url"],
        original_price=float(row["original_price"] or 0.0),
        discount=float(row["discount"] or 0.0),
        categories=_parse_categories(row["categories"]),
        rating=float(row["rating"] or 0.0),
        review_count=row["review_count"] or 0,
        total_purchases=row["total_purchases"] or 0,
        seller_id=row["seller_id"],
        holder_id=row["holder_id"] or None,
        upload_date=row["upload_date"],
        borrow_date=row["borrow_date"],
        return_date=row["return_date"],
        featured=bool(row["featured"]),
        reviews=tuple(reviews or ()),
    )
