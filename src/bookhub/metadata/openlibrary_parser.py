# ABOUTME: Parsing functions for Open Library JSON responses.
# ABOUTME: Turns the Books API (jscmd=data) and Search API payloads into unsaved Book records.

import logging
import re
from datetime import datetime
from typing import Any

from bookhub.catalog.types import MAX_CATEGORIES, Book

logger = logging.getLogger(__name__)

_COVERS_BASE_URL = "https://covers.openlibrary.org/b/id"
_DATE_FORMATS = ("%Y-%m-%d", "%B %d, %Y", "%b %d, %Y", "%d %B %Y", "%B %Y", "%b %Y", "%Y")
_YEAR_RE = re.compile(r"\b(\d{4})\b")


def build_cover_url(cover_id: int | str, size: str = "L") -> str:
    """Build a cover image URL from an Open Library cover id.

    Args:
        cover_id: Numeric cover id (``cover_i`` in search results).
        size: "S", "M", or "L".
    """
    return f"{_COVERS_BASE_URL}/{cover_id}-{size}.jpg"


def normalize_publish_date(raw: str | None) -> str:
    """Convert Open Library's free-form publish_date to YYYY-MM-DD.

    Year-only and month-year values are pinned to the first day. Anything
    unrecognized comes back unchanged so the record still carries it.
    """
    if not raw:
        return ""
    text = raw.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue
    match = _YEAR_RE.search(text)
    if match:
        return f"{match.group(1)}-01-01"
    return text


def _names(entries: Any) -> list[str]:
    """Pull display names out of a list of strings or {"name": ...} objects."""
    if not isinstance(entries, list):
        return []
    names = []
    for entry in entries:
        if isinstance(entry, dict):
            name = entry.get("name")
        else:
            name = entry
        if isinstance(name, str) and name.strip():
            names.append(name.strip())
    return names


def _description(value: Any) -> str:
    # Description is either a plain string or {"type": ..., "value": "..."}.
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        return str(value.get("value") or "")
    return ""


def _cover(data: dict[str, Any]) -> str | None:
    cover = data.get("cover")
    if isinstance(cover, dict):
        for size in ("large", "medium", "small"):
            if cover.get(size):
                return str(cover[size])
    cover_id = data.get("cover_i")
    if isinstance(cover_id, int):
        return build_cover_url(cover_id)
    return None


def _language(data: dict[str, Any]) -> str:
    languages = data.get("languages")
    if isinstance(languages, list) and languages:
        first = languages[0]
        key = first.get("key", "") if isinstance(first, dict) else str(first)
        return key.rsplit("/", 1)[-1]
    return ""


def _categories(data: dict[str, Any], *keys: str) -> tuple[str, ...]:
    for key in keys:
        subjects = list(dict.fromkeys(_names(data.get(key))))
        if subjects:
            return tuple(subjects[:MAX_CATEGORIES])
    return ()


def parse_books_api_response(data: Any, isbn: str) -> Book | None:
    """Parse a ``/api/books?bibkeys=ISBN:...&jscmd=data`` response.

    The payload is keyed by bibkey; an empty object means Open Library has
    no record. Returns None for an unknown ISBN or a malformed payload.
    """
    if not isinstance(data, dict) or not data:
        return None
    record = data.get(f"ISBN:{isbn}")
    if record is None:
        record = next(iter(data.values()))
    if not isinstance(record, dict) or not record.get("title"):
        logger.warning("Open Library record for ISBN %s has no title", isbn)
        return None

    authors = _names(record.get("authors"))
    publishers = _names(record.get("publishers"))
    pages = record.get("number_of_pages")

    return Book(
        title=str(record["title"]),
        author=", ".join(authors),
        publisher=publishers[0] if publishers else "",
        publication_date=normalize_publish_date(record.get("publish_date")),
        language=_language(record),
        isbn=isbn,
        pages=pages if isinstance(pages, int) and pages > 0 else 0,
        description=_description(record.get("description")) or _description(record.get("notes")),
        image_url=_cover(record),
        categories=_categories(record, "subjects", "subject_places"),
    )


def parse_search_results(data: Any) -> list[Book]:
    """Parse a ``/search.json`` response into unsaved Books, skipping untitled docs."""
    if not isinstance(data, dict):
        return []
    docs = data.get("docs")
    if not isinstance(docs, list):
        return []

    books: list[Book] = []
    for doc in docs:
        if not isinstance(doc, dict) or not doc.get("title"):
            continue
        authors = _names(doc.get("author_name"))
        publishers = _names(doc.get("publisher"))
        isbns = _names(doc.get("isbn"))
        languages = _names(doc.get("language"))
        year = doc.get("first_publish_year")
        pages = doc.get("number_of_pages_median")
        books.append(
            Book(
                title=str(doc["title"]),
                author=authors[0] if authors else "",
                publisher=publishers[0] if publishers else "",
                publication_date=f"{year}-01-01" if isinstance(year, int) else "",
                language=languages[0] if languages else "",
                isbn=isbns[0] if isbns else None,
                pages=pages if isinstance(pages, int) and pages > 0 else 0,
                image_url=_cover(doc),
                categories=_categories(doc, "subject"),
            )
        )
    return books
