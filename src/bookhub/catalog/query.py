# ABOUTME: Catalog query engine: search, conjunctive filters, stable sorting, and fixed-size pages.
# ABOUTME: Filters run in a fixed order over a materialized list; paging is applied last.

import logging
import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from bookhub.catalog.types import Availability, Book, SortKey, ViewMode
from bookhub.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 12
HIGHLY_RATED_FLOOR = 4.0


@dataclass
class CatalogQuery:
    """Options for one catalog query. Unset options do not filter."""

    search_term: str | None = None
    author: str | None = None
    publisher: str | None = None
    language: str | None = None
    category: str | None = None
    min_price: float | str | None = None
    max_price: float | str | None = None
    min_rating: float | None = None
    from_date: date | str | None = None
    to_date: date | str | None = None
    availability: Availability = Availability.ANY
    discount_only: bool = False
    sort_by: SortKey = SortKey.RELEVANCE
    ascending: bool = False
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass
class QueryPage:
    """One page of query results plus the numbers needed to page through the rest."""

    items: list[Book] = field(default_factory=list)
    page: int = 0
    page_count: int = 1
    total: int = 0

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.page_count


@dataclass
class FilterOptions:
    """Distinct values present in the catalog, for filter pickers."""

    languages: list[str] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    publishers: list[str] = field(default_factory=list)


def parse_publication_date(value: str | None) -> date | None:
    """Parse a YYYY-MM-DD publication date, returning None when unparsable."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def _parse_price_bound(raw: float | str | None, name: str) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid %s filter value: %r", name, raw)
        return None


def _parse_date_bound(raw: date | str | None, name: str) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, date):
        return raw
    parsed = parse_publication_date(raw)
    if parsed is None:
        logger.warning("Ignoring invalid %s filter value: %r", name, raw)
    return parsed


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle in haystack.casefold()


def matches_search(book: Book, term: str) -> bool:
    """True if term occurs in any searchable field of the book (case-insensitive)."""
    needle = term.casefold()
    return (
        _contains(book.title, needle)
        or _contains(book.author, needle)
        or any(_contains(c, needle) for c in book.categories)
        or _contains(book.publisher, needle)
        or _contains(book.description, needle)
        or _contains(book.isbn, needle)
        or _contains(book.id, needle)
    )


def _text_filters(books: list[Book], params: CatalogQuery) -> list[Book]:
    term = (params.search_term or "").strip()
    if term:
        return [b for b in books if matches_search(b, term)]

    if params.author:
        needle = params.author.casefold()
        books = [b for b in books if _contains(b.author, needle)]
    if params.publisher:
        needle = params.publisher.casefold()
        books = [b for b in books if _contains(b.publisher, needle)]
    return books


def _selection_filters(books: list[Book], params: CatalogQuery, searching: bool) -> list[Book]:
    if params.language:
        wanted = params.language.casefold()
        books = [b for b in books if b.language.casefold() == wanted]
    if params.category and not searching:
        books = [b for b in books if params.category in b.categories]
    return books


def _numeric_filters(books: list[Book], params: CatalogQuery) -> list[Book]:
    low = _parse_price_bound(params.min_price, "min_price")
    high = _parse_price_bound(params.max_price, "max_price")
    if low is not None:
        books = [b for b in books if b.current_price >= low]
    if high is not None:
        books = [b for b in books if b.current_price <= high]
    if params.min_rating is not None:
        books = [b for b in books if b.rating >= params.min_rating]
    return books


def _date_filters(books: list[Book], params: CatalogQuery) -> list[Book]:
    start = _parse_date_bound(params.from_date, "from_date")
    end = _parse_date_bound(params.to_date, "to_date")
    if start is None and end is None:
        return books

    def in_range(book: Book) -> bool:
        published = parse_publication_date(book.publication_date)
        if published is None:
            # Undated books stay visible.
            return True
        if start is not None and published < start:
            return False
        return end is None or published <= end

    return [b for b in books if in_range(b)]


def _special_filters(books: list[Book], params: CatalogQuery) -> list[Book]:
    availability = Availability(params.availability)
    if availability in (Availability.AVAILABLE_NOW, Availability.FOR_BORROW):
        books = [b for b in books if b.is_available]
    # Every listed book can be bought, so FOR_PURCHASE keeps everything.
    if params.discount_only:
        books = [b for b in books if b.has_discount]
    return books


_SORT_KEYS: dict[SortKey, Callable[[Book], object]] = {
    SortKey.TITLE: lambda b: b.title.casefold(),
    SortKey.AUTHOR: lambda b: b.author.casefold(),
    SortKey.PRICE: lambda b: b.current_price,
    SortKey.RATING: lambda b: b.rating,
    SortKey.PUBLICATION_DATE: lambda b: parse_publication_date(b.publication_date) or date.min,
}


def sort_books(books: Iterable[Book], sort_by: SortKey, ascending: bool = False) -> list[Book]:
    """Stable sort; equal keys keep their incoming order in either direction.

    RELEVANCE returns the books unchanged. Undated books sort as the oldest.
    """
    sort_by = SortKey(sort_by)
    if sort_by is SortKey.RELEVANCE:
        return list(books)
    return sorted(books, key=_SORT_KEYS[sort_by], reverse=not ascending)


def run_query(books: Sequence[Book], params: CatalogQuery) -> list[Book]:
    """Filter and sort books without paging them.

    Filter order: text, selection, numeric, date, availability/discount.
    A non-empty search_term replaces the author, publisher, and category
    filters.
    """
    searching = bool((params.search_term or "").strip())
    result = _text_filters(list(books), params)
    result = _selection_filters(result, params, searching)
    result = _numeric_filters(result, params)
    result = _date_filters(result, params)
    result = _special_filters(result, params)
    return sort_books(result, params.sort_by, params.ascending)


def page_count(total: int, page_size: int) -> int:
    return max(1, math.ceil(total / page_size))


def paginate(items: Sequence[Book], page: int, page_size: int = DEFAULT_PAGE_SIZE) -> QueryPage:
    """Cut one zero-based page out of items.

    A page past the end is empty but still reports the real page count.

    Raises:
        InvalidArgumentError: If page is negative or page_size is below 1.
    """
    if page_size < 1:
        raise InvalidArgumentError(f"Page size must be at least 1, got {page_size}")
    if page < 0:
        raise InvalidArgumentError(f"Page must not be negative, got {page}")
    start = page * page_size
    return QueryPage(
        items=list(items[start : start + page_size]),
        page=page,
        page_count=page_count(len(items), page_size),
        total=len(items),
    )


def view_query(
    view_mode: ViewMode | str,
    category: str | None = None,
    publisher: str | None = None,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> CatalogQuery:
    """Build the preset query behind a session catalog view."""
    mode = ViewMode(view_mode)
    if mode is ViewMode.HIGHLY_RATED:
        return CatalogQuery(
            min_rating=HIGHLY_RATED_FLOOR, sort_by=SortKey.RATING, page_size=page_size
        )
    if mode is ViewMode.BY_CATEGORY:
        if not category:
            raise InvalidArgumentError("The by-category view needs a category")
        return CatalogQuery(category=category, page_size=page_size)
    if mode is ViewMode.BY_PUBLISHER:
        if not publisher:
            raise InvalidArgumentError("The by-publisher view needs a publisher")
        return CatalogQuery(publisher=publisher, page_size=page_size)
    return CatalogQuery(page_size=page_size)


def extract_filter_options(books: Iterable[Book]) -> FilterOptions:
    """Collect the sorted distinct languages, categories, and publishers."""
    languages: set[str] = set()
    categories: set[str] = set()
    publishers: set[str] = set()
    for book in books:
        if book.language:
            languages.add(book.language)
        if book.publisher:
            publishers.add(book.publisher)
        categories.update(c for c in book.categories if c)
    return FilterOptions(
        languages=sorted(languages, key=str.casefold),
        categories=sorted(categories, key=str.casefold),
        publishers=sorted(publishers, key=str.casefold),
    )


class CatalogQueryEngine:
    """Runs catalog queries against whatever the repository currently holds."""

    def __init__(self, repository) -> None:
        self._repository = repository

    def query(self, params: CatalogQuery, page: int = 0) -> QueryPage:
        books = self._repository.get_all()
        matched = run_query(books, params)
        logger.debug("Query matched %d of %d books", len(matched), len(books))
        return paginate(matched, page, params.page_size)

    def view(
        self,
        view_mode: ViewMode | str,
        category: str | None = None,
        publisher: str | None = None,
        page: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> QueryPage:
        return self.query(view_query(view_mode, category, publisher, page_size), page)

    def filter_options(self) -> FilterOptions:
        return extract_filter_options(self._repository.get_all())
