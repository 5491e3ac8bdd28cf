# ABOUTME: Core catalog data structures: Book, Review, and the pricing formula.
# ABOUTME: Book is the interchange format between the repository, query engine, cart, and CLI.

from dataclasses import dataclass, field
from datetime import date
from enum import Enum

MAX_CATEGORIES = 5
MIN_REVIEW_RATING = 1.0
MAX_REVIEW_RATING = 5.0


class ViewMode(str, Enum):
    """Which preset catalog view the session is looking at."""

    ALL_BOOKS = "all-books"
    HIGHLY_RATED = "highly-rated"
    BY_CATEGORY = "by-category"
    BY_PUBLISHER = "by-publisher"


class Availability(str, Enum):
    """Availability filter values for catalog queries."""

    ANY = "any"
    AVAILABLE_NOW = "available-now"
    FOR_PURCHASE = "for-purchase"
    FOR_BORROW = "for-borrow"


class SortKey(str, Enum):
    """Sort keys recognized by the query engine. RELEVANCE keeps match order."""

    RELEVANCE = "relevance"
    TITLE = "title"
    AUTHOR = "author"
    PRICE = "price"
    RATING = "rating"
    PUBLICATION_DATE = "publication-date"


def clamp_discount(discount: float) -> float:
    """Clamp a discount percentage into [0, 100]."""
    return min(max(discount, 0.0), 100.0)


def compute_current_price(original_price: float, discount: float) -> float:
    """Apply a percentage discount: original * (1 - discount/100)."""
    return original_price * (1 - clamp_discount(discount) / 100)


def average_rating(ratings: list[float]) -> float:
    """Arithmetic mean of review ratings, 0.0 when there are none."""
    if not ratings:
        return 0.0
    return sum(ratings) / len(ratings)


@dataclass(frozen=True)
class Review:
    """A single buyer review. Immutable once created."""

    reviewer_id: str
    rating: float
    comment: str = ""
    review_date: date = field(default_factory=date.today)


@dataclass
class Book:
    """A catalog listing.

    current_price is derived from original_price and discount on every read,
    so the two can never disagree. rating and review_count are derived from
    reviews; use add_review() rather than assigning them directly.
    """

    title: str
    author: str = ""
    id: str | None = None
    publisher: str = ""
    publication_date: str = ""
    language: str = ""
    isbn: str | None = None
    pages: int = 0
    description: str = ""
    image_url: str | None = None
    original_price: float = 0.0
    discount: float = 0.0
    categories: tuple[str, ...] = ()
    rating: float = 0.0
    review_count: int = 0
    total_purchases: int = 0
    seller_id: str | None = None
    holder_id: str | None = None
    upload_date: str | None = None
    borrow_date: str | None = None
    return_date: str | None = None
    featured: bool = False
    reviews: tuple[Review, ...] = ()

    @property
    def current_price(self) -> float:
        return compute_current_price(self.original_price, self.discount)

    @property
    def is_available(self) -> bool:
        """True when no one is currently holding (borrowing) the book."""
        return not self.holder_id

    @property
    def has_discount(self) -> bool:
        return self.discount > 0

    def add_review(self, review: Review) -> None:
        """Append a review and recompute rating and review_count together."""
        self.reviews = (*self.reviews, review)
        self.rating = average_rating([r.rating for r in self.reviews])
        self.review_count = len(self.reviews)
