# ABOUTME: In-memory shopping carts (purchase and borrow variants) and their pricing rules.
# ABOUTME: Totals are recomputed from the line items on every call; nothing is cached.

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace

from bookhub.errors import ConflictError, InvalidArgumentError, NotFoundError

logger = logging.getLogger(__name__)

MAX_QUANTITY = 99
MIN_BORROW_DAYS = 1
MAX_BORROW_DAYS = 90
DEFAULT_BORROW_DAYS = 30


@dataclass(frozen=True)
class PricingRules:
    """Fees and promo settings applied by compute_totals()."""

    online_fee: float = 58.0
    delivery_fee: float = 60.0
    promo_code: str = "SAVE10"
    promo_rate: float = 0.10

    def __post_init__(self) -> None:
        if self.online_fee < 0 or self.delivery_fee < 0:
            raise InvalidArgumentError("Fees cannot be negative")
        if not 0.0 <= self.promo_rate <= 1.0:
            raise InvalidArgumentError(
                f"promo_rate must be between 0.0 and 1.0, got {self.promo_rate}"
            )
        if not self.promo_code.strip():
            raise InvalidArgumentError("promo_code cannot be empty")


@dataclass
class CartItem:
    """One line in a cart. quantity is used by Cart, borrow_days by BorrowCart."""

    book_id: str
    name: str
    unit_price: float
    image_url: str | None = None
    quantity: int = 1
    borrow_days: int = DEFAULT_BORROW_DAYS


@dataclass(frozen=True)
class CartTotals:
    """A priced snapshot of a cart."""

    gross: float
    discount: float
    subtotal: float
    online_fee: float
    delivery_fee: float
    total: float
    item_count: int
    promo_applied: bool


class _BaseCart(ABC):
    """Shared bookkeeping for both cart variants: items, promo state, totals."""

    def __init__(self, pricing: PricingRules | None = None) -> None:
        self._pricing = pricing or PricingRules()
        self._items: dict[str, CartItem] = {}
        self._promo_applied = False

    @property
    def pricing(self) -> PricingRules:
        return self._pricing

    @property
    def promo_applied(self) -> bool:
        return self._promo_applied

    @property
    def items(self) -> list[CartItem]:
        """Copies of the line items, in the order they were added."""
        return [replace(item) for item in self._items.values()]

    def get(self, book_id: str) -> CartItem | None:
        item = self._items.get(book_id)
        return replace(item) if item else None

    def __contains__(self, book_id: object) -> bool:
        return book_id in self._items

    def __len__(self) -> int:
        return len(self._items)

    def remove_item(self, book_id: str) -> None:
        """Remove a line item.

        Raises:
            NotFoundError: If the book is not in the cart.
        """
        self._require(book_id)
        del self._items[book_id]

    def clear(self) -> None:
        """Remove every line item. Promo state is kept."""
        self._items.clear()

    def apply_promo(self, code: str) -> bool:
        """Apply the configured promo code (case-insensitive).

        Returns:
            True if the code was applied now, False if it was already applied.

        Raises:
            InvalidArgumentError: If the code does not match; state is unchanged.
        """
        if self._promo_applied:
            logger.info("Promo code already applied, ignoring %r", code)
            return False
        if code.strip().casefold() != self._pricing.promo_code.casefold():
            raise InvalidArgumentError(f"Invalid promo code: {code!r}")
        self._promo_applied = True
        return True

    def compute_totals(self) -> CartTotals:
        """Price the cart: gross, promo discount, fees, and grand total."""
        gross = sum(self._line_total(item) for item in self._items.values())
        subtotal = gross * (1 - self._pricing.promo_rate) if self._promo_applied else gross
        total = subtotal + self._pricing.online_fee + self._pricing.delivery_fee
        return CartTotals(
            gross=gross,
            discount=gross - subtotal,
            subtotal=subtotal,
            online_fee=self._pricing.online_fee,
            delivery_fee=self._pricing.delivery_fee,
            total=total,
            item_count=len(self._items),
            promo_applied=self._promo_applied,
        )

    def line_total(self, book_id: str) -> float:
        return self._line_total(self._require(book_id))

    @abstractmethod
    def _line_total(self, item: CartItem) -> float:
        """Price of one line before promo and fees."""

    def _require(self, book_id: str) -> CartItem:
        item = self._items.get(book_id)
        if item is None:
            raise NotFoundError(f"Item not found in cart: {book_id}")
        return item

    @staticmethod
    def _validate_item_input(book_id: str, name: str, price: float) -> None:
        if not book_id or not book_id.strip():
            raise InvalidArgumentError("Item ID cannot be empty")
        if not name or not name.strip():
            raise InvalidArgumentError("Item name cannot be empty")
        if price < 0:
            raise InvalidArgumentError("Price cannot be negative")


def _parse_bounded(raw: str | int, low: int, high: int) -> int | None:
    """Parse UI input as an int within [low, high], or None if it isn't one."""
    try:
        value = int(str(raw).strip())
    except ValueError:
        return None
    if not low <= value <= high:
        return None
    return value


class Cart(_BaseCart):
    """Purchase cart: re-adding a book increments its quantity up to MAX_QUANTITY."""

    def add_item(
        self, book_id: str, name: str, price: float, image_url: str | None = None
    ) -> bool:
        """Add one unit of a book.

        Returns:
            True if the cart changed, False if the quantity cap was already reached.

        Raises:
            InvalidArgumentError: On empty id/name or negative price.
        """
        self._validate_item_input(book_id, name, price)

        item = self._items.get(book_id)
        if item is None:
            self._items[book_id] = CartItem(book_id, name, price, image_url)
            return True
        if item.quantity >= MAX_QUANTITY:
            logger.warning("Maximum quantity limit reached for item: %s", name)
            return False
        item.quantity += 1
        return True

    def set_quantity(self, book_id: str, quantity: int) -> None:
        """Set an item's quantity.

        Raises:
            NotFoundError: If the book is not in the cart.
            InvalidArgumentError: If quantity is outside [1, MAX_QUANTITY].
        """
        item = self._require(book_id)
        if not 1 <= quantity <= MAX_QUANTITY:
            raise InvalidArgumentError(f"Invalid quantity. Must be between 1 and {MAX_QUANTITY}")
        item.quantity = quantity

    def apply_quantity_input(self, book_id: str, raw: str | int) -> int:
        """Apply user-typed quantity; invalid input snaps back to the current value.

        Returns:
            The quantity now in effect.
        """
        item = self._require(book_id)
        value = _parse_bounded(raw, 1, MAX_QUANTITY)
        if value is None:
            logger.warning("Ignoring invalid quantity %r for %s", raw, book_id)
            return item.quantity
        item.quantity = value
        return value

    def _line_total(self, item: CartItem) -> float:
        return item.unit_price * item.quantity


class BorrowCart(_BaseCart):
    """Borrow cart: each book is a unique good, priced per day borrowed.

    unit_price is the price of a DEFAULT_BORROW_DAYS loan, so a line costs
    unit_price / DEFAULT_BORROW_DAYS * borrow_days.
    """

    def add_item(
        self,
        book_id: str,
        name: str,
        price: float,
        image_url: str | None = None,
        borrow_days: int = DEFAULT_BORROW_DAYS,
    ) -> bool:
        """Add a book for borrowing.

        Raises:
            ConflictError: If the book is already in the cart.
            InvalidArgumentError: On empty id/name, negative price, or bad duration.
        """
        self._validate_item_input(book_id, name, price)
        self._check_days(borrow_days)
        if book_id in self._items:
            raise ConflictError(f"Book already in cart: {name}")
        self._items[book_id] = CartItem(book_id, name, price, image_url, borrow_days=borrow_days)
        return True

    def set_borrow_days(self, book_id: str, days: int) -> None:
        item = self._require(book_id)
        self._check_days(days)
        item.borrow_days = days

    def set_all_borrow_days(self, days: int) -> None:
        """Apply one borrow duration to every line."""
        self._check_days(days)
        for item in self._items.values():
            item.borrow_days = days

    def apply_borrow_days_input(self, book_id: str, raw: str | int) -> int:
        """Apply user-typed duration; invalid input snaps back to the current value."""
        item = self._require(book_id)
        value = _parse_bounded(raw, MIN_BORROW_DAYS, MAX_BORROW_DAYS)
        if value is None:
            logger.warning("Ignoring invalid borrow duration %r for %s", raw, book_id)
            return item.borrow_days
        item.borrow_days = value
        return value

    def _line_total(self, item: CartItem) -> float:
        return item.unit_price / DEFAULT_BORROW_DAYS * item.borrow_days

    @staticmethod
    def _check_days(days: int) -> None:
        if not MIN_BORROW_DAYS <= days <= MAX_BORROW_DAYS:
            raise InvalidArgumentError(
                f"Invalid borrow duration. Must be between {MIN_BORROW_DAYS} and {MAX_BORROW_DAYS}"
            )
