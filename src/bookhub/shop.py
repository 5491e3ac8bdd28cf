# ABOUTME: The Bookshop service container: builds, owns, and closes every BookHub service.
# ABOUTME: Hosts the flows that span services (login and session, cart from session, checkout).

import logging
import sqlite3
from dataclasses import dataclass, field

from bookhub.cart import DEFAULT_BORROW_DAYS, BorrowCart, Cart, CartItem, CartTotals
from bookhub.catalog.listing import ListingRequest, create_listing
from bookhub.catalog.query import CatalogQuery, CatalogQueryEngine, QueryPage, view_query
from bookhub.catalog.types import Book, Review, ViewMode
from bookhub.config import ShopConfig
from bookhub.db.accounts import AccountRepository, UserAccount
from bookhub.db.catalog import BookRepository
from bookhub.db.connection import open_store
from bookhub.errors import ConflictError, InvalidArgumentError, NotFoundError
from bookhub.identity.credentials import CredentialStore
from bookhub.metadata.provider import BibliographicLookup
from bookhub.session import SessionState

logger = logging.getLogger(__name__)


@dataclass
class CheckoutReceipt:
    """What a completed checkout bought or borrowed, and what it cost."""

    items: list[CartItem]
    totals: CartTotals
    borrowed: bool = False
    book_ids: list[str] = field(default_factory=list)


class Bookshop:
    """Owns the store connection and the services built on it.

    Construct with open_bookshop(); close() (or leaving a with-block)
    releases the connection.
    """

    def __init__(
        self,
        config: ShopConfig,
        conn: sqlite3.Connection,
        session: SessionState,
        lookup: BibliographicLookup | None = None,
    ) -> None:
        self.config = config
        self._conn = conn
        self.books = BookRepository(conn)
        self.accounts = AccountRepository(conn)
        self.credentials = CredentialStore(self.accounts)
        self.queries = CatalogQueryEngine(self.books)
        self.session = session
        self.lookup = lookup
        self._closed = False

    def close(self) -> None:
        if self._closed:
            return
        self._conn.close()
        self._closed = True

    def __enter__(self) -> "Bookshop":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # --- Identity ---

    def register(self, full_name: str, email: str, username: str, password: str) -> UserAccount:
        return self.credentials.register(full_name, email, username, password)

    def login(self, identifier: str, password: str) -> UserAccount:
        """Check credentials and record the user in the session.

        Raises:
            InvalidArgumentError: If the username/email or password is wrong.
        """
        if not self.credentials.validate_login(identifier, password):
            raise InvalidArgumentError("Invalid username or password")
        if "@" in identifier:
            account = self.accounts.find_by_email(identifier)
        else:
            account = self.accounts.find_by_username(identifier)
        if account is None:
            raise NotFoundError(f"User {identifier} not found")
        self.session.login(account.username)
        logger.info("Logged in as %s", account.username)
        return account

    def logout(self) -> None:
        self.session.logout()

    def current_user(self) -> UserAccount | None:
        if not self.session.is_logged_in or not self.session.username:
            return None
        return self.credentials.get_user(self.session.username)

    def require_user(self) -> UserAccount:
        """The logged-in account.

        Raises:
            InvalidArgumentError: If nobody is logged in.
        """
        account = self.current_user()
        if account is None:
            raise InvalidArgumentError("You must be logged in to do that")
        return account

    def change_password(self, old_password: str, new_password: str) -> None:
        account = self.require_user()
        self.credentials.change_password(account.username, old_password, new_password)

    # --- Catalog ---

    def browse(self, params: CatalogQuery | None = None, page: int = 0) -> QueryPage:
        if params is None:
            params = CatalogQuery(page_size=self.config.page_size)
        return self.queries.query(params, page)

    def current_view(self, page: int = 0) -> QueryPage:
        """Run the catalog view recorded in the session."""
        return self.queries.view(
            self.session.view_mode,
            self.session.category,
            self.session.publisher,
            page=page,
            page_size=self.config.page_size,
        )

    def set_view(
        self,
        view_mode: ViewMode | str,
        category: str | None = None,
        publisher: str | None = None,
    ) -> None:
        """Save a catalog view in the session after checking it can be run."""
        view_query(view_mode, category, publisher)
        self.session.set_view(view_mode, category, publisher)

    def open_book(self, book_id: str) -> Book:
        """Fetch a book and remember it as the one being viewed."""
        book = self.books.require(book_id)
        self.session.set_current_book(book.id)
        return book

    def add_listing(self, request: ListingRequest, use_lookup: bool = False) -> Book:
        """Create a listing owned by the logged-in user, if there is one."""
        account = self.current_user()
        if account is not None and request.seller_id is None:
            request.seller_id = account.user_id
        book = create_listing(self.books, request, self.lookup if use_lookup else None)
        if account is not None and book.id:
            self.credentials.share_book(account.user_id, book.id)
        return book

    def review_book(self, book_id: str, rating: float, comment: str = "") -> Book:
        account = self.require_user()
        return self.books.add_review(
            book_id, Review(reviewer_id=account.user_id, rating=rating, comment=comment)
        )

    def delete_book(self, book_id: str) -> bool:
        """Delete a book unless it is in the cart or on loan.

        Raises:
            ConflictError: If the active cart or a borrower references the book.
        """
        if book_id in self.session.cart_item_ids:
            raise ConflictError(f"Book {book_id} is in the active cart")
        return self.books.delete(book_id)

    def return_book(self, book_id: str) -> Book:
        account = self.require_user()
        book = self.books.require(book_id)
        if book.holder_id != account.user_id:
            raise ConflictError(f"Book {book_id} is not borrowed by {account.username}")
        return self.books.return_book(book_id)

    # --- Cart ---

    def _cart_books(self) -> list[Book]:
        """Books behind the session cart ids, dropping ids that no longer exist."""
        books = []
        for book_id in self.session.cart_item_ids:
            book = self.books.get(book_id)
            if book is None:
                logger.warning("Dropping missing book %s from the cart", book_id)
                self.session.remove_from_cart(book_id)
                continue
            books.append(book)
        return books

    def build_cart(self) -> Cart:
        """A purchase cart holding one of each book recorded in the session."""
        cart = Cart(self.config.pricing)
        for book in self._cart_books():
            cart.add_item(book.id, book.title, book.current_price, book.image_url)
        return cart

    def build_borrow_cart(self, borrow_days: int = DEFAULT_BORROW_DAYS) -> BorrowCart:
        cart = BorrowCart(self.config.pricing)
        for book in self._cart_books():
            cart.add_item(book.id, book.title, book.current_price, book.image_url, borrow_days)
        return cart

    def add_to_cart(self, book_id: str) -> bool:
        """Put a book in the session cart. False if it was already there.

        Raises:
            NotFoundError: If the book does not exist.
        """
        book = self.books.require(book_id)
        return self.session.add_to_cart(book.id)

    def remove_from_cart(self, book_id: str) -> None:
        if not self.session.remove_from_cart(book_id):
            raise NotFoundError(f"Item not found in cart: {book_id}")

    def clear_cart(self) -> None:
        self.session.clear_cart()

    def checkout(self, promo_code: str | None = None) -> CheckoutReceipt:
        """Buy everything in the cart, record the purchases, and empty the cart.

        Raises:
            InvalidArgumentError: If nobody is logged in, the cart is empty,
                or the promo code is invalid.
        """
        self.require_user()
        cart = self.build_cart()
        if not len(cart):
            raise InvalidArgumentError("Cart is empty")
        if promo_code:
            cart.apply_promo(promo_code)
        totals = cart.compute_totals()

        items = cart.items
        self.books.record_purchases({item.book_id: item.quantity for item in items})
        self.session.clear_cart()
        logger.info("Checked out %d item(s), total %.2f", totals.item_count, totals.total)
        return CheckoutReceipt(items, totals, book_ids=[i.book_id for i in items])

    def borrow_checkout(
        self, borrow_days: int = DEFAULT_BORROW_DAYS, promo_code: str | None = None
    ) -> CheckoutReceipt:
        """Borrow everything in the cart for borrow_days and empty the cart.

        The books are lent in one transaction, so a conflict leaves every
        book and the cart as they were.

        Raises:
            InvalidArgumentError: If nobody is logged in or the cart is empty.
            ConflictError: If a book in the cart is already on loan.
        """
        account = self.require_user()
        cart = self.build_borrow_cart(borrow_days)
        if not len(cart):
            raise InvalidArgumentError("Cart is empty")
        if promo_code:
            cart.apply_promo(promo_code)
        totals = cart.compute_totals()

        items = cart.items
        self.books.borrow_many({item.book_id: item.borrow_days for item in items}, account.user_id)
        book_ids = [item.book_id for item in items]
        self.credentials.add_borrowed_books(account.user_id, book_ids)
        self.session.clear_cart()
        return CheckoutReceipt(items, totals, borrowed=True, book_ids=book_ids)


def open_bookshop(
    config: ShopConfig | None = None, lookup: BibliographicLookup | None = None
) -> Bookshop:
    """Open the store and session named by config and wire up the services.

    A session naming a user who no longer exists is logged out.

    Raises:
        StorageUnavailableError: If the database cannot be opened.
    """
    config = config or ShopConfig()
    conn = open_store(config.db_path)
    session = SessionState.load(config.session_path)
    shop = Bookshop(config, conn, session, lookup)
    if session.is_logged_in and shop.current_user() is None:
        logger.warning("Session user %s no longer exists, logging out", session.username)
        session.logout()
    return shop
