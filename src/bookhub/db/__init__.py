# ABOUTME: Public API for the BookHub database layer.
# ABOUTME: Exports connection management, the book and account repositories, and row mapping.

from bookhub.db.accounts import AccountRepository, UserAccount
from bookhub.db.catalog import BookRepository, new_book_id, validate_book_id
from bookhub.db.connection import open_store

__all__ = [
    "AccountRepository",
    "BookRepository",
    "UserAccount",
    "new_book_id",
    "open_store",
    "validate_book_id",
]
