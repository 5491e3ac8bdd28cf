# ABOUTME: Shared pytest fixtures for BookHub tests.
# ABOUTME: Provides temporary stores, repositories, a credential store, and a wired Bookshop.

import sqlite3
from collections.abc import Iterator
from pathlib import Path

import pytest

from bookhub.cart import PricingRules
from bookhub.catalog.types import Book
from bookhub.config import ShopConfig
from bookhub.db.accounts import AccountRepository
from bookhub.db.catalog import BookRepository
from bookhub.db.connection import open_store
from bookhub.identity.credentials import CredentialStore
from bookhub.shop import Bookshop, open_bookshop
from tests.fixtures.catalog_books import sample_books


@pytest.fixture()
def store(tmp_path: Path) -> Iterator[sqlite3.Connection]:
    """An open store in a temporary directory."""
    conn = open_store(tmp_path / "bookhub.db")
    yield conn
    conn.close()


@pytest.fixture()
def repository(store: sqlite3.Connection) -> BookRepository:
    return BookRepository(store)


@pytest.fixture()
def accounts(store: sqlite3.Connection) -> AccountRepository:
    return AccountRepository(store)


@pytest.fixture()
def credentials(accounts: AccountRepository) -> CredentialStore:
    return CredentialStore(accounts)


@pytest.fixture()
def stocked_repository(repository: BookRepository) -> tuple[BookRepository, list[Book]]:
    """A repository holding the sample books, returned with the inserted Books."""
    books = sample_books()
    for book in books:
        repository.insert(book)
    return repository, books


@pytest.fixture()
def shop_config(tmp_path: Path) -> ShopConfig:
    return ShopConfig(
        db_path=tmp_path / "shop.db",
        session_path=tmp_path / "session.json",
        pricing=PricingRules(),
    )


@pytest.fixture()
def shop(shop_config: ShopConfig) -> Iterator[Bookshop]:
    """A Bookshop on temporary storage, closed after the test."""
    with open_bookshop(shop_config) as bookshop:
        yield bookshop
