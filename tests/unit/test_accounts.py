# ABOUTME: Unit tests for AccountRepository persistence of user accounts.
# ABOUTME: Covers lookups, uniqueness, profile edits, and history lists.

import pytest

from bookhub.db.accounts import AccountRepository, UserAccount
from bookhub.errors import ConflictError, InvalidArgumentError


def _account(**overrides: object) -> UserAccount:
    values: dict = {
        "user_id": "BH123456",
        "full_name": "Alice Liddell",
        "email": "Alice@Example.com",
        "username": "Alice",
        "password_hash": "hash",
        "salt": "salt",
        "created_at": 1_700_000_000_000,
    }
    values.update(overrides)
    return UserAccount(**values)


class TestInsertAndFind:
    def test_stored_case_folded(self, accounts: AccountRepository) -> None:
        accounts.insert(_account())
        found = accounts.find_by_username("ALICE")
        assert found is not None
        assert found.username == "alice"
        assert found.email == "alice@example.com"

    def test_find_by_email_and_id(self, accounts: AccountRepository) -> None:
        accounts.insert(_account())
        assert accounts.find_by_email("ALICE@example.COM").user_id == "BH123456"
        assert accounts.find_by_user_id("BH123456").username == "alice"

    def test_missing_returns_none(self, accounts: AccountRepository) -> None:
        assert accounts.find_by_username("nobody") is None

    def test_histories_start_empty(self, accounts: AccountRepository) -> None:
        accounts.insert(_account())
        found = accounts.find_by_username("alice")
        assert found.uploaded_books == []
        assert found.borrowed_books == []
        assert found.buyer_reviews == []

    def test_duplicate_username_conflicts(self, accounts: AccountRepository) -> None:
        accounts.insert(_account())
        with pytest.raises(ConflictError):
            accounts.insert(_account(user_id="BH654321", email="other@example.com"))

    def test_duplicate_email_conflicts(self, accounts: AccountRepository) -> None:
        accounts.insert(_account())
        with pytest.raises(ConflictError):
            accounts.insert(_account(user_id="BH654321", username="bob"))

    def test_exists(self, accounts: AccountRepository) -> None:
        accounts.insert(_account())
        assert accounts.exists("ALICE", "new@example.com")
        assert accounts.exists("bob", "alice@example.com")
        assert not accounts.exists("bob", "bob@example.com")

    def test_insert_usable_after_conflict(self, accounts: AccountRepository) -> None:
        accounts.insert(_account())
        with pytest.raises(ConflictError):
            accounts.insert(_account(user_id="BH654321"))
        accounts.insert(_account(user_id="BH999999", username="bob", email="bob@example.com"))
        assert accounts.find_by_username("bob") is not None


class TestUpdates:
    def test_set_password(self, accounts: AccountRepository) -> None:
        accounts.insert(_account())
        assert accounts.set_password("BH123456", "new-hash", "new-salt")
        found = accounts.find_by_user_id("BH123456")
        assert (found.password_hash, found.salt) == ("new-hash", "new-salt")

    def test_set_password_unknown_user(self, accounts: AccountRepository) -> None:
        assert accounts.set_password("BH000000", "h", "s") is False

    def test_update_profile(self, accounts: AccountRepository) -> None:
        accounts.insert(_account())
        assert accounts.update_profile("BH123456", location="Oxford", rating=4.5)
        found = accounts.find_by_user_id("BH123456")
        assert found.location == "Oxford"
        assert found.rating == 4.5

    def test_update_profile_rejects_other_fields(self, accounts: AccountRepository) -> None:
        accounts.insert(_account())
        with pytest.raises(InvalidArgumentError):
            accounts.update_profile("BH123456", username="mallory")

    def test_append_history_skips_duplicates(self, accounts: AccountRepository) -> None:
        accounts.insert(_account())
        accounts.append_history("BH123456", "borrowed_books", ["b1", "b2"])
        accounts.append_history("BH123456", "borrowed_books", ["b2", "b3", "b3"])
        found = accounts.find_by_user_id("BH123456")
        assert found.borrowed_books == ["b1", "b2", "b3"]

    def test_append_history_unknown_user(self, accounts: AccountRepository) -> None:
        assert accounts.append_history("BH000000", "uploaded_books", ["b1"]) is False

    def test_append_history_unknown_column(self, accounts: AccountRepository) -> None:
        with pytest.raises(InvalidArgumentError):
            accounts.append_history("BH123456", "password_hash", ["x"])
