# ABOUTME: Unit tests for SessionState persistence.
# ABOUTME: Covers defaults, reload after restart, logout cleanup, corrupt files, and cart ids.

import json
import logging
from pathlib import Path
from typing import Any

import pytest

from bookhub.catalog.types import ViewMode
from bookhub.session import SessionState


@pytest.fixture()
def session_path(tmp_path: Path) -> Path:
    return tmp_path / "session.json"


class TestLoad:
    """Tests for SessionState.load."""

    def test_missing_file_gives_defaults(self, session_path: Path) -> None:
        session = SessionState.load(session_path)
        assert session.username is None
        assert not session.is_logged_in
        assert session.view_mode is ViewMode.ALL_BOOKS
        assert session.cart_item_ids == []

    def test_corrupt_file_gives_defaults(self, session_path: Path, caplog: Any) -> None:
        session_path.write_text("{not json", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            session = SessionState.load(session_path)
        assert not session.is_logged_in
        assert any("Could not read session file" in r.message for r in caplog.records)

    def test_non_object_gives_defaults(self, session_path: Path, caplog: Any) -> None:
        session_path.write_text("[1, 2, 3]", encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            session = SessionState.load(session_path)
        assert session.cart_item_ids == []
        assert caplog.records

    def test_unknown_view_mode_falls_back(self, session_path: Path, caplog: Any) -> None:
        session_path.write_text(json.dumps({"view_mode": "newest"}), encoding="utf-8")
        with caplog.at_level(logging.WARNING):
            session = SessionState.load(session_path)
        assert session.view_mode is ViewMode.ALL_BOOKS
        assert any("newest" in r.message for r in caplog.records)

    def test_duplicate_cart_ids_collapsed(self, session_path: Path) -> None:
        session_path.write_text(json.dumps({"cart_item_ids": ["a", "b", "a"]}), encoding="utf-8")
        assert SessionState.load(session_path).cart_item_ids == ["a", "b"]


class TestPersistence:
    """Every change is written and survives a reload."""

    def test_login_survives_restart(self, session_path: Path) -> None:
        SessionState.load(session_path).login("alice")
        reloaded = SessionState.load(session_path)
        assert reloaded.is_logged_in
        assert reloaded.username == "alice"

    def test_logout_deletes_file(self, session_path: Path) -> None:
        session = SessionState.load(session_path)
        session.login("alice")
        session.add_to_cart("b1")
        session.logout()
        assert not session_path.exists()
        assert session.username is None
        assert session.cart_item_ids == []

    def test_logout_without_file(self, session_path: Path) -> None:
        SessionState.load(session_path).logout()
        assert not session_path.exists()

    def test_view_survives_restart(self, session_path: Path) -> None:
        SessionState.load(session_path).set_view("by-category", category="Horror")
        reloaded = SessionState.load(session_path)
        assert reloaded.view_mode is ViewMode.BY_CATEGORY
        assert reloaded.category == "Horror"
        assert reloaded.publisher is None

    def test_unknown_view_rejected(self, session_path: Path) -> None:
        with pytest.raises(ValueError):
            SessionState.load(session_path).set_view("newest")

    def test_current_book(self, session_path: Path) -> None:
        SessionState.load(session_path).set_current_book("b1")
        assert SessionState.load(session_path).current_book_id == "b1"

    def test_write_failure_keeps_memory_state(self, tmp_path: Path, caplog: Any) -> None:
        """A session path whose parent is a file cannot be written."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        session = SessionState.load(blocker / "session.json")
        with caplog.at_level(logging.WARNING):
            session.login("alice")
        assert session.username == "alice"
        assert any("Could not write session file" in r.message for r in caplog.records)


class TestCartIds:
    def test_add_is_idempotent(self, session_path: Path) -> None:
        session = SessionState.load(session_path)
        assert session.add_to_cart("b1")
        assert not session.add_to_cart("b1")
        assert session.cart_item_ids == ["b1"]

    def test_remove(self, session_path: Path) -> None:
        session = SessionState.load(session_path)
        session.add_to_cart("b1")
        session.add_to_cart("b2")
        assert session.remove_from_cart("b1")
        assert not session.remove_from_cart("b1")
        assert SessionState.load(session_path).cart_item_ids == ["b2"]

    def test_clear(self, session_path: Path) -> None:
        session = SessionState.load(session_path)
        session.add_to_cart("b1")
        session.clear_cart()
        assert SessionState.load(session_path).cart_item_ids == []

    def test_returned_list_is_a_copy(self, session_path: Path) -> None:
        session = SessionState.load(session_path)
        session.cart_item_ids.append("sneaky")
        assert session.cart_item_ids == []
