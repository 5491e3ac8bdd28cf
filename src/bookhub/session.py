# ABOUTME: Durable session record: who is logged in, what they are viewing, and cart book ids.
# ABOUTME: Every mutation rewrites the JSON file; logout deletes it.

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

from bookhub.catalog.types import ViewMode

logger = logging.getLogger(__name__)


@dataclass
class _SessionData:
    username: str | None = None
    is_logged_in: bool = False
    current_book_id: str | None = None
    view_mode: str = ViewMode.ALL_BOOKS.value
    category: str | None = None
    publisher: str | None = None
    cart_item_ids: list[str] = field(default_factory=list)


def _coerce(raw: dict[str, Any]) -> _SessionData:
    """Build session data from a decoded JSON object, ignoring bad values."""
    data = _SessionData()
    username = raw.get("username")
    if isinstance(username, str) and username:
        data.username = username
        data.is_logged_in = bool(raw.get("is_logged_in", True))
    for key in ("current_book_id", "category", "publisher"):
        value = raw.get(key)
        if isinstance(value, str) and value:
            setattr(data, key, value)
    try:
        data.view_mode = ViewMode(raw.get("view_mode", ViewMode.ALL_BOOKS.value)).value
    except ValueError:
        logger.warning("Unknown view mode %r in session, using all-books", raw.get("view_mode"))
    ids = raw.get("cart_item_ids", [])
    if isinstance(ids, list):
        data.cart_item_ids = list(dict.fromkeys(str(i) for i in ids if i))
    return data


class SessionState:
    """The active user's identity and navigation context.

    Loaded once at startup with load() and written back after every change.
    A failed write is logged and the in-memory state is kept.
    """

    def __init__(self, path: Path, data: _SessionData | None = None) -> None:
        self._path = Path(path)
        self._data = data or _SessionData()

    @classmethod
    def load(cls, path: Path) -> "SessionState":
        """Read the session file, falling back to logged-out defaults."""
        path = Path(path)
        if not path.exists():
            return cls(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Could not read session file %s: %s", path, exc)
            return cls(path)
        if not isinstance(raw, dict):
            logger.warning("Session file %s does not hold an object, ignoring it", path)
            return cls(path)
        return cls(path, _coerce(raw))

    @property
    def path(self) -> Path:
        return self._path

    @property
    def username(self) -> str | None:
        return self._data.username

    @property
    def is_logged_in(self) -> bool:
        return self._data.is_logged_in

    @property
    def current_book_id(self) -> str | None:
        return self._data.current_book_id

    @property
    def view_mode(self) -> ViewMode:
        return ViewMode(self._data.view_mode)

    @property
    def category(self) -> str | None:
        return self._data.category

    @property
    def publisher(self) -> str | None:
        return self._data.publisher

    @property
    def cart_item_ids(self) -> list[str]:
        return list(self._data.cart_item_ids)

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(asdict(self._data), indent=2), encoding="utf-8")
        except OSError as exc:
            logger.warning("Could not write session file %s: %s", self._path, exc)

    def login(self, username: str) -> None:
        self._data.username = username
        self._data.is_logged_in = True
        self._save()

    def logout(self) -> None:
        """Reset to logged-out defaults and delete the session file."""
        self._data = _SessionData()
        try:
            self._path.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete session file %s: %s", self._path, exc)

    def set_current_book(self, book_id: str | None) -> None:
        self._data.current_book_id = book_id
        self._save()

    def set_view(
        self,
        mode: ViewMode | str,
        category: str | None = None,
        publisher: str | None = None,
    ) -> None:
        """Switch the active catalog view.

        Raises:
            ValueError: If mode is not a known view mode.
        """
        self._data.view_mode = ViewMode(mode).value
        self._data.category = category
        self._data.publisher = publisher
        self._save()

    def add_to_cart(self, book_id: str) -> bool:
        """Record a book id in the cart. Returns False if it was already there."""
        if book_id in self._data.cart_item_ids:
            return False
        self._data.cart_item_ids.append(book_id)
        self._save()
        return True

    def remove_from_cart(self, book_id: str) -> bool:
        if book_id not in self._data.cart_item_ids:
            return False
        self._data.cart_item_ids.remove(book_id)
        self._save()
        return True

    def clear_cart(self) -> None:
        self._data.cart_item_ids.clear()
        self._save()
