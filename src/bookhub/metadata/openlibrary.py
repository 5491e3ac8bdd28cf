# ABOUTME: Open Library implementation of BibliographicLookup over its Books and Search APIs.
# ABOUTME: Owns an httpx client and retries throttled or failing calls per a RetryPolicy.

import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from bookhub.catalog.types import Book
from bookhub.metadata.openlibrary_parser import parse_books_api_response, parse_search_results

logger = logging.getLogger(__name__)

OPEN_LIBRARY_URL = "https://openlibrary.org"
USER_AGENT = "bookhub/0.1.0"
DEFAULT_SEARCH_LIMIT = 10
_ISBN_RE = re.compile(r"^(?:\d{9}[\dX]|\d{13})$")


class OpenLibraryError(Exception):
    """An Open Library call that could not produce a JSON payload."""


def clean_isbn(isbn: str) -> str:
    """Strip spaces and hyphens and upper-case a trailing x."""
    return re.sub(r"[\s-]", "", isbn).upper()


def is_valid_isbn(isbn: str) -> bool:
    """True for a 10- or 13-character ISBN shape (check digit not verified)."""
    return bool(_ISBN_RE.match(clean_isbn(isbn)))


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry a throttled or failing call.

    Open Library answers 429 when it is throttling and 5xx while it is
    overloaded. A numeric Retry-After header wins over the backoff
    schedule; every wait is capped at max_delay.
    """

    attempts: int = 3
    backoff: float = 1.0
    max_delay: float = 30.0
    retry_statuses: frozenset[int] = frozenset({429, 500, 502, 503, 504})

    def should_retry(self, status_code: int, attempt: int) -> bool:
        return status_code in self.retry_statuses and attempt + 1 < self.attempts

    def delay(self, attempt: int, response: httpx.Response) -> float:
        retry_after = response.headers.get("Retry-After", "").strip()
        if retry_after.isdigit():
            return min(float(retry_after), self.max_delay)
        return min(self.backoff * (2**attempt), self.max_delay)


class OpenLibraryLookup:
    """Bibliographic lookup backed by openlibrary.org.

    Network and parse failures are logged and reported as "no result"; they
    never propagate to the caller. Use as a context manager, or call
    close(), to release the underlying connection pool.
    """

    def __init__(
        self,
        *,
        retry: RetryPolicy | None = None,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        client_kwargs: dict[str, Any] = {
            "base_url": OPEN_LIBRARY_URL,
            "headers": {"User-Agent": USER_AGENT, "Accept": "application/json"},
            "timeout": timeout,
        }
        if transport is not None:
            client_kwargs["transport"] = transport
        self._client = httpx.Client(**client_kwargs)
        self._retry = retry or RetryPolicy()
        self._sleep = sleep

    @property
    def name(self) -> str:
        return "openlibrary"

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "OpenLibraryLookup":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def lookup_isbn(self, isbn: str) -> Book | None:
        """Fetch one edition by ISBN, or None if it is unknown or the call fails."""
        isbn = clean_isbn(isbn)
        if not is_valid_isbn(isbn):
            logger.warning("Not looking up malformed ISBN %r", isbn)
            return None

        params = {"bibkeys": f"ISBN:{isbn}", "format": "json", "jscmd": "data"}
        try:
            data = self._get_json("/api/books", params)
        except OpenLibraryError as exc:
            logger.warning("ISBN lookup failed for %s: %s", isbn, exc)
            return None

        book = parse_books_api_response(data, isbn)
        if book is None:
            logger.info("Open Library has no record for ISBN %s", isbn)
        return book

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[Book]:
        """Free-text search; an empty list on failure."""
        if not query or not query.strip():
            return []
        params = {"q": query.strip(), "limit": str(limit)}
        try:
            data = self._get_json("/search.json", params)
        except OpenLibraryError as exc:
            logger.warning("Search failed for %r: %s", query, exc)
            return []
        return parse_search_results(data)[:limit]

    def _get_json(self, path: str, params: dict[str, str]) -> Any:
        """GET an Open Library path and decode its JSON body.

        Raises:
            OpenLibraryError: On transport failure, a status the policy does
                not retry, an undecodable body, or once attempts run out.
        """
        attempt = 0
        while True:
            try:
                response = self._client.get(path, params=params)
            except httpx.HTTPError as exc:
                raise OpenLibraryError(f"Request to {path} failed: {exc}") from exc

            if response.status_code == 200:
                try:
                    return response.json()
                except ValueError as exc:
                    raise OpenLibraryError(f"Invalid JSON from {path}: {exc}") from exc

            if not self._retry.should_retry(response.status_code, attempt):
                raise OpenLibraryError(
                    f"HTTP {response.status_code} from {path} after {attempt + 1} attempt(s)"
                )

            delay = self._retry.delay(attempt, response)
            logger.warning(
                "HTTP %d from %s, retrying in %.1fs", response.status_code, path, delay
            )
            self._sleep(delay)
            attempt += 1
