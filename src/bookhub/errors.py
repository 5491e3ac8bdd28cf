# ABOUTME: Error taxonomy shared by the catalog, cart, identity, and session layers.
# ABOUTME: The CLI turns any BookhubError into a one-line message and exit code 1.


class BookhubError(Exception):
    """Base class for all errors raised by the bookshop core."""


class InvalidArgumentError(BookhubError):
    """Raised when a precondition is violated (bad price, out-of-range quantity)."""


class InvalidIdError(InvalidArgumentError):
    """Raised when an identifier is malformed."""


class NotFoundError(BookhubError):
    """Raised when a referenced book, user, or cart item does not exist."""


class ConflictError(BookhubError):
    """Raised on a uniqueness violation (username, email, ISBN, cart duplicate)."""


class StorageUnavailableError(BookhubError):
    """Raised when the persistence layer cannot be reached or fails mid-operation."""


class ValidationFailedError(BookhubError):
    """One or more field-level form errors, reported as a single batch.

    Attributes:
        errors: Mapping of field name to a human-readable message.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = dict(errors)
        detail = "; ".join(f"{name}: {msg}" for name, msg in self.errors.items())
        super().__init__(f"Validation failed: {detail}")
