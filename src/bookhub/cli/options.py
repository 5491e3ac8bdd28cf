# ABOUTME: Shared Click options and helpers for BookHub CLI commands.
# ABOUTME: Provides --db/--session decorators and a context manager that opens the shop.

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
from rich.console import Console

from bookhub.config import DEFAULT_DB_PATH, DEFAULT_SESSION_PATH, ShopConfig
from bookhub.errors import BookhubError, ValidationFailedError
from bookhub.metadata.provider import BibliographicLookup
from bookhub.shop import Bookshop, open_bookshop

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    envvar="BOOKHUB_DB",
    help=f"Path to the shop database (default: {DEFAULT_DB_PATH})",
)

session_option = click.option(
    "--session",
    "session_path",
    type=click.Path(path_type=Path),
    default=None,
    envvar="BOOKHUB_SESSION",
    help=f"Path to the session file (default: {DEFAULT_SESSION_PATH})",
)


def build_config(db_path: Path | None, session_path: Path | None, **overrides) -> ShopConfig:
    return ShopConfig(
        db_path=db_path or DEFAULT_DB_PATH,
        session_path=session_path or DEFAULT_SESSION_PATH,
        **overrides,
    )


def print_error(console: Console, exc: BookhubError) -> None:
    if isinstance(exc, ValidationFailedError):
        console.print("[red]Validation failed:[/red]")
        for name, message in exc.errors.items():
            console.print(f"  [red]{name}[/red]: {message}")
        return
    console.print(f"[red]Error: {exc}[/red]")


@contextmanager
def open_shop(
    console: Console,
    config: ShopConfig,
    lookup: BibliographicLookup | None = None,
) -> Iterator[Bookshop]:
    """Open the shop for one command; any BookhubError becomes exit code 1."""
    try:
        with open_bookshop(config, lookup) as shop:
            yield shop
    except BookhubError as exc:
        print_error(console, exc)
        raise SystemExit(1) from exc
