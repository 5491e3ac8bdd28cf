# ABOUTME: CLI package for BookHub, built on Click.
# ABOUTME: Defines the root command group, logging setup, and registers subcommands.

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from bookhub.cli.commands import auth_cmd, books_cmd, cart_cmd


@click.group()
@click.version_option(package_name="bookhub")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show debug logging.")
def cli(verbose: bool) -> None:
    """BookHub - a command-line bookshop: browse, buy, borrow, and review books."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
    )


cli.add_command(books_cmd.books)
cli.add_command(cart_cmd.cart)
cli.add_command(auth_cmd.register)
cli.add_command(auth_cmd.login)
cli.add_command(auth_cmd.logout)
cli.add_command(auth_cmd.whoami)
cli.add_command(auth_cmd.passwd)
