# ABOUTME: Account commands: `bookhub register`, `login`, `logout`, `whoami`, and `passwd`.
# ABOUTME: Login state lives in the session file, so it survives between invocations.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bookhub.cli.options import build_config, db_option, open_shop, session_option

console = Console()


@click.command("register")
@click.option("--full-name", prompt="Full name", help="Your display name.")
@click.option("--email", prompt="Email", help="Email address (must be unique).")
@click.option("--username", prompt="Username", help="3-20 letters, digits, or underscores.")
@click.password_option("--password", help="At least 8 characters.")
@db_option
@session_option
def register(
    full_name: str,
    email: str,
    username: str,
    password: str,
    db_path: Path | None,
    session_path: Path | None,
) -> None:
    """Create a new account."""
    with open_shop(console, build_config(db_path, session_path)) as shop:
        account = shop.register(full_name, email, username, password)
    console.print(f"[green]Registered {account.username}[/green] (user id {account.user_id})")


@click.command("login")
@click.argument("identifier")
@click.option("--password", prompt=True, hide_input=True, help="Account password.")
@db_option
@session_option
def login(
    identifier: str, password: str, db_path: Path | None, session_path: Path | None
) -> None:
    """Log in with a username or email address."""
    with open_shop(console, build_config(db_path, session_path)) as shop:
        account = shop.login(identifier, password)
    console.print(f"[green]Logged in as {account.username}[/green]")


@click.command("logout")
@db_option
@session_option
def logout(db_path: Path | None, session_path: Path | None) -> None:
    """Log out and forget the session (including the cart)."""
    with open_shop(console, build_config(db_path, session_path)) as shop:
        was_logged_in = shop.session.is_logged_in
        shop.logout()
    if was_logged_in:
        console.print("Logged out.")
    else:
        console.print("[yellow]Not logged in.[/yellow]")


@click.command("whoami")
@db_option
@session_option
def whoami(db_path: Path | None, session_path: Path | None) -> None:
    """Show the logged-in account."""
    with open_shop(console, build_config(db_path, session_path)) as shop:
        account = shop.current_user()
        if account is None:
            console.print("[yellow]Not logged in.[/yellow]")
            return

        table = Table(show_header=False, box=None, pad_edge=False)
        table.add_column("Field", style="bold", width=14)
        table.add_column("Value")
        table.add_row("Username", account.username)
        table.add_row("User ID", account.user_id)
        table.add_row("Name", account.full_name)
        table.add_row("Email", account.email)
        if account.location:
            table.add_row("Location", account.location)
        table.add_row("Listed", str(len(account.uploaded_books)))
        table.add_row("Borrowed", str(len(account.borrowed_books)))
        table.add_row("Cart", f"{len(shop.session.cart_item_ids)} item(s)")
        console.print(table)


@click.command("passwd")
@click.option("--old-password", prompt="Current password", hide_input=True)
@click.option(
    "--new-password",
    prompt="New password",
    hide_input=True,
    confirmation_prompt=True,
)
@db_option
@session_option
def passwd(
    old_password: str, new_password: str, db_path: Path | None, session_path: Path | None
) -> None:
    """Change the logged-in user's password."""
    with open_shop(console, build_config(db_path, session_path)) as shop:
        shop.change_password(old_password, new_password)
    console.print("[green]Password changed.[/green]")
