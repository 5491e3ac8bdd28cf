# ABOUTME: The `bookhub cart` command group: add, remove, show, clear, and check out.
# ABOUTME: The cart is rebuilt from the session's book ids and priced on every invocation.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bookhub.cart import (
    DEFAULT_BORROW_DAYS,
    MAX_BORROW_DAYS,
    MIN_BORROW_DAYS,
    BorrowCart,
    Cart,
    CartTotals,
    PricingRules,
)
from bookhub.cli.options import build_config, db_option, open_shop, session_option
from bookhub.config import ShopConfig
from bookhub.errors import BookhubError

console = Console()

_borrow_days_option = click.option(
    "--days",
    "borrow_days",
    type=click.IntRange(MIN_BORROW_DAYS, MAX_BORROW_DAYS),
    default=DEFAULT_BORROW_DAYS,
    help=f"Borrow duration in days (default: {DEFAULT_BORROW_DAYS}).",
)


def _config(ctx: click.Context, db_path: Path | None, session_path: Path | None) -> ShopConfig:
    return build_config(db_path, session_path, pricing=ctx.obj["pricing"])


def _render_cart(cart: Cart | BorrowCart, totals: CartTotals, borrow: bool) -> None:
    table = Table()
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Days" if borrow else "Qty", justify="right")
    table.add_column("Unit", justify="right")
    table.add_column("Line", justify="right")
    for item in cart.items:
        table.add_row(
            item.book_id,
            item.name,
            str(item.borrow_days if borrow else item.quantity),
            f"{item.unit_price:.2f}",
            f"{cart.line_total(item.book_id):.2f}",
        )
    console.print(table)

    summary = Table(show_header=False, box=None, pad_edge=False)
    summary.add_column("Label", style="bold", width=14)
    summary.add_column("Amount", justify="right")
    summary.add_row("Items", f"{totals.gross:.2f}")
    if totals.promo_applied:
        summary.add_row("Promo", f"-{totals.discount:.2f}")
    summary.add_row("Subtotal", f"{totals.subtotal:.2f}")
    summary.add_row("Online fee", f"{totals.online_fee:.2f}")
    summary.add_row("Delivery fee", f"{totals.delivery_fee:.2f}")
    summary.add_row("Total", f"[bold]{totals.total:.2f}[/bold]")
    console.print(summary)


@click.group("cart")
@click.option("--online-fee", type=float, default=PricingRules.online_fee, help="Online fee.")
@click.option(
    "--delivery-fee", type=float, default=PricingRules.delivery_fee, help="Delivery fee."
)
@click.pass_context
def cart(ctx: click.Context, online_fee: float, delivery_fee: float) -> None:
    """Manage the shopping cart."""
    try:
        pricing = PricingRules(online_fee=online_fee, delivery_fee=delivery_fee)
    except BookhubError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        raise SystemExit(1) from exc
    ctx.ensure_object(dict)
    ctx.obj["pricing"] = pricing


@cart.command("add")
@click.argument("book_id")
@db_option
@session_option
@click.pass_context
def add(
    ctx: click.Context, book_id: str, db_path: Path | None, session_path: Path | None
) -> None:
    """Put a book in the cart."""
    with open_shop(console, _config(ctx, db_path, session_path)) as shop:
        added = shop.add_to_cart(book_id)
        count = len(shop.session.cart_item_ids)
    if added:
        console.print(f"Added {book_id} ({count} item(s) in cart)")
    else:
        console.print(f"[yellow]{book_id} is already in the cart.[/yellow]")


@cart.command("rm")
@click.argument("book_id")
@db_option
@session_option
@click.pass_context
def rm(
    ctx: click.Context, book_id: str, db_path: Path | None, session_path: Path | None
) -> None:
    """Take a book out of the cart."""
    with open_shop(console, _config(ctx, db_path, session_path)) as shop:
        shop.remove_from_cart(book_id)
    console.print(f"Removed {book_id}")


@cart.command("show")
@click.option("--promo", default=None, help="Promo code to preview.")
@click.option("--borrow", is_flag=True, default=False, help="Price the cart as a loan.")
@_borrow_days_option
@db_option
@session_option
@click.pass_context
def show(
    ctx: click.Context,
    promo: str | None,
    borrow: bool,
    borrow_days: int,
    db_path: Path | None,
    session_path: Path | None,
) -> None:
    """Show the cart with its totals."""
    with open_shop(console, _config(ctx, db_path, session_path)) as shop:
        priced = shop.build_borrow_cart(borrow_days) if borrow else shop.build_cart()
        if not len(priced):
            console.print("[yellow]Your cart is empty.[/yellow]")
            return
        if promo:
            priced.apply_promo(promo)
        totals = priced.compute_totals()
    _render_cart(priced, totals, borrow)


@cart.command("clear")
@db_option
@session_option
@click.pass_context
def clear(ctx: click.Context, db_path: Path | None, session_path: Path | None) -> None:
    """Empty the cart."""
    with open_shop(console, _config(ctx, db_path, session_path)) as shop:
        shop.clear_cart()
    console.print("Cart cleared.")


@cart.command("checkout")
@click.option("--promo", default=None, help="Promo code.")
@click.option("--borrow", is_flag=True, default=False, help="Borrow instead of buying.")
@_borrow_days_option
@db_option
@session_option
@click.pass_context
def checkout(
    ctx: click.Context,
    promo: str | None,
    borrow: bool,
    borrow_days: int,
    db_path: Path | None,
    session_path: Path | None,
) -> None:
    """Buy (or borrow) everything in the cart."""
    with open_shop(console, _config(ctx, db_path, session_path)) as shop:
        if borrow:
            receipt = shop.borrow_checkout(borrow_days, promo)
        else:
            receipt = shop.checkout(promo)

    verb = "Borrowed" if receipt.borrowed else "Bought"
    for item in receipt.items:
        console.print(f"  {verb} {item.name}")
    console.print(f"[green]Order complete.[/green] Total charged: {receipt.totals.total:.2f}")
