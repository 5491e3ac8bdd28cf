# ABOUTME: The `bookhub books` command group: browse, inspect, list, review, and delete books.
# ABOUTME: Browsing runs the query engine and renders one page as a Rich table.

from contextlib import ExitStack
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from bookhub.catalog.listing import ListingRequest
from bookhub.catalog.query import CatalogQuery, QueryPage
from bookhub.catalog.types import Availability, Book, SortKey, ViewMode
from bookhub.cli.options import build_config, db_option, open_shop, session_option
from bookhub.metadata.openlibrary import OpenLibraryLookup

console = Console()


def _price(book: Book) -> str:
    if book.has_discount:
        return f"{book.current_price:.2f} [dim](-{book.discount:g}%)[/dim]"
    return f"{book.current_price:.2f}"


def _render_page(result: QueryPage) -> None:
    if not result.items:
        console.print("[yellow]No books found.[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Price", justify="right")
    table.add_column("Rating", justify="right")
    table.add_column("Status")

    for book in result.items:
        table.add_row(
            book.id or "",
            book.title,
            book.author or "[dim]unknown[/dim]",
            _price(book),
            f"{book.rating:.1f} ({book.review_count})",
            "available" if book.is_available else "[red]borrowed[/red]",
        )

    console.print(table)
    console.print(
        f"\n[dim]Page {result.page + 1} of {result.page_count} ({result.total} book(s))[/dim]"
    )


@click.group("books")
def books() -> None:
    """Browse and manage the catalog."""


@books.command("ls")
@click.option("--search", "search_term", default=None, help="Match any text field.")
@click.option("--author", default=None, help="Author contains this text.")
@click.option("--publisher", default=None, help="Publisher contains this text.")
@click.option("--language", default=None, help="Exact language code.")
@click.option("--category", default=None, help="Books in this category.")
@click.option("--min-price", default=None, help="Lowest current price.")
@click.option("--max-price", default=None, help="Highest current price.")
@click.option("--min-rating", type=float, default=None, help="Lowest average rating.")
@click.option("--from", "from_date", default=None, help="Published on or after (YYYY-MM-DD).")
@click.option("--to", "to_date", default=None, help="Published on or before (YYYY-MM-DD).")
@click.option(
    "--availability",
    type=click.Choice([a.value for a in Availability]),
    default=Availability.ANY.value,
    help="Availability filter.",
)
@click.option("--discount-only", is_flag=True, default=False, help="Only discounted books.")
@click.option(
    "--sort",
    "sort_by",
    type=click.Choice([s.value for s in SortKey]),
    default=SortKey.RELEVANCE.value,
    help="Sort key.",
)
@click.option("--asc/--desc", "ascending", default=False, help="Sort direction.")
@click.option("--page", type=click.IntRange(min=1), default=1, help="Page number (from 1).")
@click.option(
    "--view",
    type=click.Choice([v.value for v in ViewMode]),
    default=None,
    help="Switch the saved catalog view.",
)
@db_option
@session_option
def ls(
    search_term: str | None,
    author: str | None,
    publisher: str | None,
    language: str | None,
    category: str | None,
    min_price: str | None,
    max_price: str | None,
    min_rating: float | None,
    from_date: str | None,
    to_date: str | None,
    availability: str,
    discount_only: bool,
    sort_by: str,
    ascending: bool,
    page: int,
    view: str | None,
    db_path: Path | None,
    session_path: Path | None,
) -> None:
    """List books, filtered and sorted, one page at a time.

    Without filters the saved view is shown. --view saves a new one
    (by-category and by-publisher use --category and --publisher).
    """
    config = build_config(db_path, session_path)
    with open_shop(console, config) as shop:
        if view is not None:
            shop.set_view(view, category, publisher)
            result = shop.current_view(page - 1)
        else:
            params = CatalogQuery(
                search_term=search_term,
                author=author,
                publisher=publisher,
                language=language,
                category=category,
                min_price=min_price,
                max_price=max_price,
                min_rating=min_rating,
                from_date=from_date,
                to_date=to_date,
                availability=Availability(availability),
                discount_only=discount_only,
                sort_by=SortKey(sort_by),
                ascending=ascending,
                page_size=config.page_size,
            )
            if params == CatalogQuery(page_size=config.page_size):
                result = shop.current_view(page - 1)
            else:
                result = shop.browse(params, page - 1)
    _render_page(result)


@books.command("info")
@click.argument("book_id")
@db_option
@session_option
def info(book_id: str, db_path: Path | None, session_path: Path | None) -> None:
    """Show every detail of one book and remember it as the current book."""
    with open_shop(console, build_config(db_path, session_path)) as shop:
        book = shop.open_book(book_id)

    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", width=14)
    table.add_column("Value")

    table.add_row("ID", book.id or "")
    table.add_row("Title", book.title)
    table.add_row("Author", book.author or "unknown")
    if book.publisher:
        table.add_row("Publisher", book.publisher)
    if book.publication_date:
        table.add_row("Published", book.publication_date)
    if book.language:
        table.add_row("Language", book.language)
    if book.isbn:
        table.add_row("ISBN", book.isbn)
    if book.pages:
        table.add_row("Pages", str(book.pages))
    if book.categories:
        table.add_row("Categories", ", ".join(book.categories))
    table.add_row("Price", _price(book))
    if book.has_discount:
        table.add_row("Original", f"{book.original_price:.2f}")
    table.add_row("Rating", f"{book.rating:.2f} from {book.review_count} review(s)")
    table.add_row("Sold", str(book.total_purchases))
    if book.holder_id:
        table.add_row("Borrowed", f"until {book.return_date}")
    if book.description:
        table.add_row("Description", book.description)
    console.print(table)

    for review in book.reviews:
        comment = f": {review.comment}" if review.comment else ""
        console.print(f"  [bold]{review.rating:g}/5[/bold] {review.review_date}{comment}")


@books.command("add")
@click.option("--title", default="", help="Book title (may come from --lookup).")
@click.option("--author", default="", help="Author name.")
@click.option("--price", type=float, required=True, help="Original price.")
@click.option("--discount", type=float, default=0.0, help="Discount percent (0-100).")
@click.option("--category", "categories", multiple=True, help="Category (repeat, 1-5).")
@click.option("--publisher", default="", help="Publisher.")
@click.option("--date", "publication_date", default="", help="Publication date (YYYY-MM-DD).")
@click.option("--language", default="", help="Language code.")
@click.option("--isbn", default=None, help="ISBN-10 or ISBN-13.")
@click.option("--pages", type=int, default=0, help="Page count.")
@click.option("--description", default="", help="Blurb.")
@click.option("--image-url", default=None, help="Cover image URL.")
@click.option("--lookup", is_flag=True, default=False, help="Fill blanks from Open Library.")
@db_option
@session_option
def add(
    title: str,
    author: str,
    price: float,
    discount: float,
    categories: tuple[str, ...],
    publisher: str,
    publication_date: str,
    language: str,
    isbn: str | None,
    pages: int,
    description: str,
    image_url: str | None,
    lookup: bool,
    db_path: Path | None,
    session_path: Path | None,
) -> None:
    """List a new book for sale."""
    request = ListingRequest(
        title=title,
        author=author,
        original_price=price,
        discount=discount,
        categories=categories,
        publisher=publisher,
        publication_date=publication_date,
        language=language,
        isbn=isbn,
        pages=pages,
        description=description,
        image_url=image_url,
    )
    config = build_config(db_path, session_path)
    with ExitStack() as stack:
        source = stack.enter_context(OpenLibraryLookup()) if lookup else None
        with open_shop(console, config, source) as shop:
            book = shop.add_listing(request, use_lookup=lookup)
    console.print(f"[green]Listed[/green] {book.title} [dim]({book.id})[/dim]")


@books.command("review")
@click.argument("book_id")
@click.argument("rating", type=float)
@click.argument("comment", default="")
@db_option
@session_option
def review(
    book_id: str,
    rating: float,
    comment: str,
    db_path: Path | None,
    session_path: Path | None,
) -> None:
    """Review a book as the logged-in user (rating 1-5)."""
    with open_shop(console, build_config(db_path, session_path)) as shop:
        book = shop.review_book(book_id, rating, comment)
    console.print(
        f"[green]Review added.[/green] {book.title} now rated "
        f"{book.rating:.2f} from {book.review_count} review(s)"
    )


@books.command("rm")
@click.argument("book_id")
@db_option
@session_option
def rm(book_id: str, db_path: Path | None, session_path: Path | None) -> None:
    """Delete a book that is neither in the cart nor on loan."""
    with open_shop(console, build_config(db_path, session_path)) as shop:
        deleted = shop.delete_book(book_id)
    if not deleted:
        console.print(f"[red]Book {book_id} not found.[/red]")
        raise SystemExit(1)
    console.print(f"Deleted {book_id}")


@books.command("return")
@click.argument("book_id")
@db_option
@session_option
def return_(book_id: str, db_path: Path | None, session_path: Path | None) -> None:
    """Return a book you borrowed."""
    with open_shop(console, build_config(db_path, session_path)) as shop:
        book = shop.return_book(book_id)
    console.print(f"Returned {book.title}")


@books.command("filters")
@db_option
@session_option
def filters(db_path: Path | None, session_path: Path | None) -> None:
    """Show the languages, categories, and publishers in the catalog."""
    with open_shop(console, build_config(db_path, session_path)) as shop:
        options = shop.queries.filter_options()

    if not (options.languages or options.categories or options.publishers):
        console.print("[yellow]The catalog is empty.[/yellow]")
        return
    console.print(f"[bold]Languages:[/bold] {', '.join(options.languages) or '-'}")
    console.print(f"[bold]Categories:[/bold] {', '.join(options.categories) or '-'}")
    console.print(f"[bold]Publishers:[/bold] {', '.join(options.publishers) or '-'}")
