"""Command-line interface for readshelf.

Built with Typer for commands and Rich for output.
"""

import asyncio
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .api.google_books import GoogleBooksClient
from .app import ShelfApp
from .auth.provider import LocalSessionProvider
from .collection.manager import CollectionStateManager
from .collection.state import CollectionState
from .config import get_config
from .db.schemas import BookRecord, BookStatus, SearchResultItem
from .db.store import get_store
from .logging_config import setup_logging

# Create the main app
app = typer.Typer(
    name="readshelf",
    help="Keep a reading list of books found in the Google Books catalog.",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {escape(message)}")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[bold yellow]Warning:[/bold yellow] {escape(message)}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{escape(message)}[/dim]")


def build_app() -> ShelfApp:
    """Wire a ShelfApp from the current configuration."""
    config = get_config()
    store = get_store(str(config.db_path))
    return ShelfApp(
        provider=LocalSessionProvider(store, config.session_path),
        catalog=GoogleBooksClient(
            base_url=config.catalog_url,
            api_key=config.catalog_api_key,
            timeout=config.http_timeout,
        ),
        manager=CollectionStateManager(store),
        alert=print_error,
        search_limit=config.search_limit,
    )


def require_session(shelf_app: ShelfApp) -> None:
    """Exit with an error unless someone is signed in."""
    if shelf_app.context.session is None:
        print_error("Not signed in. Run 'readshelf login' first.")
        raise typer.Exit(1)


def format_bucket_table(status: BookStatus, books: tuple[BookRecord, ...]) -> Table:
    """Create a rich table for one status bucket."""
    table = Table(
        title=f"{status.label} ({len(books)})", show_header=True, header_style="bold magenta"
    )
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="cyan", no_wrap=False, max_width=40)
    table.add_column("Authors", style="green", max_width=30)
    table.add_column("Added", justify="center")
    table.add_column("Changed", justify="center")

    for book in books:
        table.add_row(
            book.id[:8],
            escape(book.title),
            escape(book.authors),
            book.added_at.date().isoformat(),
            book.status_changed_at.date().isoformat() if book.status_changed_at else "-",
        )

    return table


def format_results_table(results: list[SearchResultItem]) -> Table:
    """Create a rich table of numbered search results."""
    table = Table(title="Search results", show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan", max_width=40)
    table.add_column("Authors", style="green", max_width=30)
    table.add_column("ISBN")

    for i, item in enumerate(results, 1):
        table.add_row(str(i), escape(item.title), escape(item.authors), escape(item.isbn))

    return table


def resolve_book(state: CollectionState, ref: str) -> Optional[BookRecord]:
    """Find a book by full id or unique id prefix."""
    matches = [
        book for status in BookStatus for book in state[status] if book.id.startswith(ref)
    ]
    exact = [book for book in matches if book.id == ref]
    if exact:
        return exact[0]
    if len(matches) > 1:
        print_error(f"Book ID prefix '{ref}' is ambiguous")
        raise typer.Exit(1)
    return matches[0] if matches else None


@app.callback()
def main_callback() -> None:
    """Configure logging before any command runs."""
    config = get_config()
    setup_logging(config.log_level)
    for problem in config.validate():
        print_warning(problem)


# ============================================================================
# Session Commands
# ============================================================================


@app.command()
def signup(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(
        ..., "--password", "-p", prompt=True, hide_input=True, confirmation_prompt=True
    ),
) -> None:
    """Create a local account."""
    shelf_app = build_app()
    outcome = shelf_app.sign_up(email, password)
    if not outcome.ok:
        raise typer.Exit(1)
    print_success(outcome.message)


@app.command()
def login(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Account email"),
    password: str = typer.Option(..., "--password", "-p", prompt=True, hide_input=True),
) -> None:
    """Sign in and show how many books are on the shelf."""
    shelf_app = build_app()
    outcome = asyncio.run(shelf_app.sign_in(email, password))
    if not outcome.ok:
        raise typer.Exit(1)
    print_success(outcome.message)
    print_info(f"{shelf_app.context.collection.total()} books in your collection")


@app.command()
def logout() -> None:
    """Sign out."""
    shelf_app = build_app()
    outcome = shelf_app.sign_out()
    if not outcome.ok:
        print_error(outcome.message)
        raise typer.Exit(1)
    print_success(outcome.message)


@app.command()
def whoami() -> None:
    """Show the signed-in account."""
    shelf_app = build_app()
    session = shelf_app.context.session
    if session is None:
        print_info("Not signed in.")
        return
    console.print(f"Signed in as [bold]{escape(session.email)}[/bold]")


# ============================================================================
# Collection Commands
# ============================================================================


@app.command()
def shelf(
    status: Optional[BookStatus] = typer.Option(
        None, "--status", "-s", help="Only show one status"
    ),
) -> None:
    """Show the collection, one table per status."""
    shelf_app = build_app()
    require_session(shelf_app)

    outcome = asyncio.run(shelf_app.load_collection())
    if not outcome.ok:
        print_info("Could not refresh the collection.")

    state = shelf_app.context.collection
    statuses = [status] if status else list(BookStatus)
    for s in statuses:
        console.print(format_bucket_table(s, state[s]))


@app.command()
def search(
    query: str = typer.Argument(..., help="Free-text catalog query"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Max results"),
) -> None:
    """Search the catalog."""
    shelf_app = build_app()
    if limit:
        shelf_app.search_limit = limit

    results = shelf_app.search_catalog(query).value
    if not results:
        print_info("No results.")
        return
    console.print(format_results_table(results))


@app.command()
def add(
    query: str = typer.Argument(..., help="Book title to search for"),
    pick: Optional[int] = typer.Option(None, "--pick", "-n", help="Result number to add"),
) -> None:
    """Search the catalog and add one result as 'To read'."""
    shelf_app = build_app()
    require_session(shelf_app)

    results = shelf_app.search_catalog(query).value
    if not results:
        print_warning(f"No results for: {query}")
        raise typer.Exit(1)

    console.print(format_results_table(results))
    if pick is None:
        pick = typer.prompt("Add which result?", type=int, default=1)
    if not 1 <= pick <= len(results):
        print_error(f"Pick a number between 1 and {len(results)}")
        raise typer.Exit(1)

    outcome = asyncio.run(shelf_app.add_to_collection(results[pick - 1]))
    if not outcome.ok:
        raise typer.Exit(1)
    print_success(outcome.message)
    print_info(f"ID: {outcome.value.id}")


@app.command()
def move(
    book_id: str = typer.Argument(..., help="Book ID or unique prefix"),
    status: BookStatus = typer.Argument(..., help="New status"),
) -> None:
    """Move a book to another status."""
    shelf_app = build_app()
    require_session(shelf_app)

    async def _move() -> bool:
        await shelf_app.load_collection()
        book = resolve_book(shelf_app.context.collection, book_id)
        if book is None:
            print_error(f"Book not found: {book_id}")
            return False
        outcome = await shelf_app.move_book(book.id, book.status, status)
        if outcome.ok:
            print_success(outcome.message)
        return outcome.ok

    if not asyncio.run(_move()):
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"readshelf version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
