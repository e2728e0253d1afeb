"""Command-line interface for bookhub.

Built with Typer for commands and Rich for output.
"""

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import Config, get_config
from .db import get_db
from .errors import BookHubError
from .log import set_level

# Create the main app
app = typer.Typer(
    name="bookhub",
    help="Discover books, review them, and track your reading.",
    no_args_is_help=True,
)

# Rich console for pretty output
console = Console()


# ============================================================================
# Helper Functions
# ============================================================================


def print_error(message: str) -> None:
    """Print an error message."""
    console.print(f"[bold red]Error:[/bold red] {message}")


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[bold green]Success:[/bold green] {message}")


def print_info(message: str) -> None:
    """Print an info message."""
    console.print(f"[dim]{message}[/dim]")


def star_bar(count: int, total: int, width: int = 20) -> str:
    """Render a proportional bar for the rating distribution."""
    if total == 0:
        return ""
    return "█" * round(width * count / total)


def check_config() -> Config:
    """Load the config, exiting with its problems listed if it is invalid."""
    config = get_config()
    errors = config.validate()
    if errors:
        for error in errors:
            print_error(error)
        raise typer.Exit(1)
    return config


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Discover books, review them, and track your reading."""
    if verbose:
        set_level(logging.DEBUG)


# ============================================================================
# Setup Commands
# ============================================================================


@app.command("init-db")
def init_db() -> None:
    """Create the database tables."""
    config = check_config()

    get_db(str(config.db_path))
    print_success(f"Database ready at {config.db_path}")


@app.command("add-user")
def add_user(
    name: str = typer.Argument(..., help="Display name"),
    email: str = typer.Argument(..., help="Email address"),
) -> None:
    """Register a user and print their API token."""
    from .users import UserManager

    try:
        user = UserManager(get_db()).create_user(name, email)
    except BookHubError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Created user {user.name} ({user.id})")
    console.print(f"API token: [bold]{user.api_token}[/bold]")


@app.command("rotate-token")
def rotate_token(user_id: str = typer.Argument(..., help="User ID")) -> None:
    """Issue a new API token for a user, revoking the old one."""
    from .users import UserManager

    try:
        token = UserManager(get_db()).rotate_token(user_id)
    except BookHubError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Rotated token for {user_id}")
    console.print(f"API token: [bold]{token}[/bold]")


# ============================================================================
# Catalog Commands
# ============================================================================


@app.command()
def search(
    query: str = typer.Argument(..., help="Title, author or keywords"),
    author: Optional[str] = typer.Option(None, "--author", "-a", help="Filter by author"),
    limit: int = typer.Option(10, "--limit", "-l", help="Max search results"),
) -> None:
    """Search the Open Library catalog."""
    from .api import OpenLibraryClient, OpenLibraryError

    client = OpenLibraryClient(timeout=get_config().openlibrary_timeout)
    console.print(f"[dim]Searching Open Library for: {query}...[/dim]")
    try:
        results = client.search(query, author=author, limit=limit)
    except OpenLibraryError as e:
        print_error(f"Open Library error: {e}")
        raise typer.Exit(1)

    if not results:
        print_error(f"No books found matching: {query}")
        raise typer.Exit(1)

    table = Table(title=f"Found {len(results)} results", show_header=True, header_style="bold")
    table.add_column("Book ID", style="cyan")
    table.add_column("Title", max_width=40)
    table.add_column("Author", style="green", max_width=25)
    table.add_column("Year", justify="right")

    for r in results:
        table.add_row(r.book_id, r.title, r.author, str(r.first_publish_year or "-"))

    console.print(table)


# ============================================================================
# Review Commands
# ============================================================================


@app.command()
def reviews(
    book_id: str = typer.Argument(..., help="Catalog book ID"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Page size"),
    offset: int = typer.Option(0, "--offset", "-o", help="Reviews to skip"),
) -> None:
    """List a book's reviews, most helpful first."""
    from .reviews import ReviewQuery

    query = ReviewQuery(get_db())
    try:
        page = query.list_reviews(book_id, limit=limit, offset=offset)
    except BookHubError as e:
        print_error(str(e))
        raise typer.Exit(1)

    if not page:
        print_info(f"No reviews for {book_id}")
        return

    table = Table(title=f"Reviews for {book_id}", show_header=True, header_style="bold magenta")
    table.add_column("Rating", justify="center")
    table.add_column("Author", style="green")
    table.add_column("Helpful", justify="right")
    table.add_column("Review", max_width=50)
    table.add_column("ID", style="dim")

    for r in page:
        table.add_row(
            "★" * r.rating + "☆" * (5 - r.rating),
            r.author_name or "-",
            str(r.helpful_votes),
            r.content or "-",
            r.id,
        )

    console.print(table)


@app.command()
def stats(book_id: str = typer.Argument(..., help="Catalog book ID")) -> None:
    """Show a book's average rating and star distribution."""
    from .reviews import RatingAggregator

    result = RatingAggregator(get_db()).get_stats(book_id)

    lines = [
        f"Average rating: [bold]{result.average_rating:.2f}[/bold]",
        f"Total reviews: {result.total_reviews}",
        "",
    ]
    for star in range(5, 0, -1):
        count = result.distribution[star]
        lines.append(f"{star}★ {star_bar(count, result.total_reviews):<20} {count}")

    console.print(Panel("\n".join(lines), title=f"Ratings for {book_id}"))


@app.command()
def recount(review_id: str = typer.Argument(..., help="Review ID")) -> None:
    """Rebuild a review's helpful vote counter from its votes."""
    from .reviews import VoteLedger

    try:
        count = VoteLedger(get_db()).recount(review_id)
    except BookHubError as e:
        print_error(str(e))
        raise typer.Exit(1)

    print_success(f"Review {review_id} has {count} helpful votes")


# ============================================================================
# Server Commands
# ============================================================================


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(5000, "--port", "-p", help="Port to listen on"),
    debug: bool = typer.Option(False, "--debug", help="Enable Flask debug mode"),
) -> None:
    """Run the JSON API server."""
    from .web import run_server

    check_config()
    console.print(f"\nbookhub API running at http://{host}:{port}")
    console.print("   Press Ctrl+C to stop\n")
    run_server(host=host, port=port, debug=debug)


@app.command()
def version() -> None:
    """Show version information."""
    from . import __version__

    console.print(f"bookhub version {__version__}")


# ============================================================================
# Main Entry Point
# ============================================================================


def main() -> None:
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
