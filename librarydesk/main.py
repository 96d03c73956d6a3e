import logging
import os
import subprocess
import sys
from datetime import date
from typing import NoReturn, Optional

import typer
from rich.console import Console

from librarydesk.catalog import Catalog
from librarydesk.config import settings
from librarydesk.errors import LibraryError
from librarydesk.ledger import Ledger
from librarydesk.ui_helpers import print_books, print_issues, print_stats_result, print_students, set_output_mode

APP_NAME = "Library Desk CLI"

console = Console()

app = typer.Typer(help=APP_NAME)

# Database chosen by the global --db option
_state = {"db_file": None}


def _catalog() -> Catalog:
    return Catalog(_state["db_file"])


def _ledger() -> Ledger:
    return Ledger(_state["db_file"])


def _fail(error: LibraryError) -> NoReturn:
    print(f"Error: {error.message}")
    raise typer.Exit(code=1)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output format: plain | json | rich (default: plain)"
    ),
    db: Optional[str] = typer.Option(
        None, "--db", help="SQLite database file (default: LIBRARY_DB_FILE or library.db)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show log messages"),
):
    """Global options for the CLI (output mode, database)."""
    logging.basicConfig(level=settings.log_level if verbose else logging.WARNING)
    if output:
        set_output_mode(output)
    _state["db_file"] = db


# ------------------------- Books ------------------------- #
@app.command("books")
def cli_books():
    """List all books."""
    print_books(_catalog().list_books())


@app.command("add-book")
def cli_add_book(
    title: str,
    author: str,
    quantity: int = typer.Option(1, "--quantity", "-q", help="Number of copies"),
):
    """Add a book with the given number of copies."""
    try:
        book = _catalog().add_book(title, author, quantity)
    except LibraryError as e:
        _fail(e)
    print(f"Added book {book.id}: {book.title} by {book.author} ({book.quantity} copies)")


@app.command("update-book")
def cli_update_book(book_id: int, title: str, author: str, quantity: int):
    """Change a book's title, author and number of copies."""
    try:
        book = _catalog().update_book(book_id, title, author, quantity)
    except LibraryError as e:
        _fail(e)
    print(f"Updated book {book.id}: {book.available}/{book.quantity} available")


@app.command("remove-book")
def cli_remove_book(book_id: int):
    """Delete a book that has no copies on loan."""
    try:
        _catalog().remove_book(book_id)
    except LibraryError as e:
        _fail(e)
    print(f"Book {book_id} has been removed.")


@app.command("search")
def cli_search(query: str = typer.Argument(..., help="Text to look for in title or author")):
    """Search books by title or author."""
    books = _catalog().search_books(query)
    if not books:
        print("No books matched the query.")
        return
    print_books(books)


# ------------------------- Students ------------------------- #
@app.command("students")
def cli_students():
    """List all students."""
    print_students(_catalog().list_students())


@app.command("add-student")
def cli_add_student(
    name: str,
    department: Optional[str] = typer.Option(None, "--department", "-d"),
    phone: Optional[str] = typer.Option(None, "--phone", "-p"),
):
    """Register a student."""
    try:
        student = _catalog().add_student(name, department, phone)
    except LibraryError as e:
        _fail(e)
    print(f"Added student {student.id}: {student.name}")


# ------------------------- Lending ------------------------- #
@app.command("issue")
def cli_issue(
    student_id: int,
    book_id: int,
    issue_date: Optional[str] = typer.Option(None, "--date", help="Issue date (YYYY-MM-DD, default today)"),
):
    """Lend one copy of a book to a student."""
    try:
        issue_id = _ledger().issue_book(student_id, book_id, issue_date or date.today().isoformat())
    except LibraryError as e:
        _fail(e)
    print(f"Issued book {book_id} to student {student_id} (issue #{issue_id}).")


@app.command("return")
def cli_return(
    issue_id: int,
    return_date: Optional[str] = typer.Option(None, "--date", help="Return date (YYYY-MM-DD, default today)"),
):
    """Take a book back and show the fine."""
    try:
        fine = _ledger().return_book(issue_id, return_date or date.today().isoformat())
    except LibraryError as e:
        _fail(e)
    print(f"Issue #{issue_id} returned. Fine: {fine}")


@app.command("issues")
def cli_issues():
    """List books currently on loan."""
    print_issues(_ledger().active_issues())


@app.command("history")
def cli_history(student_id: int):
    """Show every loan of a student."""
    try:
        issues = _ledger().student_issues(student_id)
    except LibraryError as e:
        _fail(e)
    print_issues(issues, empty_message=f"Student {student_id} has no loans.")


@app.command("stats")
def cli_stats():
    """Show library statistics."""
    print_stats_result(_ledger().get_statistics())


@app.command("serve")
def serve(
    host: Optional[str] = typer.Option(None, "--host"),
    port: Optional[int] = typer.Option(None, "--port"),
):
    """Start the API with uvicorn."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{host}:{port}/"
    console.print(f"[green]Starting API on [link={url}]{url}[/link][/]")

    args = [
        sys.executable,
        "-m", "uvicorn",
        "librarydesk.api:app",
        "--host", host,
        "--port", str(port),
    ]
    # The server process reads its database from the environment
    env = dict(os.environ)
    if _state["db_file"]:
        env["LIBRARY_DB_FILE"] = _state["db_file"]
    try:
        subprocess.run(args, env=env, check=False)
    except KeyboardInterrupt:
        console.print("[yellow]Server stopped.[/]")


if __name__ == "__main__":
    app()
