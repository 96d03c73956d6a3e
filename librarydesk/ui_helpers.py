import json
import os
from typing import Any, Dict, List, Sequence, Tuple

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIBRARY_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _print_rows(title: str, columns: Sequence[Tuple[str, str]], rows: List[Dict[str, Any]],
                plain_line, empty_message: str) -> None:
    """Render rows in the current output mode.

    ``columns`` pairs a dict key with its rich column header; ``plain_line``
    formats one row for plain mode.
    """
    mode = get_output_mode()

    if mode == "json":
        print(json.dumps(rows, ensure_ascii=False))
        return

    if not rows:
        print(empty_message)
        return

    if mode == "rich":
        table = Table(title=title, show_lines=True, header_style="bold cyan")
        for _, header in columns:
            table.add_column(header)
        for row in rows:
            table.add_row(*("" if row.get(key) is None else str(row.get(key)) for key, _ in columns))
        _console.print(table)
    else:
        for row in rows:
            print(plain_line(row))


def print_books(books: List[Any]) -> None:
    """Books as 'ID - Title by Author (available/quantity available)'."""
    _print_rows(
        "📚 Books",
        [("id", "ID"), ("title", "Title"), ("author", "Author"), ("available", "Available"), ("quantity", "Quantity")],
        [b.to_dict() for b in books],
        lambda r: f"{r['id']} - {r['title']} by {r['author']} ({r['available']}/{r['quantity']} available)",
        "No books in library.",
    )


def print_students(students: List[Any]) -> None:
    _print_rows(
        "🎓 Students",
        [("id", "ID"), ("name", "Name"), ("department", "Department"), ("phone", "Phone")],
        [s.to_dict() for s in students],
        lambda r: f"{r['id']} - {r['name']} ({r['department'] or '-'}, {r['phone'] or '-'})",
        "No students registered.",
    )


def print_issues(issues: List[Any], empty_message: str = "No books are currently issued.") -> None:
    _print_rows(
        "🔖 Issues",
        [("id", "ID"), ("book_title", "Book"), ("student_name", "Student"), ("issue_date", "Issued"),
         ("return_date", "Returned"), ("fine", "Fine"), ("status", "Status")],
        [i.to_dict() for i in issues],
        lambda r: (
            f"#{r['id']} {r.get('book_title') or 'book ' + str(r['book_id'])} -> "
            f"{r.get('student_name') or 'student ' + str(r['student_id'])} "
            f"issued {r['issue_date']} [{r['status']}]"
            + (f" returned {r['return_date']}, fine {r['fine']}" if r["return_date"] else "")
        ),
        empty_message,
    )


def print_stats_result(stats: Dict[str, Any]) -> None:
    """Print statistics in the current output mode.
    - plain: one 'Label: value' line per metric
    - json: JSON object
    - rich: Panel with the main metrics
    """
    mode = get_output_mode()

    total = stats.get("total_books", 0)
    students = stats.get("total_students", 0)
    issued = stats.get("issued_books", 0)

    if mode == "json":
        print(json.dumps({"total_books": total, "total_students": students, "issued_books": issued}))
    elif mode == "rich":
        content = (
            f"[bold]Total Books:[/] {total}\n"
            f"[bold]Total Students:[/] {students}\n"
            f"[bold]Issued Books:[/] {issued}"
        )
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        print(f"Total Books: {total}")
        print(f"Total Students: {students}")
        print(f"Issued Books: {issued}")
