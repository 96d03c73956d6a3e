"""Issue/return ledger.

The ledger owns the ``issue`` table and keeps it consistent with the
``available`` column of ``books``: every issue takes one copy, every return
gives it back, and each issue is returned at most once.
"""

import logging
import math
from typing import Dict, List, Optional

from librarydesk.config import settings
from librarydesk.database import get_db_connection, initialize_database
from librarydesk.errors import AlreadyReturned, BookUnavailable, InvalidArgument, IssueNotFound, NotFound
from librarydesk.models import ISSUED, RETURNED, Issue
from librarydesk.validators import DateLike, format_date, is_storable_id, parse_date

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def loan_days(issue_date: DateLike, return_date: DateLike) -> int:
    """Whole days between two dates, rounding partial days up."""
    delta = parse_date(return_date) - parse_date(issue_date)
    return math.ceil(abs(delta.total_seconds()) / SECONDS_PER_DAY)


def compute_fine(issue_date: DateLike, return_date: DateLike,
                 grace_days: Optional[int] = None, per_day: Optional[int] = None) -> int:
    """Fine owed for a loan: ``per_day`` for every day past the grace period."""
    grace_days = settings.grace_period_days if grace_days is None else grace_days
    per_day = settings.fine_per_day if per_day is None else per_day
    days = loan_days(issue_date, return_date)
    if days > grace_days:
        return (days - grace_days) * per_day
    return 0


class Ledger:
    """Issues books to students and takes them back."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file
        initialize_database(db_file)

    # ------------------------- Core operations ------------------------- #
    def issue_book(self, student_id: int, book_id: int, issue_date: DateLike) -> int:
        """Lend one copy of a book and return the new issue id.

        Raises BookUnavailable if the book is missing or has no free copy,
        NotFound if the student does not exist.
        """
        issued_on = format_date(parse_date(issue_date))
        if not is_storable_id(book_id):
            raise BookUnavailable()
        if not is_storable_id(student_id):
            raise NotFound(f"Student {student_id} not found")

        conn = get_db_connection(self.db_file)
        try:
            # Check and take a copy in one statement
            cursor = conn.execute(
                "UPDATE books SET available = available - 1 WHERE id = ? AND available > 0",
                (book_id,)
            )
            if cursor.rowcount != 1:
                logger.warning(f"Issue rejected: book {book_id} not available")
                raise BookUnavailable()

            if conn.execute("SELECT 1 FROM students WHERE id = ?", (student_id,)).fetchone() is None:
                logger.warning(f"Issue rejected: student {student_id} not found")
                raise NotFound(f"Student {student_id} not found")

            cursor = conn.execute(
                "INSERT INTO issue (student_id, book_id, issue_date, fine, status) VALUES (?, ?, ?, 0, ?)",
                (student_id, book_id, issued_on, ISSUED)
            )
            issue_id = cursor.lastrowid
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info(f"Issued book {book_id} to student {student_id} as issue {issue_id} on {issued_on}")
        return issue_id

    def return_book(self, issue_id: int, return_date: DateLike) -> int:
        """Close an issue, give the copy back and return the fine charged."""
        returned_on = parse_date(return_date)
        if not is_storable_id(issue_id):
            raise IssueNotFound()

        conn = get_db_connection(self.db_file)
        try:
            row = conn.execute("SELECT * FROM issue WHERE id = ?", (issue_id,)).fetchone()
            if row is None:
                raise IssueNotFound()
            issue = Issue.from_dict(dict(row))
            if issue.is_returned:
                logger.warning(f"Return rejected: issue {issue_id} already returned on {issue.return_date}")
                raise AlreadyReturned()
            if returned_on < parse_date(issue.issue_date):
                raise InvalidArgument(
                    f"Return date {format_date(returned_on)} is before issue date {issue.issue_date}"
                )

            fine = compute_fine(issue.issue_date, returned_on)
            cursor = conn.execute(
                "UPDATE issue SET return_date = ?, fine = ?, status = ? WHERE id = ? AND status = ?",
                (format_date(returned_on), fine, RETURNED, issue_id, ISSUED)
            )
            if cursor.rowcount != 1:
                raise AlreadyReturned()
            conn.execute("UPDATE books SET available = available + 1 WHERE id = ?", (issue.book_id,))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

        logger.info(f"Issue {issue_id} returned on {format_date(returned_on)} with fine {fine}")
        return fine

    # ------------------------- Queries ------------------------- #
    def get_issue(self, issue_id: int) -> Issue:
        if not is_storable_id(issue_id):
            raise IssueNotFound()
        conn = get_db_connection(self.db_file)
        try:
            row = conn.execute("SELECT * FROM issue WHERE id = ?", (issue_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            raise IssueNotFound()
        return Issue.from_dict(dict(row))

    def active_issues(self) -> List[Issue]:
        """Open issues with the borrower's name and the book's title."""
        conn = get_db_connection(self.db_file)
        try:
            rows = conn.execute("""
                SELECT i.*, s.name AS student_name, b.title AS book_title
                FROM issue i
                JOIN students s ON i.student_id = s.id
                JOIN books b ON i.book_id = b.id
                WHERE i.status = ?
                ORDER BY i.id
            """, (ISSUED,)).fetchall()
            return [Issue.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def student_issues(self, student_id: int) -> List[Issue]:
        """Every issue of a student, open or returned."""
        if not is_storable_id(student_id):
            raise NotFound(f"Student {student_id} not found")
        conn = get_db_connection(self.db_file)
        try:
            if conn.execute("SELECT 1 FROM students WHERE id = ?", (student_id,)).fetchone() is None:
                raise NotFound(f"Student {student_id} not found")
            rows = conn.execute("""
                SELECT i.*, s.name AS student_name, b.title AS book_title
                FROM issue i
                JOIN students s ON i.student_id = s.id
                LEFT JOIN books b ON i.book_id = b.id
                WHERE i.student_id = ?
                ORDER BY i.id
            """, (student_id,)).fetchall()
            return [Issue.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def get_statistics(self) -> Dict[str, int]:
        """Copies owned, students registered and copies currently on loan."""
        conn = get_db_connection(self.db_file)
        try:
            cursor = conn.cursor()
            cursor.execute("SELECT SUM(quantity) FROM books")
            total_books = cursor.fetchone()[0]

            cursor.execute("SELECT COUNT(*) FROM students")
            total_students = cursor.fetchone()[0]

            cursor.execute("SELECT COUNT(*) FROM issue WHERE status = ?", (ISSUED,))
            issued_books = cursor.fetchone()[0]

            return {
                "total_books": total_books or 0,
                "total_students": total_students or 0,
                "issued_books": issued_books or 0,
            }
        finally:
            conn.close()
