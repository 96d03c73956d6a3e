import logging
from typing import List, Optional

from librarydesk.database import get_db_connection, initialize_database
from librarydesk.errors import Conflict, InvalidArgument, NotFound
from librarydesk.models import ISSUED, Book, Student
from librarydesk.validators import TextValidator, is_storable_id, validate_quantity

logger = logging.getLogger(__name__)


class Catalog:
    """Manages book and student records and their persistence."""

    def __init__(self, db_file: Optional[str] = None) -> None:
        self.db_file = db_file
        initialize_database(db_file)  # Ensure DB and tables exist

    # ------------------------- Books ------------------------- #
    def add_book(self, title: str, author: str, quantity: int) -> Book:
        """Create a book with every copy available."""
        self._check_book_fields(title, author)
        quantity = validate_quantity(quantity)

        book = Book(id=None, title=title, author=author, quantity=quantity)
        conn = get_db_connection(self.db_file)
        try:
            cursor = conn.execute(
                "INSERT INTO books (title, author, quantity, available) VALUES (?, ?, ?, ?)",
                (book.title, book.author, book.quantity, book.available)
            )
            conn.commit()
            book.id = cursor.lastrowid
        finally:
            conn.close()
        logger.info(f"Added book {book.id}: {book.title!r} x{book.quantity}")
        return book

    def update_book(self, book_id: int, title: str, author: str, quantity: int) -> Book:
        """Replace a book's fields, keeping the number of copies on loan.

        ``available`` moves by the same delta as ``quantity``. A quantity
        below the copies currently on loan is rejected.
        """
        self._check_book_fields(title, author)
        quantity = validate_quantity(quantity)
        if not is_storable_id(book_id):
            raise NotFound(f"Book {book_id} not found")

        conn = get_db_connection(self.db_file)
        try:
            # SET and WHERE expressions both read the old quantity
            cursor = conn.execute(
                "UPDATE books SET title = ?, author = ?, available = available + (? - quantity), quantity = ? "
                "WHERE id = ? AND available + (? - quantity) >= 0",
                (title.strip(), author.strip(), quantity, quantity, book_id, quantity)
            )
            if cursor.rowcount != 1:
                row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
                if row is None:
                    raise NotFound(f"Book {book_id} not found")
                on_loan = Book.from_dict(dict(row)).on_loan
                logger.warning(f"Update rejected: book {book_id} has {on_loan} copies on loan")
                raise InvalidArgument(
                    f"Quantity {quantity} is below the {on_loan} copies currently on loan"
                )
            book = Book.from_dict(dict(conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()
        logger.info(f"Updated book {book_id}: quantity {quantity}, {book.available} available")
        return book

    def remove_book(self, book_id: int) -> None:
        """Delete a book. Books with copies still on loan cannot be deleted."""
        if not is_storable_id(book_id):
            raise NotFound(f"Book {book_id} not found")
        conn = get_db_connection(self.db_file)
        try:
            if conn.execute("SELECT 1 FROM books WHERE id = ?", (book_id,)).fetchone() is None:
                raise NotFound(f"Book {book_id} not found")
            open_issues = conn.execute(
                "SELECT COUNT(*) FROM issue WHERE book_id = ? AND status = ?", (book_id, ISSUED)
            ).fetchone()[0]
            if open_issues:
                raise Conflict(f"Book {book_id} has {open_issues} copies on loan")
            conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Removed book {book_id}")

    def get_book(self, book_id: int) -> Book:
        if not is_storable_id(book_id):
            raise NotFound(f"Book {book_id} not found")
        conn = get_db_connection(self.db_file)
        try:
            row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            raise NotFound(f"Book {book_id} not found")
        return Book.from_dict(dict(row))

    def list_books(self) -> List[Book]:
        conn = get_db_connection(self.db_file)
        try:
            rows = conn.execute("SELECT * FROM books ORDER BY id").fetchall()
            return [Book.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    def search_books(self, query: str) -> List[Book]:
        """Search for books whose title or author contains ``query``.

        Matching ignores case for ASCII letters only, as SQLite's LIKE does.
        """
        pattern = f"%{escape_like(query)}%"
        conn = get_db_connection(self.db_file)
        try:
            rows = conn.execute(
                "SELECT * FROM books WHERE title LIKE ? ESCAPE '\\' OR author LIKE ? ESCAPE '\\' ORDER BY id",
                (pattern, pattern)
            ).fetchall()
            return [Book.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    # ------------------------- Students ------------------------- #
    def add_student(self, name: str, department: Optional[str] = None, phone: Optional[str] = None) -> Student:
        if not TextValidator.validate_name(name):
            raise InvalidArgument("Student name cannot be empty")
        if not TextValidator.validate_phone(phone):
            raise InvalidArgument(f"Invalid phone number: {phone!r}")

        student = Student(id=None, name=name, department=department, phone=phone)
        conn = get_db_connection(self.db_file)
        try:
            cursor = conn.execute(
                "INSERT INTO students (name, department, phone) VALUES (?, ?, ?)",
                (student.name, student.department, student.phone)
            )
            conn.commit()
            student.id = cursor.lastrowid
        finally:
            conn.close()
        logger.info(f"Added student {student.id}: {student.name!r}")
        return student

    def get_student(self, student_id: int) -> Student:
        if not is_storable_id(student_id):
            raise NotFound(f"Student {student_id} not found")
        conn = get_db_connection(self.db_file)
        try:
            row = conn.execute("SELECT * FROM students WHERE id = ?", (student_id,)).fetchone()
        finally:
            conn.close()
        if row is None:
            raise NotFound(f"Student {student_id} not found")
        return Student.from_dict(dict(row))

    def list_students(self) -> List[Student]:
        conn = get_db_connection(self.db_file)
        try:
            rows = conn.execute("SELECT * FROM students ORDER BY id").fetchall()
            return [Student.from_dict(dict(row)) for row in rows]
        finally:
            conn.close()

    # ------------------------- Utilities ------------------------- #
    @staticmethod
    def _check_book_fields(title: str, author: str) -> None:
        if not TextValidator.validate_title(title):
            raise InvalidArgument("Title cannot be empty")
        if not TextValidator.validate_author(author):
            raise InvalidArgument("Author cannot be empty")


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so ``text`` matches literally with ``ESCAPE '\\'``."""
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
