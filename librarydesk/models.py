from __future__ import annotations

ISSUED = "issued"
RETURNED = "returned"


class Book:
    """A title in the catalog together with its copy counts."""

    def __init__(self, id: int | None, title: str, author: str, quantity: int, available: int | None = None) -> None:
        self.id = id
        self.title = title.strip()
        self.author = author.strip()
        self.quantity = quantity
        self.available = quantity if available is None else available

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} ({self.available}/{self.quantity} available)"

    @property
    def on_loan(self) -> int:
        return self.quantity - self.available

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "quantity": self.quantity,
            "available": self.available,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data.get("id"),
            title=data["title"] or "",
            author=data["author"] or "",
            quantity=data["quantity"],
            available=data.get("available"),
        )


class Student:
    """A registered borrower."""

    def __init__(self, id: int | None, name: str, department: str | None = None, phone: str | None = None) -> None:
        self.id = id
        self.name = name.strip()
        self.department = department.strip() if department else department
        self.phone = phone.strip() if phone else phone

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.name} ({self.department or '-'})"

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "department": self.department, "phone": self.phone}

    @staticmethod
    def from_dict(data: dict) -> "Student":
        return Student(
            id=data.get("id"),
            name=data["name"] or "",
            department=data.get("department"),
            phone=data.get("phone"),
        )


class Issue:
    """One copy of a book lent to one student.

    ``student_name`` and ``book_title`` are only filled in by queries that
    join the issue with its student and book rows.
    """

    def __init__(self, id: int | None, student_id: int, book_id: int, issue_date: str,
                 return_date: str | None = None, fine: int = 0, status: str = ISSUED,
                 student_name: str | None = None, book_title: str | None = None) -> None:
        self.id = id
        self.student_id = student_id
        self.book_id = book_id
        self.issue_date = issue_date
        self.return_date = return_date
        self.fine = fine or 0
        self.status = status
        self.student_name = student_name
        self.book_title = book_title

    @property
    def is_returned(self) -> bool:
        return self.status == RETURNED

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "student_id": self.student_id,
            "book_id": self.book_id,
            "issue_date": self.issue_date,
            "return_date": self.return_date,
            "fine": self.fine,
            "status": self.status,
        }
        # Joined columns
        if self.student_name is not None:
            data["student_name"] = self.student_name
        if self.book_title is not None:
            data["book_title"] = self.book_title
        return data

    @staticmethod
    def from_dict(data: dict) -> "Issue":
        return Issue(
            id=data.get("id"),
            student_id=data["student_id"],
            book_id=data["book_id"],
            issue_date=data["issue_date"],
            return_date=data.get("return_date"),
            fine=data.get("fine", 0),
            status=data.get("status") or ISSUED,
            student_name=data.get("student_name"),
            book_title=data.get("book_title"),
        )
