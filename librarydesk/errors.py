"""Error kinds raised by the catalog and the ledger.

Each error carries the HTTP status the API answers with, so request handlers
never need to know which operation failed.
"""


class LibraryError(Exception):
    """Base class for every expected failure of a library operation."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgument(LibraryError, ValueError):
    """Malformed create/update input."""

    status_code = 400


class NotFound(LibraryError, LookupError):
    """Unknown book, student or issue id."""

    status_code = 404


class IssueNotFound(NotFound):
    def __init__(self, message: str = "Issue record not found") -> None:
        super().__init__(message)


class BookUnavailable(LibraryError):
    """The book does not exist or has no free copies."""

    status_code = 400

    def __init__(self, message: str = "Book not available") -> None:
        super().__init__(message)


class AlreadyReturned(LibraryError):
    status_code = 409

    def __init__(self, message: str = "Book has already been returned") -> None:
        super().__init__(message)


class Conflict(LibraryError):
    """The operation would leave dangling references."""

    status_code = 409


class NotAuthenticated(LibraryError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)
