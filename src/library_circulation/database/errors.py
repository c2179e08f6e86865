"""
Exception hierarchy for record store and circulation failures.

Every error carries a ``kind`` (the name clients see in error bodies) and the
HTTP-style ``status_code`` the request/response boundary answers with. None of
them are fatal to the process.
"""


class RepositoryException(Exception):
    """Base exception for record store and circulation operations."""

    kind = "Error"
    status_code = 500

    def to_body(self) -> dict[str, str]:
        """Structured error body returned to callers."""
        return {"error": str(self), "kind": self.kind}


class NotFoundError(RepositoryException):
    """Raised when a book, member or loan lookup misses."""

    kind = "NotFound"
    status_code = 404


class BookNotFoundError(NotFoundError):
    def __init__(self, book_id: str):
        super().__init__(f"Book {book_id} not found")
        self.book_id = book_id


class MemberNotFoundError(NotFoundError):
    def __init__(self, member_id: str):
        super().__init__(f"Member {member_id} not found")
        self.member_id = member_id


class LoanNotFoundError(NotFoundError):
    def __init__(self, loan_id: str):
        super().__init__(f"Loan record {loan_id} not found")
        self.loan_id = loan_id


class BookUnavailableError(RepositoryException):
    """Raised when a borrow finds no copies left."""

    kind = "BookUnavailable"
    status_code = 409

    def __init__(self, book_id: str, title: str):
        super().__init__(f"Book unavailable - no copies of '{title}' available")
        self.book_id = book_id


class AlreadyReturnedError(RepositoryException):
    """Raised when a return targets a loan that is not ``borrowed``."""

    kind = "AlreadyReturned"
    status_code = 409

    def __init__(self, loan_id: str):
        super().__init__(f"Loan {loan_id} has already been returned")
        self.loan_id = loan_id


class BookInUseError(RepositoryException):
    """Raised when deleting a book that still has open loans."""

    kind = "BookInUse"
    status_code = 409

    def __init__(self, book_id: str, open_loans: int):
        super().__init__(f"Book {book_id} has {open_loans} open loan(s) and cannot be deleted")
        self.book_id = book_id
        self.open_loans = open_loans


class RecordValidationError(RepositoryException):
    """Raised when create/update input is missing or breaks a bound."""

    kind = "ValidationError"
    status_code = 400


class StorageError(RepositoryException):
    """Raised when the underlying store fails unexpectedly."""

    kind = "StorageError"
    status_code = 500
