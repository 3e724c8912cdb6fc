"""Application-level exceptions shared by the storage and service layers."""


class TutorCoreException(Exception):
    """Base exception for all application errors."""
    pass


class DatabaseException(TutorCoreException):
    """Raised when database operations fail."""

    def __init__(self, operation: str, original_error: Exception):
        self.operation = operation
        self.original_error = original_error
        super().__init__(f"Database {operation} failed: {str(original_error)}")
