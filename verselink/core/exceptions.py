"""Custom exception hierarchy."""

class AppError(Exception):
    """Base exception for application errors."""
    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""
    pass


class ScriptureFetchError(APIClientError):
    """Raised when verse text cannot be retrieved for a citation.

    Covers network errors, non-success statuses and empty verse lists.
    """
    pass


class ValidationError(AppError):
    """Raised when input validation fails."""
    pass


class InvalidReferenceError(ValidationError):
    """Raised when a supplied string does not parse as a scripture reference."""
    pass


class NoteNotFoundError(AppError):
    """Raised when a note is not found for the requesting owner."""
    pass


class CollectionNotFoundError(AppError):
    """Raised when a target collection is not found for the requesting owner."""
    pass
