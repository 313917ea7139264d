"""Error types and classification for fuzzy search failures."""

from enum import Enum

from pydantic import ValidationError

from src.core.db_client import DatabaseError


class ErrorCategory(Enum):
    """Categories of errors that can occur while searching."""

    INVALID_REQUEST = "invalid_request"
    STORAGE = "storage"
    UNKNOWN = "unknown"


class FuzzySearchError(Exception):
    """Base class for fuzzy search errors."""


class InvalidSearchRequestError(FuzzySearchError):
    """Raised when a base query or search request is malformed."""


def classify_search_error(exception: Exception) -> ErrorCategory:
    """Classify an exception caught at the search boundary.

    Args:
        exception: The exception raised during the search

    Returns:
        The ErrorCategory used to tag the failure log event
    """
    if isinstance(exception, InvalidSearchRequestError | ValidationError | ValueError):
        return ErrorCategory.INVALID_REQUEST

    if isinstance(exception, DatabaseError | ConnectionError | TimeoutError | OSError):
        return ErrorCategory.STORAGE

    return ErrorCategory.UNKNOWN
