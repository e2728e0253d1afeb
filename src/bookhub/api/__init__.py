"""API module for the external book catalog."""

from .openlibrary import (
    BookResult,
    OpenLibraryClient,
    OpenLibraryError,
    OpenLibraryRateLimitError,
)

__all__ = [
    "OpenLibraryClient",
    "OpenLibraryError",
    "OpenLibraryRateLimitError",
    "BookResult",
]
