"""Personal reading list module."""

from .manager import LibraryManager
from .models import LibraryEntry
from .schemas import (
    LibraryEntryCreate,
    LibraryEntryResponse,
    LibraryEntryUpdate,
    ReadingStatus,
)

__all__ = [
    "LibraryManager",
    "LibraryEntry",
    "LibraryEntryCreate",
    "LibraryEntryUpdate",
    "LibraryEntryResponse",
    "ReadingStatus",
]
