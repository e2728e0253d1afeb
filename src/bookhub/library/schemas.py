"""Pydantic schemas for reading lists."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class ReadingStatus(str, Enum):
    """Where a book sits on the user's reading list."""

    WANT_TO_READ = "want_to_read"
    READING = "reading"
    COMPLETED = "completed"


class LibraryEntryCreate(BaseModel):
    """Schema for adding a book to a reading list."""

    book_id: str = Field(..., min_length=1, max_length=64)
    title: Optional[str] = Field(None, max_length=500)
    author: Optional[str] = Field(None, max_length=500)
    cover_image: Optional[str] = Field(None, max_length=1000)
    isbn: Optional[str] = Field(None, max_length=20)
    status: ReadingStatus = ReadingStatus.WANT_TO_READ
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None


class LibraryEntryUpdate(BaseModel):
    """Schema for updating a reading list entry."""

    status: Optional[ReadingStatus] = None
    rating: Optional[int] = Field(None, ge=1, le=5)
    notes: Optional[str] = None


class LibraryEntryResponse(BaseModel):
    """Schema for reading list responses."""

    id: str
    book_id: str
    title: Optional[str]
    author: Optional[str]
    cover_image: Optional[str]
    isbn: Optional[str]
    status: ReadingStatus
    rating: Optional[int]
    notes: Optional[str]
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}
