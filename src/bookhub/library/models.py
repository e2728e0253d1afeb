"""SQLAlchemy models for personal reading lists.

Tables:
- library_entries: Books a user tracks, with reading status
"""

from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow_iso
from .schemas import ReadingStatus


class LibraryEntry(Base):
    """Library entry - a catalog book on a user's reading list."""

    __tablename__ = "library_entries"
    __table_args__ = (Index("ix_library_entries_user_book", "user_id", "book_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    book_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Catalog details cached at add time
    title: Mapped[Optional[str]] = mapped_column(String(500))
    author: Mapped[Optional[str]] = mapped_column(String(500))
    cover_image: Mapped[Optional[str]] = mapped_column(String(1000))
    isbn: Mapped[Optional[str]] = mapped_column(String(20))

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReadingStatus.WANT_TO_READ.value, index=True
    )
    rating: Mapped[Optional[int]] = mapped_column(Integer)
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso, onupdate=utcnow_iso)

    def __repr__(self) -> str:
        return f"<LibraryEntry(user_id={self.user_id}, book_id={self.book_id}, status={self.status})>"
