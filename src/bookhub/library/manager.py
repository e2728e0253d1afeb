"""Library manager for personal reading lists."""

from typing import Any, Optional

from sqlalchemy import func, select

from ..db.sqlite import Database, get_db
from ..errors import NotFoundError, ValidationError, parse_model
from ..log import get_logger
from .models import LibraryEntry
from .schemas import LibraryEntryCreate, LibraryEntryUpdate, ReadingStatus

logger = get_logger(__name__)


def _status_value(status) -> str:
    try:
        return ReadingStatus(status).value
    except ValueError:
        raise ValidationError(f"Unknown reading status: {status}") from None


class LibraryManager:
    """Manages the books each user is tracking."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize library manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def add_book(self, user_id: str, book_id: str, **fields: Any) -> LibraryEntry:
        """Add a catalog book to a user's reading list.

        Args:
            user_id: Owner
            book_id: Catalog book identifier
            **fields: title, author, cover_image, isbn, status, rating, notes

        Returns:
            Created entry

        Raises:
            ValidationError: If fields are invalid or the book is already listed
        """
        data = parse_model(LibraryEntryCreate, book_id=book_id, **fields)

        with self.db.get_session() as session:
            if self._find(session, user_id, data.book_id):
                raise ValidationError("Book is already in your library")

            entry = LibraryEntry(
                user_id=user_id,
                book_id=data.book_id,
                title=data.title,
                author=data.author,
                cover_image=data.cover_image,
                isbn=data.isbn,
                status=data.status.value,
                rating=data.rating,
                notes=data.notes,
            )
            session.add(entry)
            session.commit()
            session.refresh(entry)
            session.expunge(entry)

        logger.info("User %s added book %s as %s", user_id, entry.book_id, entry.status)
        return entry

    def get_entry(self, user_id: str, book_id: str) -> Optional[LibraryEntry]:
        """Get a user's entry for a book, if any."""
        with self.db.get_session() as session:
            entry = self._find(session, user_id, book_id)
            if entry:
                session.expunge(entry)
            return entry

    def list_entries(
        self,
        user_id: str,
        status: Optional[ReadingStatus] = None,
    ) -> list[LibraryEntry]:
        """List a user's reading list, most recently touched first.

        Args:
            user_id: Owner
            status: Only return entries with this status

        Returns:
            List of entries
        """
        with self.db.get_session() as session:
            stmt = select(LibraryEntry).where(LibraryEntry.user_id == user_id)
            if status is not None:
                stmt = stmt.where(LibraryEntry.status == _status_value(status))
            stmt = stmt.order_by(LibraryEntry.updated_at.desc())

            entries = session.execute(stmt).scalars().all()
            for entry in entries:
                session.expunge(entry)
            return list(entries)

    def update_entry(self, user_id: str, book_id: str, **changes: Any) -> LibraryEntry:
        """Update status, rating or notes of a listed book.

        Raises:
            ValidationError: If a supplied field is invalid
            NotFoundError: If the book is not on the user's list
        """
        data = parse_model(LibraryEntryUpdate, **changes)
        update_data = data.model_dump(exclude_unset=True)

        with self.db.get_session() as session:
            entry = self._find(session, user_id, book_id)
            if not entry:
                raise NotFoundError("Book not found in library")

            for field, value in update_data.items():
                if field == "status":
                    if value is None:
                        raise ValidationError("status cannot be null")
                    value = value.value
                setattr(entry, field, value)

            session.commit()
            session.refresh(entry)
            session.expunge(entry)

        logger.info("User %s updated library entry for book %s", user_id, book_id)
        return entry

    def remove_book(self, user_id: str, book_id: str) -> bool:
        """Remove a book from a user's reading list.

        Returns:
            True if an entry was removed
        """
        with self.db.get_session() as session:
            entry = self._find(session, user_id, book_id)
            if not entry:
                return False
            session.delete(entry)
            session.commit()

        logger.info("User %s removed book %s from library", user_id, book_id)
        return True

    def status_counts(self, user_id: str) -> dict[str, int]:
        """Count a user's entries per reading status."""
        counts = {status.value: 0 for status in ReadingStatus}
        with self.db.get_session() as session:
            rows = session.execute(
                select(LibraryEntry.status, func.count(LibraryEntry.id))
                .where(LibraryEntry.user_id == user_id)
                .group_by(LibraryEntry.status)
            ).all()
        for status, count in rows:
            counts[status] = count
        return counts

    @staticmethod
    def _find(session, user_id: str, book_id: str) -> Optional[LibraryEntry]:
        return session.execute(
            select(LibraryEntry)
            .where(LibraryEntry.user_id == user_id, LibraryEntry.book_id == book_id)
            .limit(1)
        ).scalar_one_or_none()
