"""Review manager for book review operations."""

from typing import Any, Optional

from sqlalchemy import delete, select

from ..config import Config, get_config
from ..db.sqlite import Database, get_db
from ..db.models import utcnow_iso
from ..errors import DuplicateReviewError, NotFoundError, parse_model
from ..log import get_logger
from .models import Review, ReviewVote
from .schemas import ReviewCreate, ReviewUpdate

logger = get_logger(__name__)


class ReviewManager:
    """Manages review creation, editing and deletion."""

    def __init__(self, db: Optional[Database] = None, config: Optional[Config] = None):
        """Initialize review manager.

        Args:
            db: Database instance
            config: Application config, for the single-review policy
        """
        self.db = db or get_db()
        self.config = config or get_config()

    # -------------------------------------------------------------------------
    # Review CRUD
    # -------------------------------------------------------------------------

    def create_review(
        self,
        user_id: str,
        book_id: str,
        rating: int,
        content: Optional[str] = None,
    ) -> Review:
        """Create a new review.

        Args:
            user_id: Authenticated author
            book_id: Catalog book identifier
            rating: Star rating (1-5)
            content: Optional review text

        Returns:
            Created review, with no helpful votes

        Raises:
            ValidationError: If the rating or fields are invalid
            DuplicateReviewError: If multiple reviews are disabled and the
                author already reviewed this book
        """
        data = parse_model(ReviewCreate, book_id=book_id, rating=rating, content=content)

        with self.db.get_session() as session:
            if not self.config.allow_multiple_reviews:
                existing = session.execute(
                    select(Review.id).where(
                        Review.user_id == user_id,
                        Review.book_id == data.book_id,
                    ).limit(1)
                ).scalar_one_or_none()
                if existing:
                    raise DuplicateReviewError("You have already reviewed this book")

            review = Review(
                user_id=user_id,
                book_id=data.book_id,
                rating=data.rating,
                content=data.content,
                helpful_votes=0,
            )

            session.add(review)
            session.commit()
            session.refresh(review)
            session.expunge(review)

        logger.info("Created review %s for book %s by user %s", review.id, review.book_id, user_id)
        return review

    def get_review(self, review_id: str) -> Optional[Review]:
        """Get a review by ID.

        Args:
            review_id: Review ID

        Returns:
            Review or None
        """
        with self.db.get_session() as session:
            review = session.get(Review, review_id)
            if review:
                session.expunge(review)
            return review

    def get_user_review(self, book_id: str, user_id: str) -> Optional[Review]:
        """Get a user's most recent review of a book.

        Args:
            book_id: Catalog book identifier
            user_id: Author

        Returns:
            Review or None
        """
        with self.db.get_session() as session:
            stmt = (
                select(Review)
                .where(Review.book_id == book_id, Review.user_id == user_id)
                .order_by(Review.created_at.desc())
                .limit(1)
            )
            review = session.execute(stmt).scalar_one_or_none()
            if review:
                session.expunge(review)
            return review

    def update_review(self, review_id: str, user_id: str, **changes: Any) -> Review:
        """Update a review owned by ``user_id``.

        Only the supplied keyword arguments (``rating``, ``content``) change.

        Args:
            review_id: Review ID
            user_id: Acting user, must be the author

        Returns:
            Updated review

        Raises:
            ValidationError: If a supplied field is invalid
            NotFoundError: If the review does not exist or belongs to
                someone else
        """
        data = parse_model(ReviewUpdate, **changes)
        update_data = data.model_dump(exclude_unset=True)

        with self.db.get_session() as session:
            review = self._get_owned(session, review_id, user_id)

            for field, value in update_data.items():
                setattr(review, field, value)

            review.updated_at = utcnow_iso()
            session.commit()
            session.refresh(review)
            session.expunge(review)

        logger.info("Updated review %s (%s)", review_id, ", ".join(sorted(update_data)) or "touch")
        return review

    def delete_review(self, review_id: str, user_id: str) -> None:
        """Delete a review owned by ``user_id`` together with its votes.

        Args:
            review_id: Review ID
            user_id: Acting user, must be the author

        Raises:
            NotFoundError: If the review does not exist or belongs to
                someone else
        """
        with self.db.get_session() as session:
            review = self._get_owned(session, review_id, user_id)

            session.execute(delete(ReviewVote).where(ReviewVote.review_id == review.id))
            session.delete(review)
            session.commit()

        logger.info("Deleted review %s", review_id)

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    @staticmethod
    def _get_owned(session, review_id: str, user_id: str) -> Review:
        """Load a review by id and author in one lookup.

        Missing and foreign reviews raise the same error so callers cannot
        probe for other users' review ids.
        """
        review = session.execute(
            select(Review).where(Review.id == review_id, Review.user_id == user_id)
        ).scalar_one_or_none()
        if not review:
            raise NotFoundError("Review not found")
        return review
