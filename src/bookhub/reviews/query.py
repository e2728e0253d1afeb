"""Paginated review listings annotated with the reader's own votes."""

from typing import Optional

from sqlalchemy import func, select

from ..config import Config, get_config
from ..db.models import User
from ..db.sqlite import Database, get_db
from ..errors import parse_model
from .models import Review
from .schemas import ListReviewsQuery, ReviewResponse
from .votes import VoteLedger


class ReviewQuery:
    """Read side of the review subsystem."""

    def __init__(self, db: Optional[Database] = None, config: Optional[Config] = None):
        """Initialize review query service.

        Args:
            db: Database instance
            config: Application config, for page size limits
        """
        self.db = db or get_db()
        self.config = config or get_config()

    def list_reviews(
        self,
        book_id: str,
        requester: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[ReviewResponse]:
        """List a book's reviews, most helpful first, then newest first.

        Args:
            book_id: Catalog book identifier
            requester: Reading user, if known; adds ``user_vote``
            limit: Page size (default from config, clamped to the max)
            offset: Number of reviews to skip

        Returns:
            Page of reviews

        Raises:
            ValidationError: If limit or offset is negative
        """
        page = parse_model(ListReviewsQuery, limit=limit, offset=offset)
        page_size = self.config.clamp_page_size(page.limit)

        with self.db.get_session() as session:
            stmt = (
                select(Review, User.name)
                .join(User, Review.user_id == User.id)
                .where(Review.book_id == book_id)
                .order_by(
                    Review.helpful_votes.desc(),
                    Review.created_at.desc(),
                    Review.id.desc(),
                )
                .limit(page_size)
                .offset(page.offset)
            )
            rows = session.execute(stmt).all()

            votes: dict[str, bool] = {}
            if requester and rows:
                votes = VoteLedger.votes_by_user(
                    session, [review.id for review, _ in rows], requester
                )

            results = []
            for review, author_name in rows:
                response = ReviewResponse.model_validate(review)
                response.author_name = author_name
                response.user_vote = votes.get(review.id)
                results.append(response)

        return results

    def count_reviews(self, book_id: str) -> int:
        """Count all reviews of a book."""
        with self.db.get_session() as session:
            return session.execute(
                select(func.count()).select_from(Review).where(Review.book_id == book_id)
            ).scalar() or 0
