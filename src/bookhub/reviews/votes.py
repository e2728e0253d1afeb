"""Helpfulness vote ledger.

The review_votes rows are the source of truth. ``Review.helpful_votes`` is a
cached count of helpful rows, recomputed inside the same transaction as every
vote change and never incremented in place.
"""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..config import Config, get_config
from ..db.models import utcnow_iso
from ..db.sqlite import Database, get_db
from ..errors import NotFoundError, ValidationError, parse_model
from ..log import get_logger
from .models import Review, ReviewVote
from .schemas import VoteCreate

logger = get_logger(__name__)


def count_helpful_votes(session: Session, review_id: str) -> int:
    """Count helpful votes recorded for a review."""
    return session.execute(
        select(func.count())
        .select_from(ReviewVote)
        .where(ReviewVote.review_id == review_id, ReviewVote.is_helpful == True)  # noqa: E712
    ).scalar() or 0


class VoteLedger:
    """Records helpful / not helpful votes and keeps review counters in sync."""

    def __init__(self, db: Optional[Database] = None, config: Optional[Config] = None):
        """Initialize vote ledger.

        Args:
            db: Database instance
            config: Application config, for the self-vote policy
        """
        self.db = db or get_db()
        self.config = config or get_config()

    def vote(self, review_id: str, user_id: str, is_helpful: bool) -> int:
        """Cast or change a user's vote on a review.

        A repeated vote overwrites the polarity of the existing row and
        refreshes its timestamp.

        Args:
            review_id: Review ID
            user_id: Voter
            is_helpful: True for helpful, False for not helpful

        Returns:
            The review's helpful vote count after the change

        Raises:
            ValidationError: If ``is_helpful`` is not a boolean, or the user
                votes on their own review while self votes are disabled
            NotFoundError: If the review does not exist
        """
        data = parse_model(VoteCreate, is_helpful=is_helpful)

        with self.db.get_session() as session:
            review = self._lock_review(session, review_id)

            if not self.config.allow_self_votes and review.user_id == user_id:
                raise ValidationError("You cannot vote on your own review")

            existing = session.execute(
                select(ReviewVote).where(
                    ReviewVote.review_id == review_id,
                    ReviewVote.user_id == user_id,
                )
            ).scalar_one_or_none()

            if existing:
                existing.is_helpful = data.is_helpful
                existing.created_at = utcnow_iso()
            else:
                session.add(
                    ReviewVote(
                        review_id=review_id,
                        user_id=user_id,
                        is_helpful=data.is_helpful,
                    )
                )
            session.flush()

            count = self._store_count(session, review)
            session.commit()

        logger.info(
            "User %s voted %s on review %s (helpful=%d)",
            user_id,
            "helpful" if data.is_helpful else "not helpful",
            review_id,
            count,
        )
        return count

    def remove_vote(self, review_id: str, user_id: str) -> int:
        """Withdraw a user's vote. Does nothing if they never voted.

        Args:
            review_id: Review ID
            user_id: Voter

        Returns:
            The review's helpful vote count after the change

        Raises:
            NotFoundError: If the review does not exist
        """
        with self.db.get_session() as session:
            review = self._lock_review(session, review_id)

            existing = session.execute(
                select(ReviewVote).where(
                    ReviewVote.review_id == review_id,
                    ReviewVote.user_id == user_id,
                )
            ).scalar_one_or_none()
            if existing:
                session.delete(existing)
                session.flush()

            count = self._store_count(session, review)
            session.commit()

        if existing:
            logger.info("User %s removed vote on review %s (helpful=%d)", user_id, review_id, count)
        return count

    def get_vote(self, review_id: str, user_id: str) -> Optional[bool]:
        """Get a user's vote on a review.

        Returns:
            True (helpful), False (not helpful) or None (no vote)
        """
        with self.db.get_session() as session:
            return session.execute(
                select(ReviewVote.is_helpful).where(
                    ReviewVote.review_id == review_id,
                    ReviewVote.user_id == user_id,
                )
            ).scalar_one_or_none()

    def get_votes_for_reviews(self, review_ids: list[str], user_id: str) -> dict[str, bool]:
        """Map review id to the user's vote for every review they voted on."""
        if not review_ids:
            return {}
        with self.db.get_session() as session:
            return self.votes_by_user(session, review_ids, user_id)

    def recount(self, review_id: str) -> int:
        """Rebuild a review's helpful counter from the vote rows.

        Args:
            review_id: Review ID

        Returns:
            The recomputed count

        Raises:
            NotFoundError: If the review does not exist
        """
        with self.db.get_session() as session:
            review = self._lock_review(session, review_id)
            before = review.helpful_votes
            count = self._store_count(session, review)
            session.commit()

        if before != count:
            logger.warning("Repaired helpful count on review %s: %d -> %d", review_id, before, count)
        return count

    # -------------------------------------------------------------------------
    # Helper Methods
    # -------------------------------------------------------------------------

    @staticmethod
    def votes_by_user(session: Session, review_ids: list[str], user_id: str) -> dict[str, bool]:
        """Look up one user's votes for a batch of reviews."""
        rows = session.execute(
            select(ReviewVote.review_id, ReviewVote.is_helpful).where(
                ReviewVote.user_id == user_id,
                ReviewVote.review_id.in_(review_ids),
            )
        ).all()
        return {review_id: is_helpful for review_id, is_helpful in rows}

    @staticmethod
    def _lock_review(session: Session, review_id: str) -> Review:
        """Load a review, locking its row where the backend supports it."""
        review = session.execute(
            select(Review).where(Review.id == review_id).with_for_update()
        ).scalar_one_or_none()
        if not review:
            raise NotFoundError("Review not found")
        return review

    @staticmethod
    def _store_count(session: Session, review: Review) -> int:
        count = count_helpful_votes(session, review.id)
        review.helpful_votes = count
        return count
