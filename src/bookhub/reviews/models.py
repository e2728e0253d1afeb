"""SQLAlchemy models for book reviews.

Tables:
- reviews: Ratings and optional text a user writes about a book
- review_votes: Helpful / not helpful votes, one per (review, user)
"""

from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..db.models import Base, User, generate_uuid, utcnow_iso


class Review(Base):
    """Review model - a user's rating of a catalog book."""

    __tablename__ = "reviews"
    __table_args__ = (
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_reviews_rating_range"),
        CheckConstraint("helpful_votes >= 0", name="ck_reviews_helpful_votes"),
        Index("ix_reviews_book_ranking", "book_id", "helpful_votes", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Opaque catalog identifier; never validated against the catalog
    book_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text)

    # Derived from review_votes, rebuilt after every vote change
    helpful_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)
    # Bumped by edits only, not by vote recounts
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)

    # Relationships
    author: Mapped["User"] = relationship("User")
    votes: Mapped[list["ReviewVote"]] = relationship(
        "ReviewVote",
        back_populates="review",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Review(id={self.id}, book_id={self.book_id}, rating={self.rating})>"


class ReviewVote(Base):
    """Vote model - one user's helpfulness verdict on one review."""

    __tablename__ = "review_votes"
    __table_args__ = (
        UniqueConstraint("review_id", "user_id", name="uq_review_votes_review_user"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    review_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("reviews.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    is_helpful: Mapped[bool] = mapped_column(Boolean, nullable=False)

    # Refreshed on every re-vote
    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)

    review: Mapped["Review"] = relationship("Review", back_populates="votes")

    def __repr__(self) -> str:
        return (
            f"<ReviewVote(review_id={self.review_id}, user_id={self.user_id}, "
            f"is_helpful={self.is_helpful})>"
        )
