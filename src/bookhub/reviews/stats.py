"""Rating statistics for books.

Averages are plain means of star ratings; helpfulness does not weight them.
"""

from collections.abc import Mapping
from typing import Optional

from sqlalchemy import func, select

from ..db.sqlite import Database, get_db
from .models import Review
from .schemas import MAX_RATING, MIN_RATING, BookRatingStats


def aggregate_ratings(rating_counts: Mapping[int, int]) -> BookRatingStats:
    """Build rating statistics from per-star review counts.

    Args:
        rating_counts: Mapping of star value to number of reviews

    Returns:
        BookRatingStats; all zeros when there are no reviews
    """
    distribution = {star: 0 for star in range(MIN_RATING, MAX_RATING + 1)}
    for star, count in rating_counts.items():
        if star not in distribution:
            raise ValueError(f"Rating out of range: {star}")
        distribution[star] += count

    total = sum(distribution.values())
    if total == 0:
        return BookRatingStats(average_rating=0.0, total_reviews=0, distribution=distribution)

    weighted = sum(star * count for star, count in distribution.items())
    return BookRatingStats(
        average_rating=weighted / total,
        total_reviews=total,
        distribution=distribution,
    )


class RatingAggregator:
    """Computes per-book rating statistics from stored reviews."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize aggregator.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def get_stats(self, book_id: str) -> BookRatingStats:
        """Get average rating, review count and star distribution for a book.

        Args:
            book_id: Catalog book identifier

        Returns:
            BookRatingStats (zeroed when the book has no reviews)
        """
        with self.db.get_session() as session:
            rows = session.execute(
                select(Review.rating, func.count(Review.id))
                .where(Review.book_id == book_id)
                .group_by(Review.rating)
            ).all()

        return aggregate_ratings({rating: count for rating, count in rows})
