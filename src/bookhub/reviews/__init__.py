"""Book reviews, helpfulness votes and ratings module."""

from .manager import ReviewManager
from .models import Review, ReviewVote
from .query import ReviewQuery
from .schemas import (
    BookRatingStats,
    ReviewCreate,
    ReviewResponse,
    ReviewUpdate,
    VoteCreate,
)
from .stats import RatingAggregator, aggregate_ratings
from .votes import VoteLedger

__all__ = [
    "ReviewManager",
    "ReviewQuery",
    "VoteLedger",
    "RatingAggregator",
    "aggregate_ratings",
    "Review",
    "ReviewVote",
    "ReviewCreate",
    "ReviewUpdate",
    "ReviewResponse",
    "VoteCreate",
    "BookRatingStats",
]
