"""Pydantic schemas for book reviews."""

from typing import Optional

from pydantic import BaseModel, Field, StrictBool, StrictInt, field_validator

MIN_RATING = 1
MAX_RATING = 5

# Largest value SQLite binds as INTEGER
MAX_SQL_INT = 2**63 - 1


def _clean_content(v: Optional[str]) -> Optional[str]:
    """Collapse blank review text to None."""
    if v is None:
        return None
    v = v.strip()
    return v or None


class ReviewCreate(BaseModel):
    """Schema for creating a review."""

    book_id: str = Field(..., min_length=1, max_length=64)
    rating: StrictInt = Field(..., ge=MIN_RATING, le=MAX_RATING)
    content: Optional[str] = Field(None, max_length=20000)

    @field_validator("content")
    @classmethod
    def clean_content(cls, v):
        return _clean_content(v)


class ReviewUpdate(BaseModel):
    """Schema for updating a review.

    Only fields that were explicitly supplied are applied.
    """

    rating: Optional[StrictInt] = Field(None, ge=MIN_RATING, le=MAX_RATING)
    content: Optional[str] = Field(None, max_length=20000)

    @field_validator("rating")
    @classmethod
    def rating_not_null(cls, v):
        """A review always keeps a rating."""
        if v is None:
            raise ValueError("rating cannot be null")
        return v

    @field_validator("content")
    @classmethod
    def clean_content(cls, v):
        return _clean_content(v)


class VoteCreate(BaseModel):
    """Schema for a helpfulness vote."""

    is_helpful: StrictBool


class ListReviewsQuery(BaseModel):
    """Pagination parameters for listing a book's reviews."""

    limit: Optional[int] = Field(None, ge=0, le=MAX_SQL_INT)
    offset: int = Field(0, ge=0, le=MAX_SQL_INT)


class ReviewResponse(BaseModel):
    """Schema for review responses."""

    id: str
    user_id: str
    book_id: str
    rating: int
    content: Optional[str]
    helpful_votes: int
    created_at: str
    updated_at: str

    # Related
    author_name: Optional[str] = None

    # Requesting user's own vote: True, False, or None when absent
    user_vote: Optional[bool] = None

    model_config = {"from_attributes": True}


class BookRatingStats(BaseModel):
    """Rating statistics for a single book."""

    average_rating: float = 0.0
    total_reviews: int = 0
    distribution: dict[int, int] = Field(
        default_factory=lambda: {star: 0 for star in range(MIN_RATING, MAX_RATING + 1)}
    )
