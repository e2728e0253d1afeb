"""SQLAlchemy models for reading-service memberships.

Tables:
- memberships: Audiobook / e-book subscriptions a user tracks
"""

from typing import Optional

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ..db.models import Base, generate_uuid, utcnow_iso
from .schemas import MembershipStatus


class Membership(Base):
    """Membership model - one subscription plan held by a user."""

    __tablename__ = "memberships"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    service: Mapped[str] = mapped_column(String(100), nullable=False)
    membership_type: Mapped[str] = mapped_column(String(100), nullable=False)
    price: Mapped[Optional[str]] = mapped_column(String(50))
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MembershipStatus.ACTIVE.value
    )

    start_date: Mapped[Optional[str]] = mapped_column(String(10))  # ISO date
    end_date: Mapped[Optional[str]] = mapped_column(String(10))  # ISO date
    notes: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso)
    updated_at: Mapped[str] = mapped_column(String(32), default=utcnow_iso, onupdate=utcnow_iso)

    def __repr__(self) -> str:
        return f"<Membership(id={self.id}, service={self.service}, status={self.status})>"
