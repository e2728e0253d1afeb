"""Membership manager for reading-service subscriptions."""

from datetime import date
from typing import Any, Optional

from sqlalchemy import select

from ..db.sqlite import Database, get_db
from ..errors import NotFoundError, ValidationError, parse_model
from ..log import get_logger
from .models import Membership
from .schemas import MembershipCreate, MembershipStatus, MembershipUpdate

logger = get_logger(__name__)


class MembershipManager:
    """Manages the reading-service memberships users record."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize membership manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def add_membership(
        self,
        user_id: str,
        service: str,
        membership_type: str,
        **fields: Any,
    ) -> Membership:
        """Record a new membership.

        Args:
            user_id: Owner
            service: Provider name
            membership_type: Plan label
            **fields: price, status, start_date, end_date, notes

        Returns:
            Created membership; start_date defaults to today
        """
        data = parse_model(
            MembershipCreate, service=service, membership_type=membership_type, **fields
        )
        start = data.start_date or date.today()
        if data.end_date and data.end_date < start:
            raise ValidationError("end_date must not be before start_date")

        with self.db.get_session() as session:
            membership = Membership(
                user_id=user_id,
                service=data.service,
                membership_type=data.membership_type,
                price=data.price,
                status=data.status.value,
                start_date=start.isoformat(),
                end_date=data.end_date.isoformat() if data.end_date else None,
                notes=data.notes,
            )
            session.add(membership)
            session.commit()
            session.refresh(membership)
            session.expunge(membership)

        logger.info("User %s added %s membership %s", user_id, membership.service, membership.id)
        return membership

    def get_membership(self, membership_id: str, user_id: str) -> Membership:
        """Get a membership owned by ``user_id``.

        Raises:
            NotFoundError: If absent or owned by someone else
        """
        with self.db.get_session() as session:
            membership = self._get_owned(session, membership_id, user_id)
            session.expunge(membership)
            return membership

    def list_memberships(
        self,
        user_id: str,
        status: Optional[MembershipStatus] = None,
    ) -> list[Membership]:
        """List a user's memberships, newest start date first."""
        with self.db.get_session() as session:
            stmt = select(Membership).where(Membership.user_id == user_id)
            if status is not None:
                try:
                    status_value = MembershipStatus(status).value
                except ValueError:
                    raise ValidationError(f"Unknown membership status: {status}") from None
                stmt = stmt.where(Membership.status == status_value)
            stmt = stmt.order_by(Membership.start_date.desc(), Membership.created_at.desc())

            memberships = session.execute(stmt).scalars().all()
            for membership in memberships:
                session.expunge(membership)
            return list(memberships)

    def update_membership(self, membership_id: str, user_id: str, **changes: Any) -> Membership:
        """Update a membership owned by ``user_id``.

        Raises:
            ValidationError: If a supplied field is invalid
            NotFoundError: If absent or owned by someone else
        """
        data = parse_model(MembershipUpdate, **changes)
        update_data = data.model_dump(exclude_unset=True)

        with self.db.get_session() as session:
            membership = self._get_owned(session, membership_id, user_id)

            for field, value in update_data.items():
                if field in ("membership_type", "status") and value is None:
                    raise ValidationError(f"{field} cannot be null")
                if field == "status":
                    value = value.value
                elif field in ("start_date", "end_date"):
                    value = value.isoformat() if value else None
                setattr(membership, field, value)

            if (
                membership.start_date
                and membership.end_date
                and membership.end_date < membership.start_date
            ):
                raise ValidationError("end_date must not be before start_date")

            session.commit()
            session.refresh(membership)
            session.expunge(membership)

        logger.info("Updated membership %s", membership_id)
        return membership

    def remove_membership(self, membership_id: str, user_id: str) -> None:
        """Delete a membership owned by ``user_id``.

        Raises:
            NotFoundError: If absent or owned by someone else
        """
        with self.db.get_session() as session:
            membership = self._get_owned(session, membership_id, user_id)
            session.delete(membership)
            session.commit()

        logger.info("Removed membership %s", membership_id)

    @staticmethod
    def _get_owned(session, membership_id: str, user_id: str) -> Membership:
        membership = session.execute(
            select(Membership).where(
                Membership.id == membership_id,
                Membership.user_id == user_id,
            )
        ).scalar_one_or_none()
        if not membership:
            raise NotFoundError("Membership not found")
        return membership
