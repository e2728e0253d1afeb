"""User manager for identity records and opaque token lookup."""

import secrets
from typing import Optional

from sqlalchemy import select

from ..db.models import User
from ..db.sqlite import Database, get_db
from ..errors import NotFoundError, ValidationError, parse_model
from ..log import get_logger
from .schemas import UserCreate

logger = get_logger(__name__)


class UserManager:
    """Manages users and their API tokens."""

    def __init__(self, db: Optional[Database] = None):
        """Initialize user manager.

        Args:
            db: Database instance
        """
        self.db = db or get_db()

    def create_user(self, name: str, email: str) -> User:
        """Register a new user with a fresh API token.

        Args:
            name: Display name
            email: Unique email address

        Returns:
            Created user

        Raises:
            ValidationError: If fields are invalid or the email is taken
        """
        data = parse_model(UserCreate, name=name, email=email)

        with self.db.get_session() as session:
            existing = session.execute(
                select(User).where(User.email == data.email)
            ).scalar_one_or_none()
            if existing:
                raise ValidationError("User with this email already exists")

            user = User(
                name=data.name,
                email=data.email,
                api_token=secrets.token_urlsafe(32),
            )
            session.add(user)
            session.commit()
            session.refresh(user)
            session.expunge(user)

        logger.info("Registered user %s", user.id)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        """Get a user by ID."""
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if user:
                session.expunge(user)
            return user

    def get_user_by_token(self, token: str) -> Optional[User]:
        """Resolve an API token to its user.

        Args:
            token: Opaque bearer token

        Returns:
            User or None when the token is unknown
        """
        if not token:
            return None
        with self.db.get_session() as session:
            user = session.execute(
                select(User).where(User.api_token == token)
            ).scalar_one_or_none()
            if user:
                session.expunge(user)
            return user

    def rotate_token(self, user_id: str) -> str:
        """Issue a new API token, invalidating the old one."""
        with self.db.get_session() as session:
            user = session.get(User, user_id)
            if not user:
                raise NotFoundError("User not found")
            user.api_token = secrets.token_urlsafe(32)
            token = user.api_token
        logger.info("Rotated token for user %s", user_id)
        return token
