"""Reading-service membership module."""

from .manager import MembershipManager
from .models import Membership
from .schemas import (
    MembershipCreate,
    MembershipResponse,
    MembershipStatus,
    MembershipUpdate,
)

__all__ = [
    "MembershipManager",
    "Membership",
    "MembershipCreate",
    "MembershipUpdate",
    "MembershipResponse",
    "MembershipStatus",
]
