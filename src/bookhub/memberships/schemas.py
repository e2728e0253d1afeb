"""Pydantic schemas for reading-service memberships."""

from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class MembershipStatus(str, Enum):
    """Lifecycle state of a subscription."""

    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class MembershipCreate(BaseModel):
    """Schema for recording a membership."""

    service: str = Field(..., min_length=1, max_length=100)  # audible, kindle, library...
    membership_type: str = Field(..., min_length=1, max_length=100)  # plus, premium...
    price: Optional[str] = Field(None, max_length=50)
    status: MembershipStatus = MembershipStatus.ACTIVE
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("end_date")
    @classmethod
    def end_after_start(cls, v, info):
        """Validate end date is not before start date."""
        if v and info.data.get("start_date") and v < info.data["start_date"]:
            raise ValueError("end_date must not be before start_date")
        return v


class MembershipUpdate(BaseModel):
    """Schema for updating a membership."""

    membership_type: Optional[str] = Field(None, min_length=1, max_length=100)
    price: Optional[str] = Field(None, max_length=50)
    status: Optional[MembershipStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = None


class MembershipResponse(BaseModel):
    """Schema for membership responses."""

    id: str
    service: str
    membership_type: str
    price: Optional[str]
    status: MembershipStatus
    start_date: Optional[date]
    end_date: Optional[date]
    notes: Optional[str]
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}
