"""Food request models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from plateshare.models.listing import FoodListing, Pagination


class RequestStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_REQUEST_STATUSES


TERMINAL_REQUEST_STATUSES = frozenset(
    {RequestStatus.REJECTED, RequestStatus.COMPLETED, RequestStatus.CANCELLED}
)


class FoodRequest(BaseModel):
    """A user's claim against a portion of a listing's quantity."""

    id: str
    user_id: str
    user_name: Optional[str] = None
    food_listing_id: str
    quantity: int = Field(gt=0)
    message: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    pickup_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class FoodRequestDetail(FoodRequest):
    """Request joined with the listing it targets, for inbox-style views."""

    food_listing: FoodListing


class FoodRequestPage(BaseModel):
    food_requests: List[FoodRequestDetail]
    pagination: Pagination


__all__ = [
    "RequestStatus",
    "TERMINAL_REQUEST_STATUSES",
    "FoodRequest",
    "FoodRequestDetail",
    "FoodRequestPage",
]
