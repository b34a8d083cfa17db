"""Food listing models."""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ListingStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    CLAIMED = "CLAIMED"
    EXPIRED = "EXPIRED"


class FoodListing(BaseModel):
    """Surplus food offered by a restaurant with a finite claimable quantity."""

    id: str
    restaurant_id: str
    restaurant_name: Optional[str] = None
    title: str
    description: str = ""
    quantity: int = Field(ge=0)
    unit: str
    category: Optional[str] = None
    pickup_time: Optional[str] = None
    expiry_date: datetime
    status: ListingStatus = ListingStatus.AVAILABLE
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def for_total(cls, total: int, page: int, limit: int) -> "Pagination":
        return cls(total=total, page=page, limit=limit, total_pages=math.ceil(total / limit))


class FoodListingPage(BaseModel):
    """One page of browse results."""

    food_listings: List[FoodListing]
    pagination: Pagination


__all__ = ["ListingStatus", "FoodListing", "Pagination", "FoodListingPage"]
