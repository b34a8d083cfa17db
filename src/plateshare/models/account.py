"""Restaurant and user account models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict

from plateshare.models.listing import FoodListing, Pagination
from plateshare.models.request import FoodRequestDetail


class Restaurant(BaseModel):
    id: str
    restaurant_name: str
    email: str
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    is_verified: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class RestaurantDetail(Restaurant):
    """Restaurant profile together with its listings."""

    food_listings: List[FoodListing]


class RestaurantPage(BaseModel):
    restaurants: List[Restaurant]
    pagination: Pagination


class User(BaseModel):
    id: str
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None
    role: Literal["USER", "ADMIN"] = "USER"
    is_verified: bool = False
    is_active: bool = True
    created_at: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class UserDetail(User):
    food_requests: List[FoodRequestDetail]


class UserPage(BaseModel):
    users: List[User]
    pagination: Pagination


class DashboardStats(BaseModel):
    """Platform totals for the admin dashboard.

    Growth strings compare rows created in the last seven days against the
    matching total, formatted like ``+12.5%``.
    """

    total_users: int
    users_growth: str
    total_restaurants: int
    restaurants_growth: str
    meals_donated: int
    meals_growth: str
    active_listings: int
    listings_growth: str
    total_food_listings: int
    total_requests: int
    pending_requests: int
    approved_requests: int
    pending_verifications: int


__all__ = [
    "Restaurant",
    "RestaurantDetail",
    "RestaurantPage",
    "User",
    "UserDetail",
    "UserPage",
    "DashboardStats",
]
