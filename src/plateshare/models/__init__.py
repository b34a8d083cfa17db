"""Pydantic models defining shared data contracts."""

from plateshare.models.account import (
    DashboardStats,
    Restaurant,
    RestaurantDetail,
    RestaurantPage,
    User,
    UserDetail,
    UserPage,
)
from plateshare.models.listing import FoodListing, FoodListingPage, ListingStatus, Pagination
from plateshare.models.notification import Notification, NotificationKind, RecipientKind
from plateshare.models.request import (
    TERMINAL_REQUEST_STATUSES,
    FoodRequest,
    FoodRequestDetail,
    FoodRequestPage,
    RequestStatus,
)

__all__ = [
    "DashboardStats",
    "Restaurant",
    "RestaurantDetail",
    "RestaurantPage",
    "User",
    "UserDetail",
    "UserPage",
    "FoodListing",
    "FoodListingPage",
    "ListingStatus",
    "Pagination",
    "Notification",
    "NotificationKind",
    "RecipientKind",
    "FoodRequest",
    "FoodRequestDetail",
    "FoodRequestPage",
    "RequestStatus",
    "TERMINAL_REQUEST_STATUSES",
]
