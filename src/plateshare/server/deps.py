"""Dependency definitions for the Plateshare API server."""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from fastapi import Depends, Header, HTTPException, Request, status

from plateshare.config import get_settings
from plateshare.db.accounts import (
    create_restaurant,
    create_user,
    get_user,
    set_restaurant_verification,
)
from plateshare.db.lifecycle_store import SqlLifecycleStore
from plateshare.db.listings import (
    browse_listings,
    create_listing,
    delete_listing,
    get_listing,
    list_restaurant_listings,
    update_listing,
)
from plateshare.db.requests import list_restaurant_requests, list_user_requests
from plateshare.lifecycle.base import NotificationSink
from plateshare.lifecycle.manager import LifecycleManager
from plateshare.models.account import Restaurant, User
from plateshare.models.listing import FoodListing, FoodListingPage
from plateshare.models.notification import RecipientKind
from plateshare.models.request import FoodRequestDetail
from plateshare.notifications.service import NotificationService

Recipient = Tuple[RecipientKind, str]
ListingBrowser = Callable[..., FoodListingPage]
ListingFetcher = Callable[[str], Optional[FoodListing]]
RestaurantListingsProvider = Callable[[str], List[FoodListing]]
ListingCreator = Callable[[str, dict], FoodListing]
ListingUpdater = Callable[[str, str, dict], FoodListing]
ListingDeleter = Callable[[str, str], None]
UserRequestsProvider = Callable[..., List[FoodRequestDetail]]
RestaurantRequestsProvider = Callable[..., List[FoodRequestDetail]]
RestaurantCreator = Callable[[dict], Restaurant]
UserCreator = Callable[[dict], User]
VerificationSetter = Callable[[str, bool], Restaurant]


def get_notification_sink() -> NotificationSink:
    """Return the notification sink used for post-commit notifications."""

    return NotificationService(enabled=get_settings().notifications_enabled)


def get_lifecycle_manager(
    sink: NotificationSink = Depends(get_notification_sink),
) -> LifecycleManager:
    """Return a lifecycle manager bound to the SQL store."""

    return LifecycleManager(SqlLifecycleStore(), sink)


def get_listing_browser() -> ListingBrowser:
    return browse_listings


def get_listing_fetcher() -> ListingFetcher:
    return get_listing


def get_restaurant_listings_provider() -> RestaurantListingsProvider:
    return list_restaurant_listings


def get_listing_creator() -> ListingCreator:
    return lambda restaurant_id, payload: create_listing(restaurant_id=restaurant_id, **payload)


def get_listing_updater() -> ListingUpdater:
    return lambda listing_id, restaurant_id, payload: update_listing(
        listing_id, restaurant_id, **payload
    )


def get_listing_deleter() -> ListingDeleter:
    return delete_listing


def get_user_requests_provider() -> UserRequestsProvider:
    return list_user_requests


def get_restaurant_requests_provider() -> RestaurantRequestsProvider:
    return list_restaurant_requests


def get_restaurant_creator() -> RestaurantCreator:
    return lambda payload: create_restaurant(**payload)


def get_user_creator() -> UserCreator:
    return lambda payload: create_user(**payload)


def get_verification_setter() -> VerificationSetter:
    return set_restaurant_verification


def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Return the authenticated user id forwarded by the gateway."""

    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User identity required",
        )
    return x_user_id


def current_restaurant_id(x_restaurant_id: Optional[str] = Header(default=None)) -> str:
    """Return the authenticated restaurant id forwarded by the gateway."""

    if not x_restaurant_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Restaurant identity required",
        )
    return x_restaurant_id


def current_recipient(
    x_user_id: Optional[str] = Header(default=None),
    x_restaurant_id: Optional[str] = Header(default=None),
) -> Recipient:
    """Resolve whose notification inbox the caller is acting on."""

    if x_restaurant_id:
        return RecipientKind.RESTAURANT, x_restaurant_id
    if x_user_id:
        return RecipientKind.USER, x_user_id
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Identity required")


def current_active_user_id(user_id: str = Depends(current_user_id)) -> str:
    """Refuse callers whose account has been deactivated by an admin."""

    user = get_user(user_id)
    if user is not None and not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Your account has been deactivated",
        )
    return user_id


def require_admin(user_id: str = Depends(current_user_id)) -> str:
    """Ensure the caller is an admin user."""

    user = get_user(user_id)
    if user is None or user.role != "ADMIN" or not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user_id


def require_api_token(
    request: Request,
    settings = Depends(get_settings),
) -> None:
    """Ensure requests carry the configured API token when required."""

    token = settings.api_token
    if not token:
        return

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.split("Bearer ")[-1].strip() == token:
        return

    if request.headers.get("X-API-Key") == token:
        return

    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
