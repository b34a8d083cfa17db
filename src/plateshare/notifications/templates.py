"""Message templates for in-app notifications."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from plateshare.models.notification import NotificationKind


@dataclass(frozen=True)
class RenderedNotification:
    title: str
    message: str
    action_url: Optional[str] = None


def _format_date(value: Any) -> Optional[str]:
    if not value:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return value
    return value.strftime("%Y-%m-%d")


def _request_created(payload: Mapping[str, Any]) -> RenderedNotification:
    return RenderedNotification(
        title="New Food Request",
        message=(
            f"{payload.get('user_name') or 'A user'} requested "
            f"{payload['quantity']} {payload['unit']} of {payload['food_title']}"
        ),
        action_url="/restaurant/requests",
    )


def _request_approved(payload: Mapping[str, Any]) -> RenderedNotification:
    pickup = _format_date(payload.get("pickup_date"))
    pickup_info = f" for pickup on {pickup}" if pickup else ""
    return RenderedNotification(
        title="Request Approved!",
        message=(
            f"{payload.get('restaurant_name') or 'The restaurant'} approved your request "
            f"for {payload['food_title']}{pickup_info}"
        ),
        action_url="/user/requests",
    )


def _request_rejected(payload: Mapping[str, Any]) -> RenderedNotification:
    return RenderedNotification(
        title="Request Declined",
        message=(
            f"{payload.get('restaurant_name') or 'The restaurant'} declined your request "
            f"for {payload['food_title']}. Don't worry, there are other options available!"
        ),
        action_url="/food/browse",
    )


def _request_completed(payload: Mapping[str, Any]) -> RenderedNotification:
    return RenderedNotification(
        title="Pickup Confirmed!",
        message=(
            f"Your pickup of {payload['food_title']} from "
            f"{payload.get('restaurant_name') or 'the restaurant'} has been completed. "
            "Thank you for helping reduce food waste!"
        ),
        action_url="/user/history",
    )


def _request_cancelled(payload: Mapping[str, Any]) -> RenderedNotification:
    return RenderedNotification(
        title="Request Cancelled",
        message=(
            f"{payload.get('user_name') or 'A user'} cancelled their request "
            f"for {payload['food_title']}"
        ),
        action_url="/restaurant/requests",
    )


def _listing_expiring(payload: Mapping[str, Any]) -> RenderedNotification:
    return RenderedNotification(
        title="Food Expiring Soon",
        message=(
            f'Your listing "{payload["food_title"]}" expires in '
            f"{payload['days_until_expiry']} day(s). Consider updating or removing it."
        ),
        action_url="/restaurant/listings",
    )


def _restaurant_verified(payload: Mapping[str, Any]) -> RenderedNotification:
    return RenderedNotification(
        title="Restaurant Verified!",
        message=(
            f"Congratulations! {payload['restaurant_name']} has been verified. "
            "You can now list food items."
        ),
        action_url="/restaurant/dashboard",
    )


def _restaurant_unverified(payload: Mapping[str, Any]) -> RenderedNotification:
    return RenderedNotification(
        title="Verification Revoked",
        message=(
            f"{payload['restaurant_name']} has been unverified by an administrator. "
            "You will not be able to list food items until re-verification."
        ),
        action_url="/restaurant/dashboard",
    )


TEMPLATES: Dict[NotificationKind, Callable[[Mapping[str, Any]], RenderedNotification]] = {
    NotificationKind.REQUEST_CREATED: _request_created,
    NotificationKind.REQUEST_APPROVED: _request_approved,
    NotificationKind.REQUEST_REJECTED: _request_rejected,
    NotificationKind.REQUEST_COMPLETED: _request_completed,
    NotificationKind.REQUEST_CANCELLED: _request_cancelled,
    NotificationKind.LISTING_EXPIRING_SOON: _listing_expiring,
    NotificationKind.RESTAURANT_VERIFIED: _restaurant_verified,
    NotificationKind.RESTAURANT_UNVERIFIED: _restaurant_unverified,
}


def render(kind: NotificationKind, payload: Mapping[str, Any]) -> RenderedNotification:
    """Render the title, message and action link for a notification kind."""

    try:
        template = TEMPLATES[NotificationKind(kind)]
    except KeyError as exc:
        raise ValueError(f"No template registered for {kind!r}") from exc
    return template(payload)


__all__ = ["RenderedNotification", "TEMPLATES", "render"]
