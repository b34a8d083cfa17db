"""Explicit status transitions for food listings and food requests.

Listing status only changes in response to a ``ListingEvent`` raised by a
request transition; the single derived rule is the one applied when a portion
is reserved (``remaining <= 0`` means the listing is fully reserved).
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Tuple

from plateshare.errors import InvalidStateError
from plateshare.models.listing import ListingStatus
from plateshare.models.request import RequestStatus


class ListingEvent(str, Enum):
    RESERVE_PORTION = "reserve_portion"
    RELEASE = "release"
    APPROVE = "approve"
    COMPLETE = "complete"


# (current request status, requested status) -> listing event
REQUEST_TRANSITIONS: Dict[Tuple[RequestStatus, RequestStatus], ListingEvent] = {
    (RequestStatus.PENDING, RequestStatus.REJECTED): ListingEvent.RELEASE,
    (RequestStatus.PENDING, RequestStatus.APPROVED): ListingEvent.APPROVE,
    (RequestStatus.APPROVED, RequestStatus.COMPLETED): ListingEvent.COMPLETE,
    (RequestStatus.PENDING, RequestStatus.CANCELLED): ListingEvent.RELEASE,
}

# Targets a restaurant may set through a status update.
RESTAURANT_TARGETS = frozenset(
    {RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.COMPLETED}
)


def next_listing_status(
    current: ListingStatus,
    event: ListingEvent,
    remaining: Optional[int] = None,
) -> ListingStatus:
    """Return the listing status that follows ``event``.

    ``remaining`` is the listing quantity after the event has been applied and is
    required for ``RESERVE_PORTION``.
    """

    if event is ListingEvent.RESERVE_PORTION:
        if current is not ListingStatus.AVAILABLE:
            raise InvalidStateError("Food listing is not available")
        if remaining is None:
            raise ValueError("remaining quantity is required when reserving a portion")
        return ListingStatus.RESERVED if remaining <= 0 else ListingStatus.AVAILABLE
    if event is ListingEvent.RELEASE:
        return ListingStatus.AVAILABLE
    if event is ListingEvent.APPROVE:
        return ListingStatus.RESERVED
    if event is ListingEvent.COMPLETE:
        return ListingStatus.CLAIMED
    raise ValueError(f"Unknown listing event {event!r}")


def request_transition(current: RequestStatus, target: RequestStatus) -> ListingEvent:
    """Validate a request status change and return the listing event it triggers."""

    if current.is_terminal:
        raise InvalidStateError(f"Food request is already {current.value.lower()}")
    event = REQUEST_TRANSITIONS.get((current, target))
    if event is None:
        raise InvalidStateError(
            f"Cannot change food request from {current.value} to {target.value}"
        )
    return event


__all__ = [
    "ListingEvent",
    "REQUEST_TRANSITIONS",
    "RESTAURANT_TARGETS",
    "next_listing_status",
    "request_transition",
]
