"""Listing/request lifecycle: state machine, store interfaces and manager."""

from plateshare.lifecycle.base import (
    LifecycleStore,
    LifecycleTransaction,
    NotificationSink,
    NullNotificationSink,
)
from plateshare.lifecycle.manager import LifecycleManager
from plateshare.lifecycle.state import ListingEvent, next_listing_status, request_transition

__all__ = [
    "LifecycleStore",
    "LifecycleTransaction",
    "NotificationSink",
    "NullNotificationSink",
    "LifecycleManager",
    "ListingEvent",
    "next_listing_status",
    "request_transition",
]
