"""Store and notification interfaces consumed by the lifecycle manager."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Any, Mapping, Optional

from plateshare.models.listing import FoodListing, ListingStatus
from plateshare.models.notification import NotificationKind, RecipientKind
from plateshare.models.request import FoodRequest, RequestStatus


class LifecycleTransaction(ABC):
    """Unit of work over listings and requests; commits or rolls back as a whole."""

    @abstractmethod
    def get_listing(self, listing_id: str) -> Optional[FoodListing]:
        """Return the listing or ``None`` when it does not exist."""

    @abstractmethod
    def get_request(self, request_id: str) -> Optional[FoodRequest]:
        """Return the request or ``None`` when it does not exist."""

    @abstractmethod
    def has_pending_request(self, user_id: str, listing_id: str) -> bool:
        """Return whether the user already holds a PENDING request on the listing."""

    @abstractmethod
    def reserve_quantity(self, listing_id: str, quantity: int) -> Optional[FoodListing]:
        """Atomically decrement an AVAILABLE listing holding at least ``quantity``.

        Returns the updated listing, or ``None`` when the conditional update matched
        nothing (listing gone, no longer available, or short on quantity).
        """

    @abstractmethod
    def release_quantity(self, listing_id: str, quantity: int) -> FoodListing:
        """Atomically add ``quantity`` back to the listing."""

    @abstractmethod
    def set_listing_status(self, listing_id: str, status: ListingStatus) -> FoodListing:
        """Overwrite the listing status."""

    @abstractmethod
    def insert_request(
        self,
        *,
        user_id: str,
        listing_id: str,
        quantity: int,
        message: Optional[str],
    ) -> FoodRequest:
        """Insert a new PENDING request."""

    @abstractmethod
    def transition_request(
        self,
        request_id: str,
        *,
        expected: RequestStatus,
        target: RequestStatus,
        pickup_date: Optional[datetime] = None,
    ) -> Optional[FoodRequest]:
        """Compare-and-set the request status.

        Returns ``None`` when the stored status no longer equals ``expected``.
        """


class LifecycleStore(ABC):
    """Factory for lifecycle transactions."""

    @abstractmethod
    def transaction(self) -> AbstractContextManager[LifecycleTransaction]:
        """Open a transaction that commits on clean exit and rolls back on error."""


class NotificationSink(ABC):
    """Receiver of post-commit lifecycle notifications."""

    @abstractmethod
    def notify(
        self,
        recipient_kind: RecipientKind,
        recipient_id: str,
        kind: NotificationKind,
        payload: Mapping[str, Any],
    ) -> None:
        """Deliver one notification."""


class NullNotificationSink(NotificationSink):
    """Sink that drops every notification."""

    def notify(self, recipient_kind, recipient_id, kind, payload) -> None:  # noqa: D401
        return None


__all__ = [
    "LifecycleTransaction",
    "LifecycleStore",
    "NotificationSink",
    "NullNotificationSink",
]
