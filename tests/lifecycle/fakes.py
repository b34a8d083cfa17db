"""In-memory lifecycle store and notification sinks for manager tests."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple
from uuid import uuid4

from plateshare.errors import ConflictError
from plateshare.lifecycle.base import LifecycleStore, LifecycleTransaction, NotificationSink
from plateshare.models.listing import FoodListing, ListingStatus
from plateshare.models.notification import NotificationKind, RecipientKind
from plateshare.models.request import FoodRequest, RequestStatus


class InMemoryTransaction(LifecycleTransaction):
    def __init__(
        self,
        listings: Dict[str, FoodListing],
        requests: Dict[str, FoodRequest],
    ) -> None:
        self.listings = listings
        self.requests = requests

    def get_listing(self, listing_id: str) -> Optional[FoodListing]:
        return self.listings.get(listing_id)

    def get_request(self, request_id: str) -> Optional[FoodRequest]:
        return self.requests.get(request_id)

    def has_pending_request(self, user_id: str, listing_id: str) -> bool:
        return any(
            request.user_id == user_id
            and request.food_listing_id == listing_id
            and request.status is RequestStatus.PENDING
            for request in self.requests.values()
        )

    def reserve_quantity(self, listing_id: str, quantity: int) -> Optional[FoodListing]:
        listing = self.listings.get(listing_id)
        if (
            listing is None
            or listing.status is not ListingStatus.AVAILABLE
            or listing.quantity < quantity
        ):
            return None
        listing = listing.model_copy(update={"quantity": listing.quantity - quantity})
        self.listings[listing_id] = listing
        return listing

    def release_quantity(self, listing_id: str, quantity: int) -> FoodListing:
        listing = self.listings[listing_id]
        listing = listing.model_copy(update={"quantity": listing.quantity + quantity})
        self.listings[listing_id] = listing
        return listing

    def set_listing_status(self, listing_id: str, status: ListingStatus) -> FoodListing:
        listing = self.listings[listing_id].model_copy(update={"status": status})
        self.listings[listing_id] = listing
        return listing

    def insert_request(self, *, user_id, listing_id, quantity, message) -> FoodRequest:
        if self.has_pending_request(user_id, listing_id):
            raise ConflictError("duplicate pending request")
        request = FoodRequest(
            id=uuid4().hex,
            user_id=user_id,
            user_name=f"user {user_id}",
            food_listing_id=listing_id,
            quantity=quantity,
            message=message,
        )
        self.requests[request.id] = request
        return request

    def transition_request(
        self,
        request_id: str,
        *,
        expected: RequestStatus,
        target: RequestStatus,
        pickup_date: Optional[datetime] = None,
    ) -> Optional[FoodRequest]:
        request = self.requests.get(request_id)
        if request is None or request.status is not expected:
            return None
        update: Dict[str, Any] = {"status": target}
        if pickup_date is not None:
            update["pickup_date"] = pickup_date
        request = request.model_copy(update=update)
        self.requests[request_id] = request
        return request


class InMemoryLifecycleStore(LifecycleStore):
    """Dict-backed store; a transaction works on copies and publishes them on success."""

    def __init__(self) -> None:
        self.listings: Dict[str, FoodListing] = {}
        self.requests: Dict[str, FoodRequest] = {}
        self.commits = 0

    @contextmanager
    def transaction(self) -> Iterator[InMemoryTransaction]:
        tx = InMemoryTransaction(dict(self.listings), dict(self.requests))
        yield tx
        self.listings = tx.listings
        self.requests = tx.requests
        self.commits += 1

    def add_listing(
        self,
        quantity: int,
        status: ListingStatus = ListingStatus.AVAILABLE,
        restaurant_id: str = "restaurant-1",
    ) -> FoodListing:
        listing = FoodListing(
            id=uuid4().hex,
            restaurant_id=restaurant_id,
            restaurant_name="Green Fork",
            title="Vegetable lasagna",
            quantity=quantity,
            unit="portions",
            expiry_date=datetime.now(timezone.utc) + timedelta(days=1),
            status=status,
        )
        self.listings[listing.id] = listing
        return listing


class RacingTransaction(InMemoryTransaction):
    """Transaction whose conditional writes lose to a concurrent committer.

    ``competing_quantity`` is what the competitor left on the listing when the
    reservation is attempted; ``None`` leaves the listing as it was read.
    """

    def __init__(self, listings, requests, competing_quantity: Optional[int]) -> None:
        super().__init__(listings, requests)
        self.competing_quantity = competing_quantity

    def reserve_quantity(self, listing_id: str, quantity: int) -> Optional[FoodListing]:
        if self.competing_quantity is not None:
            listing = self.listings[listing_id]
            self.listings[listing_id] = listing.model_copy(
                update={"quantity": self.competing_quantity}
            )
        return None

    def transition_request(self, request_id, *, expected, target, pickup_date=None):
        return None


class RacingLifecycleStore(InMemoryLifecycleStore):
    def __init__(self, competing_quantity: Optional[int] = None) -> None:
        super().__init__()
        self.competing_quantity = competing_quantity
        self.racing = False

    @contextmanager
    def transaction(self) -> Iterator[InMemoryTransaction]:
        if not self.racing:
            with super().transaction() as tx:
                yield tx
            return
        tx = RacingTransaction(
            dict(self.listings), dict(self.requests), self.competing_quantity
        )
        yield tx
        self.listings = tx.listings
        self.requests = tx.requests
        self.commits += 1


Notified = Tuple[RecipientKind, str, NotificationKind, Mapping[str, Any]]


class RecordingSink(NotificationSink):
    def __init__(self) -> None:
        self.sent: List[Notified] = []

    def notify(self, recipient_kind, recipient_id, kind, payload) -> None:
        self.sent.append((recipient_kind, recipient_id, kind, dict(payload)))


class ExplodingSink(NotificationSink):
    def __init__(self) -> None:
        self.attempts = 0

    def notify(self, recipient_kind, recipient_id, kind, payload) -> None:
        self.attempts += 1
        raise RuntimeError("notification backend unavailable")
