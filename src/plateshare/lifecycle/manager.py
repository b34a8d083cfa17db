"""Listing/request lifecycle manager.

Every operation runs inside a single store transaction: preconditions are
checked first, then quantity and status changes are applied together with the
request row. Exactly one notification is emitted after the transaction commits;
delivery failures are logged and counted but never undo or fail the operation.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, Optional

from plateshare import metrics
from plateshare.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientQuantityError,
    InvalidStateError,
    NotFoundError,
    PlateshareError,
)
from plateshare.lifecycle.base import (
    LifecycleStore,
    LifecycleTransaction,
    NotificationSink,
    NullNotificationSink,
)
from plateshare.lifecycle.state import (
    RESTAURANT_TARGETS,
    ListingEvent,
    next_listing_status,
    request_transition,
)
from plateshare.models.listing import FoodListing, ListingStatus
from plateshare.models.notification import NotificationKind, RecipientKind
from plateshare.models.request import FoodRequest, RequestStatus

logger = logging.getLogger(__name__)

_STATUS_NOTIFICATIONS = {
    RequestStatus.APPROVED: NotificationKind.REQUEST_APPROVED,
    RequestStatus.REJECTED: NotificationKind.REQUEST_REJECTED,
    RequestStatus.COMPLETED: NotificationKind.REQUEST_COMPLETED,
}


class LifecycleManager:
    """Keep listing quantity/status and request status consistent."""

    def __init__(self, store: LifecycleStore, sink: Optional[NotificationSink] = None) -> None:
        self._store = store
        self._sink = sink or NullNotificationSink()

    def create_request(
        self,
        user_id: str,
        listing_id: str,
        quantity: int,
        message: Optional[str] = None,
    ) -> FoodRequest:
        """Claim ``quantity`` from a listing on behalf of a user."""

        if quantity <= 0:
            raise InsufficientQuantityError("Requested quantity must be greater than 0")

        with self._observe("create_request"):
            with self._store.transaction() as tx:
                listing = self._require_listing(tx, listing_id)
                self._check_requestable(listing, quantity)
                if tx.has_pending_request(user_id, listing_id):
                    raise ConflictError(
                        "You already have a pending request for this food listing"
                    )

                updated = tx.reserve_quantity(listing_id, quantity)
                if updated is None:
                    # Lost a race with another claim: report what now fails.
                    self._check_requestable(self._require_listing(tx, listing_id), quantity)
                    raise InvalidStateError("Food listing is not available")

                status = next_listing_status(
                    listing.status, ListingEvent.RESERVE_PORTION, remaining=updated.quantity
                )
                if status is not updated.status:
                    tx.set_listing_status(listing_id, status)

                request = tx.insert_request(
                    user_id=user_id,
                    listing_id=listing_id,
                    quantity=quantity,
                    message=message,
                )

        logger.info(
            "Food request %s created user=%s listing=%s quantity=%s remaining=%s status=%s",
            request.id,
            user_id,
            listing_id,
            quantity,
            updated.quantity,
            status.value,
        )
        self._notify(
            RecipientKind.RESTAURANT,
            listing.restaurant_id,
            NotificationKind.REQUEST_CREATED,
            _payload(request, listing),
        )
        return request

    def update_request_status(
        self,
        request_id: str,
        restaurant_id: str,
        new_status: RequestStatus,
        pickup_date: Optional[datetime] = None,
    ) -> FoodRequest:
        """Approve, reject or complete a request on a listing the restaurant owns."""

        new_status = RequestStatus(new_status)
        with self._observe("update_request_status"):
            with self._store.transaction() as tx:
                request = self._require_request(tx, request_id)
                listing = self._require_listing(tx, request.food_listing_id)
                if listing.restaurant_id != restaurant_id:
                    raise ForbiddenError("You do not have permission to update this request")
                if new_status not in RESTAURANT_TARGETS:
                    raise InvalidStateError(
                        f"Restaurants cannot set a food request to {new_status.value}"
                    )

                event = request_transition(request.status, new_status)
                updated = self._transition(
                    tx,
                    request,
                    new_status,
                    pickup_date=pickup_date if new_status is RequestStatus.APPROVED else None,
                )
                self._apply_listing_event(tx, listing, event, request.quantity)

        logger.info(
            "Food request %s moved %s -> %s by restaurant=%s",
            request_id,
            request.status.value,
            new_status.value,
            restaurant_id,
        )
        self._notify(
            RecipientKind.USER,
            request.user_id,
            _STATUS_NOTIFICATIONS[new_status],
            _payload(updated, listing),
        )
        return updated

    def cancel_request(self, request_id: str, user_id: str) -> FoodRequest:
        """Withdraw a pending request and return its quantity to the listing."""

        with self._observe("cancel_request"):
            with self._store.transaction() as tx:
                request = self._require_request(tx, request_id)
                if request.user_id != user_id:
                    raise ForbiddenError("You do not have permission to cancel this request")
                if request.status is not RequestStatus.PENDING:
                    raise InvalidStateError("Only pending requests can be cancelled")

                listing = self._require_listing(tx, request.food_listing_id)
                event = request_transition(request.status, RequestStatus.CANCELLED)
                updated = self._transition(tx, request, RequestStatus.CANCELLED)
                self._apply_listing_event(tx, listing, event, request.quantity)

        logger.info("Food request %s cancelled by user=%s", request_id, user_id)
        self._notify(
            RecipientKind.RESTAURANT,
            listing.restaurant_id,
            NotificationKind.REQUEST_CANCELLED,
            _payload(updated, listing),
        )
        return updated

    @staticmethod
    def _require_listing(tx: LifecycleTransaction, listing_id: str) -> FoodListing:
        listing = tx.get_listing(listing_id)
        if listing is None:
            raise NotFoundError("Food listing not found")
        return listing

    @staticmethod
    def _require_request(tx: LifecycleTransaction, request_id: str) -> FoodRequest:
        request = tx.get_request(request_id)
        if request is None:
            raise NotFoundError("Food request not found")
        return request

    @staticmethod
    def _check_requestable(listing: FoodListing, quantity: int) -> None:
        if listing.status is not ListingStatus.AVAILABLE:
            raise InvalidStateError("Food listing is not available")
        if listing.quantity < quantity:
            raise InsufficientQuantityError("Requested quantity is not available")

    @staticmethod
    def _transition(
        tx: LifecycleTransaction,
        request: FoodRequest,
        target: RequestStatus,
        *,
        pickup_date: Optional[datetime] = None,
    ) -> FoodRequest:
        updated = tx.transition_request(
            request.id,
            expected=request.status,
            target=target,
            pickup_date=pickup_date,
        )
        if updated is None:
            raise InvalidStateError("Food request was modified concurrently")
        return updated

    @staticmethod
    def _apply_listing_event(
        tx: LifecycleTransaction,
        listing: FoodListing,
        event: ListingEvent,
        request_quantity: int,
    ) -> None:
        if event is ListingEvent.RELEASE:
            listing = tx.release_quantity(listing.id, request_quantity)
        status = next_listing_status(listing.status, event)
        if status is not listing.status:
            tx.set_listing_status(listing.id, status)

    def _notify(
        self,
        recipient_kind: RecipientKind,
        recipient_id: str,
        kind: NotificationKind,
        payload: Dict[str, Any],
    ) -> None:
        try:
            self._sink.notify(recipient_kind, recipient_id, kind, payload)
        except Exception:
            metrics.NOTIFICATIONS.labels(kind=kind.value, result="failed").inc()
            logger.exception(
                "Notification %s to %s %s failed", kind.value, recipient_kind.value, recipient_id
            )

    @staticmethod
    @contextmanager
    def _observe(operation: str) -> Iterator[None]:
        try:
            yield
        except PlateshareError as exc:
            metrics.LIFECYCLE_OPERATIONS.labels(operation=operation, outcome=exc.kind).inc()
            logger.info("Lifecycle %s rejected: %s", operation, exc, extra={"operation": operation})
            raise
        except Exception:
            metrics.LIFECYCLE_OPERATIONS.labels(operation=operation, outcome="error").inc()
            raise
        metrics.LIFECYCLE_OPERATIONS.labels(operation=operation, outcome="success").inc()


def _payload(request: FoodRequest, listing: FoodListing) -> Dict[str, Any]:
    return {
        "request_id": request.id,
        "listing_id": listing.id,
        "food_title": listing.title,
        "quantity": request.quantity,
        "unit": listing.unit,
        "user_name": request.user_name,
        "restaurant_name": listing.restaurant_name,
        "pickup_date": request.pickup_date.isoformat() if request.pickup_date else None,
    }


__all__ = ["LifecycleManager"]
