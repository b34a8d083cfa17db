"""SQLAlchemy-backed store for the lifecycle manager.

Quantity changes are single conditional ``UPDATE`` statements so concurrent
claims against one listing cannot lose an update, and request status changes
are compare-and-set on the previously read status.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from plateshare.errors import ConflictError, NotFoundError
from plateshare.lifecycle.base import LifecycleStore, LifecycleTransaction
from plateshare.models.listing import FoodListing, ListingStatus
from plateshare.models.request import FoodRequest, RequestStatus

from .listings import to_listing_model
from .models import FoodListingORM, FoodRequestORM, UserORM, as_utc_naive, utcnow
from .repository import session_scope
from .requests import to_request_model


class SqlLifecycleTransaction(LifecycleTransaction):
    """Lifecycle unit of work bound to one SQLAlchemy session."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def _load_listing(self, listing_id: str) -> Optional[FoodListingORM]:
        return self._session.get(FoodListingORM, listing_id, populate_existing=True)

    def _load_request(self, request_id: str) -> Optional[FoodRequestORM]:
        return self._session.get(FoodRequestORM, request_id, populate_existing=True)

    def _reload_after_write(self, rowcount: int, listing_id: str) -> FoodListing:
        listing = self.get_listing(listing_id) if rowcount else None
        if listing is None:
            raise NotFoundError("Food listing not found")
        return listing

    def get_listing(self, listing_id: str) -> Optional[FoodListing]:
        row = self._load_listing(listing_id)
        return to_listing_model(row) if row is not None else None

    def get_request(self, request_id: str) -> Optional[FoodRequest]:
        row = self._load_request(request_id)
        return to_request_model(row) if row is not None else None

    def has_pending_request(self, user_id: str, listing_id: str) -> bool:
        existing = self._session.execute(
            select(FoodRequestORM.id)
            .where(
                FoodRequestORM.user_id == user_id,
                FoodRequestORM.food_listing_id == listing_id,
                FoodRequestORM.status == RequestStatus.PENDING.value,
            )
            .limit(1)
        ).first()
        return existing is not None

    def reserve_quantity(self, listing_id: str, quantity: int) -> Optional[FoodListing]:
        result = self._session.execute(
            update(FoodListingORM)
            .where(
                FoodListingORM.id == listing_id,
                FoodListingORM.status == ListingStatus.AVAILABLE.value,
                FoodListingORM.quantity >= quantity,
            )
            .values(quantity=FoodListingORM.quantity - quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return self.get_listing(listing_id)

    def release_quantity(self, listing_id: str, quantity: int) -> FoodListing:
        result = self._session.execute(
            update(FoodListingORM)
            .where(FoodListingORM.id == listing_id)
            .values(quantity=FoodListingORM.quantity + quantity, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return self._reload_after_write(result.rowcount, listing_id)

    def set_listing_status(self, listing_id: str, status: ListingStatus) -> FoodListing:
        result = self._session.execute(
            update(FoodListingORM)
            .where(FoodListingORM.id == listing_id)
            .values(status=ListingStatus(status).value, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return self._reload_after_write(result.rowcount, listing_id)

    def insert_request(
        self,
        *,
        user_id: str,
        listing_id: str,
        quantity: int,
        message: Optional[str],
    ) -> FoodRequest:
        if self._session.get(UserORM, user_id) is None:
            raise NotFoundError("User not found")

        row = FoodRequestORM(
            user_id=user_id,
            food_listing_id=listing_id,
            quantity=quantity,
            message=message,
            status=RequestStatus.PENDING.value,
        )
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise ConflictError(
                "You already have a pending request for this food listing"
            ) from exc
        return to_request_model(row)

    def transition_request(
        self,
        request_id: str,
        *,
        expected: RequestStatus,
        target: RequestStatus,
        pickup_date: Optional[datetime] = None,
    ) -> Optional[FoodRequest]:
        values: dict[str, object] = {
            "status": RequestStatus(target).value,
            "updated_at": utcnow(),
        }
        if pickup_date is not None:
            values["pickup_date"] = as_utc_naive(pickup_date)

        result = self._session.execute(
            update(FoodRequestORM)
            .where(
                FoodRequestORM.id == request_id,
                FoodRequestORM.status == RequestStatus(expected).value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return self.get_request(request_id)


class SqlLifecycleStore(LifecycleStore):
    """Open lifecycle transactions on the shared session factory."""

    @contextmanager
    def transaction(self) -> Iterator[SqlLifecycleTransaction]:
        with session_scope() as session:
            yield SqlLifecycleTransaction(session)


__all__ = ["SqlLifecycleStore", "SqlLifecycleTransaction"]
