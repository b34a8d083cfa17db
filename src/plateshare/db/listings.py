"""Food listing data access helpers.

Quantity and status are deliberately absent from ``update_listing``: only the
lifecycle manager moves those fields.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func, or_, select

from plateshare.errors import ForbiddenError, InvalidStateError, NotFoundError
from plateshare.models.listing import FoodListing, FoodListingPage, ListingStatus, Pagination
from plateshare.models.request import RequestStatus

from .models import FoodListingORM, FoodRequestORM, RestaurantORM, as_utc_naive, utcnow
from .repository import session_scope

_UNSET = object()

_OPEN_REQUEST_STATUSES = (RequestStatus.PENDING.value, RequestStatus.APPROVED.value)


def to_listing_model(row: FoodListingORM) -> FoodListing:
    return FoodListing.model_validate(
        {
            "id": row.id,
            "restaurant_id": row.restaurant_id,
            "restaurant_name": row.restaurant.restaurant_name if row.restaurant else None,
            "title": row.title,
            "description": row.description,
            "quantity": row.quantity,
            "unit": row.unit,
            "category": row.category,
            "pickup_time": row.pickup_time,
            "expiry_date": row.expiry_date,
            "status": row.status,
            "created_at": row.created_at,
            "updated_at": row.updated_at,
        }
    )


def create_listing(
    *,
    restaurant_id: str,
    title: str,
    quantity: int,
    unit: str,
    expiry_date: datetime,
    description: str = "",
    pickup_time: Optional[str] = None,
    category: Optional[str] = None,
) -> FoodListing:
    """Create an AVAILABLE listing for a verified restaurant."""

    if quantity <= 0:
        raise ValueError("Quantity must be greater than 0")

    with session_scope() as session:
        restaurant = session.get(RestaurantORM, restaurant_id)
        if restaurant is None:
            raise NotFoundError("Restaurant not found")
        if not restaurant.is_verified:
            raise ForbiddenError(
                "Your restaurant needs to be verified by an admin before you can list food"
            )

        row = FoodListingORM(
            restaurant_id=restaurant_id,
            title=title.strip(),
            description=description or "",
            quantity=int(quantity),
            unit=unit.strip(),
            category=category,
            pickup_time=pickup_time,
            expiry_date=as_utc_naive(expiry_date),
            status=ListingStatus.AVAILABLE.value,
        )
        session.add(row)
        session.flush()
        return to_listing_model(row)


def get_listing(listing_id: str) -> Optional[FoodListing]:
    with session_scope() as session:
        row = session.get(FoodListingORM, listing_id)
        if row is None:
            return None
        return to_listing_model(row)


def browse_listings(
    *,
    page: int = 1,
    limit: int = 10,
    category: Optional[str] = None,
    status: Optional[ListingStatus] = None,
    search: Optional[str] = None,
    now: Optional[datetime] = None,
) -> FoodListingPage:
    """Return unexpired listings, newest first (AVAILABLE unless ``status`` is given)."""

    page = max(page, 1)
    limit = max(limit, 1)
    cutoff = as_utc_naive(now) or utcnow()
    wanted = ListingStatus(status) if status else ListingStatus.AVAILABLE

    conditions = [
        FoodListingORM.expiry_date >= cutoff,
        FoodListingORM.status == wanted.value,
    ]
    if category:
        conditions.append(FoodListingORM.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(FoodListingORM.title.ilike(pattern), FoodListingORM.description.ilike(pattern))
        )

    with session_scope() as session:
        total = session.execute(
            select(func.count()).select_from(FoodListingORM).where(*conditions)
        ).scalar_one()
        rows = (
            session.execute(
                select(FoodListingORM)
                .where(*conditions)
                .order_by(FoodListingORM.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        listings = [to_listing_model(row) for row in rows]

    return FoodListingPage(
        food_listings=listings,
        pagination=Pagination.for_total(total, page, limit),
    )


def list_restaurant_listings(restaurant_id: str) -> List[FoodListing]:
    """Return every listing owned by a restaurant, newest first."""

    with session_scope() as session:
        rows = (
            session.execute(
                select(FoodListingORM)
                .where(FoodListingORM.restaurant_id == restaurant_id)
                .order_by(FoodListingORM.created_at.desc())
            )
            .scalars()
            .all()
        )
        return [to_listing_model(row) for row in rows]


def _owned_listing(session, listing_id: str, restaurant_id: str, action: str) -> FoodListingORM:
    row = session.get(FoodListingORM, listing_id)
    if row is None:
        raise NotFoundError("Food listing not found")
    if row.restaurant_id != restaurant_id:
        raise ForbiddenError(f"You do not have permission to {action} this listing")
    return row


def update_listing(
    listing_id: str,
    restaurant_id: str,
    *,
    title: str | object = _UNSET,
    description: str | object = _UNSET,
    unit: str | object = _UNSET,
    category: Optional[str] | object = _UNSET,
    pickup_time: Optional[str] | object = _UNSET,
    expiry_date: datetime | object = _UNSET,
) -> FoodListing:
    with session_scope() as session:
        row = _owned_listing(session, listing_id, restaurant_id, "update")

        if title is not _UNSET:
            row.title = str(title).strip()
        if description is not _UNSET:
            row.description = str(description)
        if unit is not _UNSET:
            row.unit = str(unit).strip()
        if category is not _UNSET:
            row.category = category  # type: ignore[assignment]
        if pickup_time is not _UNSET:
            row.pickup_time = pickup_time  # type: ignore[assignment]
        if expiry_date is not _UNSET:
            row.expiry_date = as_utc_naive(expiry_date)  # type: ignore[arg-type]

        session.flush()
        return to_listing_model(row)


def delete_listing(listing_id: str, restaurant_id: str) -> None:
    """Delete a listing that has no pending or approved requests."""

    with session_scope() as session:
        row = _owned_listing(session, listing_id, restaurant_id, "delete")
        open_requests = session.execute(
            select(func.count())
            .select_from(FoodRequestORM)
            .where(
                FoodRequestORM.food_listing_id == listing_id,
                FoodRequestORM.status.in_(_OPEN_REQUEST_STATUSES),
            )
        ).scalar_one()
        if open_requests:
            raise InvalidStateError(
                "Food listing has open requests; reject or complete them before deleting"
            )
        session.delete(row)


def find_expiring_listings(
    *,
    window: timedelta,
    now: Optional[datetime] = None,
) -> List[FoodListing]:
    """Return AVAILABLE listings that expire between ``now`` and ``now + window``."""

    start = as_utc_naive(now) or utcnow()
    with session_scope() as session:
        rows = (
            session.execute(
                select(FoodListingORM)
                .where(
                    FoodListingORM.status == ListingStatus.AVAILABLE.value,
                    FoodListingORM.expiry_date >= start,
                    FoodListingORM.expiry_date <= start + window,
                )
                .order_by(FoodListingORM.expiry_date.asc())
            )
            .scalars()
            .all()
        )
        return [to_listing_model(row) for row in rows]


__all__ = [
    "to_listing_model",
    "create_listing",
    "get_listing",
    "browse_listings",
    "list_restaurant_listings",
    "update_listing",
    "delete_listing",
    "find_expiring_listings",
]
