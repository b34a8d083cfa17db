"""Restaurant and user account persistence helpers.

Profile updates follow the registration form semantics: a ``None`` argument
leaves the stored value alone, so optional contact fields can be changed but
not cleared.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError

from plateshare.errors import ConflictError, InvalidStateError, NotFoundError
from plateshare.models.account import (
    Restaurant,
    RestaurantDetail,
    RestaurantPage,
    User,
    UserDetail,
    UserPage,
)
from plateshare.models.listing import ListingStatus, Pagination
from plateshare.models.request import RequestStatus

from .listings import to_listing_model
from .models import FoodListingORM, FoodRequestORM, RestaurantORM, UserORM, as_utc_naive, utcnow
from .repository import session_scope
from .requests import to_request_detail

_OPEN_REQUEST_STATUSES = (RequestStatus.PENDING.value, RequestStatus.APPROVED.value)


def _restaurant_payload(row: RestaurantORM) -> dict[str, object]:
    return {
        "id": row.id,
        "restaurant_name": row.restaurant_name,
        "email": row.email,
        "description": row.description,
        "address": row.address,
        "phone": row.phone,
        "is_verified": row.is_verified,
        "created_at": row.created_at,
    }


def _to_restaurant(row: RestaurantORM) -> Restaurant:
    return Restaurant.model_validate(_restaurant_payload(row))


def _user_payload(row: UserORM) -> dict[str, object]:
    return {
        "id": row.id,
        "name": row.name,
        "email": row.email,
        "phone": row.phone,
        "address": row.address,
        "role": row.role,
        "is_verified": row.is_verified,
        "is_active": row.is_active,
        "created_at": row.created_at,
    }


def _to_user(row: UserORM) -> User:
    return User.model_validate(_user_payload(row))


def _require(session, model, row_id: str, label: str):
    row = session.get(model, row_id)
    if row is None:
        raise NotFoundError(f"{label} not found")
    return row


# Restaurants ------------------------------------------------------------------


def create_restaurant(
    *,
    restaurant_name: str,
    email: str,
    description: Optional[str] = None,
    address: Optional[str] = None,
    phone: Optional[str] = None,
    is_verified: bool = False,
) -> Restaurant:
    try:
        with session_scope() as session:
            row = RestaurantORM(
                restaurant_name=restaurant_name.strip(),
                email=email.strip().lower(),
                description=description,
                address=address,
                phone=phone,
                is_verified=is_verified,
            )
            session.add(row)
            session.flush()
            return _to_restaurant(row)
    except IntegrityError as exc:
        raise ConflictError(f"Restaurant with email {email} already exists") from exc


def get_restaurant(restaurant_id: str) -> Optional[Restaurant]:
    with session_scope() as session:
        row = session.get(RestaurantORM, restaurant_id)
        if row is None:
            return None
        return _to_restaurant(row)


def get_restaurant_detail(
    restaurant_id: str,
    *,
    available_only: bool = True,
    now: Optional[datetime] = None,
) -> Optional[RestaurantDetail]:
    """Return a restaurant with its listings, newest first.

    The public view (``available_only``) keeps unexpired AVAILABLE listings;
    the owner's own view shows every listing.
    """

    query = select(FoodListingORM).where(FoodListingORM.restaurant_id == restaurant_id)
    if available_only:
        query = query.where(
            FoodListingORM.status == ListingStatus.AVAILABLE.value,
            FoodListingORM.expiry_date >= (as_utc_naive(now) or utcnow()),
        )

    with session_scope() as session:
        row = session.get(RestaurantORM, restaurant_id)
        if row is None:
            return None
        listings = (
            session.execute(query.order_by(FoodListingORM.created_at.desc())).scalars().all()
        )
        payload = _restaurant_payload(row)
        payload["food_listings"] = [to_listing_model(listing) for listing in listings]
        return RestaurantDetail.model_validate(payload)


def list_restaurants(
    *,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    verified_only: bool = True,
) -> RestaurantPage:
    """Page through restaurants ordered by name, optionally matching ``search``."""

    page = max(page, 1)
    limit = max(limit, 1)
    conditions = []
    if verified_only:
        conditions.append(RestaurantORM.is_verified.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(
                RestaurantORM.restaurant_name.ilike(pattern),
                RestaurantORM.description.ilike(pattern),
            )
        )

    with session_scope() as session:
        total = session.execute(
            select(func.count()).select_from(RestaurantORM).where(*conditions)
        ).scalar_one()
        rows = (
            session.execute(
                select(RestaurantORM)
                .where(*conditions)
                .order_by(RestaurantORM.restaurant_name, RestaurantORM.id)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        restaurants = [_to_restaurant(row) for row in rows]

    return RestaurantPage(
        restaurants=restaurants,
        pagination=Pagination.for_total(total, page, limit),
    )


def update_restaurant_profile(
    restaurant_id: str,
    *,
    restaurant_name: Optional[str] = None,
    description: Optional[str] = None,
    address: Optional[str] = None,
    phone: Optional[str] = None,
) -> Restaurant:
    with session_scope() as session:
        row = _require(session, RestaurantORM, restaurant_id, "Restaurant")
        if restaurant_name is not None:
            row.restaurant_name = restaurant_name.strip()
        if description is not None:
            row.description = description
        if address is not None:
            row.address = address
        if phone is not None:
            row.phone = phone
        session.flush()
        return _to_restaurant(row)


def set_restaurant_verification(restaurant_id: str, is_verified: bool) -> Restaurant:
    """Flag a restaurant as verified (allowed to list food) or revoke it."""

    with session_scope() as session:
        row = _require(session, RestaurantORM, restaurant_id, "Restaurant")
        row.is_verified = bool(is_verified)
        session.flush()
        return _to_restaurant(row)


def delete_restaurant(restaurant_id: str) -> None:
    """Remove a restaurant together with its listings, their requests and its inbox."""

    with session_scope() as session:
        _require(session, RestaurantORM, restaurant_id, "Restaurant")
        session.execute(
            delete(FoodListingORM).where(FoodListingORM.restaurant_id == restaurant_id)
        )
        session.execute(delete(RestaurantORM).where(RestaurantORM.id == restaurant_id))


# Users ------------------------------------------------------------------------


def create_user(
    *,
    name: str,
    email: str,
    phone: Optional[str] = None,
    address: Optional[str] = None,
    role: str = "USER",
) -> User:
    try:
        with session_scope() as session:
            row = UserORM(
                name=name.strip(),
                email=email.strip().lower(),
                phone=phone,
                address=address,
                role=role,
            )
            session.add(row)
            session.flush()
            return _to_user(row)
    except IntegrityError as exc:
        raise ConflictError(f"User with email {email} already exists") from exc


def get_user(user_id: str) -> Optional[User]:
    with session_scope() as session:
        row = session.get(UserORM, user_id)
        if row is None:
            return None
        return _to_user(row)


def get_user_detail(user_id: str) -> Optional[UserDetail]:
    """Return a user together with every request they made, newest first."""

    with session_scope() as session:
        row = session.get(UserORM, user_id)
        if row is None:
            return None
        requests = (
            session.execute(
                select(FoodRequestORM)
                .where(FoodRequestORM.user_id == user_id)
                .order_by(FoodRequestORM.created_at.desc())
            )
            .scalars()
            .all()
        )
        payload = _user_payload(row)
        payload["food_requests"] = [to_request_detail(request) for request in requests]
        return UserDetail.model_validate(payload)


def list_users(
    *,
    page: int = 1,
    limit: int = 10,
    role: Optional[str] = None,
    search: Optional[str] = None,
) -> UserPage:
    """Page through users, newest first, filtered by role and name/email search."""

    page = max(page, 1)
    limit = max(limit, 1)
    conditions = []
    if role:
        conditions.append(UserORM.role == role)
    if search:
        pattern = f"%{search.strip()}%"
        conditions.append(or_(UserORM.name.ilike(pattern), UserORM.email.ilike(pattern)))

    with session_scope() as session:
        total = session.execute(
            select(func.count()).select_from(UserORM).where(*conditions)
        ).scalar_one()
        rows = (
            session.execute(
                select(UserORM)
                .where(*conditions)
                .order_by(UserORM.created_at.desc(), UserORM.name)
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        users = [_to_user(row) for row in rows]

    return UserPage(users=users, pagination=Pagination.for_total(total, page, limit))


def update_user_profile(
    user_id: str,
    *,
    name: Optional[str] = None,
    phone: Optional[str] = None,
    address: Optional[str] = None,
) -> User:
    with session_scope() as session:
        row = _require(session, UserORM, user_id, "User")
        if name is not None:
            row.name = name.strip()
        if phone is not None:
            row.phone = phone
        if address is not None:
            row.address = address
        session.flush()
        return _to_user(row)


def update_user_status(
    user_id: str,
    *,
    is_active: Optional[bool] = None,
    is_verified: Optional[bool] = None,
) -> User:
    """Activate/deactivate or verify a user; flags left as ``None`` are unchanged."""

    with session_scope() as session:
        row = _require(session, UserORM, user_id, "User")
        if is_active is not None:
            row.is_active = bool(is_active)
        if is_verified is not None:
            row.is_verified = bool(is_verified)
        session.flush()
        return _to_user(row)


def delete_user(user_id: str) -> None:
    """Delete a user and their inbox once none of their requests hold quantity."""

    with session_scope() as session:
        _require(session, UserORM, user_id, "User")
        open_requests = session.execute(
            select(func.count())
            .select_from(FoodRequestORM)
            .where(
                FoodRequestORM.user_id == user_id,
                FoodRequestORM.status.in_(_OPEN_REQUEST_STATUSES),
            )
        ).scalar_one()
        if open_requests:
            raise InvalidStateError(
                "User has open food requests; resolve them before deleting the account"
            )
        session.execute(delete(UserORM).where(UserORM.id == user_id))


__all__ = [
    "create_restaurant",
    "get_restaurant",
    "get_restaurant_detail",
    "list_restaurants",
    "update_restaurant_profile",
    "set_restaurant_verification",
    "delete_restaurant",
    "create_user",
    "get_user",
    "get_user_detail",
    "list_users",
    "update_user_profile",
    "update_user_status",
    "delete_user",
]
