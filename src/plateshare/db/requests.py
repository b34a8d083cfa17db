"""Read paths for food requests."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import func, select

from plateshare.models.listing import Pagination
from plateshare.models.request import (
    FoodRequest,
    FoodRequestDetail,
    FoodRequestPage,
    RequestStatus,
)

from .listings import to_listing_model
from .models import FoodListingORM, FoodRequestORM
from .repository import session_scope


def _request_payload(row: FoodRequestORM) -> dict[str, object]:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "user_name": row.user.name if row.user else None,
        "food_listing_id": row.food_listing_id,
        "quantity": row.quantity,
        "message": row.message,
        "status": row.status,
        "pickup_date": row.pickup_date,
        "created_at": row.created_at,
        "updated_at": row.updated_at,
    }


def to_request_model(row: FoodRequestORM) -> FoodRequest:
    return FoodRequest.model_validate(_request_payload(row))


def to_request_detail(row: FoodRequestORM) -> FoodRequestDetail:
    payload = _request_payload(row)
    payload["food_listing"] = to_listing_model(row.food_listing)
    return FoodRequestDetail.model_validate(payload)


def get_request(request_id: str) -> Optional[FoodRequestDetail]:
    with session_scope() as session:
        row = session.get(FoodRequestORM, request_id)
        if row is None:
            return None
        return to_request_detail(row)


def list_user_requests(
    user_id: str,
    status: Optional[RequestStatus] = None,
) -> List[FoodRequestDetail]:
    """Return a user's requests, newest first."""

    query = select(FoodRequestORM).where(FoodRequestORM.user_id == user_id)
    if status:
        query = query.where(FoodRequestORM.status == RequestStatus(status).value)

    with session_scope() as session:
        rows = (
            session.execute(query.order_by(FoodRequestORM.created_at.desc()))
            .scalars()
            .all()
        )
        return [to_request_detail(row) for row in rows]


def list_restaurant_requests(
    restaurant_id: str,
    status: Optional[RequestStatus] = None,
) -> List[FoodRequestDetail]:
    """Return requests against any listing owned by the restaurant, newest first."""

    query = (
        select(FoodRequestORM)
        .join(FoodListingORM, FoodRequestORM.food_listing_id == FoodListingORM.id)
        .where(FoodListingORM.restaurant_id == restaurant_id)
    )
    if status:
        query = query.where(FoodRequestORM.status == RequestStatus(status).value)

    with session_scope() as session:
        rows = (
            session.execute(query.order_by(FoodRequestORM.created_at.desc()))
            .scalars()
            .all()
        )
        return [to_request_detail(row) for row in rows]


def list_all_requests(
    *,
    page: int = 1,
    limit: int = 10,
    status: Optional[RequestStatus] = None,
) -> FoodRequestPage:
    """Page through every request on the platform, newest first."""

    page = max(page, 1)
    limit = max(limit, 1)
    conditions = []
    if status:
        conditions.append(FoodRequestORM.status == RequestStatus(status).value)

    with session_scope() as session:
        total = session.execute(
            select(func.count()).select_from(FoodRequestORM).where(*conditions)
        ).scalar_one()
        rows = (
            session.execute(
                select(FoodRequestORM)
                .where(*conditions)
                .order_by(FoodRequestORM.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        requests = [to_request_detail(row) for row in rows]

    return FoodRequestPage(
        food_requests=requests,
        pagination=Pagination.for_total(total, page, limit),
    )


__all__ = [
    "to_request_model",
    "to_request_detail",
    "get_request",
    "list_user_requests",
    "list_restaurant_requests",
    "list_all_requests",
]
