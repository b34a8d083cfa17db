"""Aggregate counts for the admin dashboard."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import func, select

from plateshare.models.account import DashboardStats
from plateshare.models.listing import ListingStatus
from plateshare.models.request import RequestStatus

from .models import FoodListingORM, FoodRequestORM, RestaurantORM, UserORM, as_utc_naive, utcnow
from .repository import session_scope

GROWTH_WINDOW = timedelta(days=7)


def growth_label(total: int, recent: int) -> str:
    """Share of ``total`` created inside the growth window, e.g. ``+12.5%``."""

    if total == 0:
        return "+0%"
    return f"+{recent / total * 100:.1f}%"


def get_dashboard_stats(now: Optional[datetime] = None) -> DashboardStats:
    since = (as_utc_naive(now) or utcnow()) - GROWTH_WINDOW

    def count(model, *conditions) -> int:
        return session.execute(
            select(func.count()).select_from(model).where(*conditions)
        ).scalar_one()

    with session_scope() as session:
        total_users = count(UserORM)
        total_restaurants = count(RestaurantORM)
        total_listings = count(FoodListingORM)
        total_requests = count(FoodRequestORM)
        completed = count(FoodRequestORM, FoodRequestORM.status == RequestStatus.COMPLETED.value)

        # Meals growth is measured against requests created in the window.
        stats = DashboardStats(
            total_users=total_users,
            users_growth=growth_label(total_users, count(UserORM, UserORM.created_at >= since)),
            total_restaurants=total_restaurants,
            restaurants_growth=growth_label(
                total_restaurants, count(RestaurantORM, RestaurantORM.created_at >= since)
            ),
            meals_donated=completed,
            meals_growth=growth_label(
                completed, count(FoodRequestORM, FoodRequestORM.created_at >= since)
            ),
            active_listings=count(
                FoodListingORM, FoodListingORM.status == ListingStatus.AVAILABLE.value
            ),
            listings_growth=growth_label(
                total_listings, count(FoodListingORM, FoodListingORM.created_at >= since)
            ),
            total_food_listings=total_listings,
            total_requests=total_requests,
            pending_requests=count(
                FoodRequestORM, FoodRequestORM.status == RequestStatus.PENDING.value
            ),
            approved_requests=count(
                FoodRequestORM, FoodRequestORM.status == RequestStatus.APPROVED.value
            ),
            pending_verifications=count(RestaurantORM, RestaurantORM.is_verified.is_(False)),
        )
    return stats


__all__ = ["GROWTH_WINDOW", "get_dashboard_stats", "growth_label"]
