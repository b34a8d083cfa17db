"""Tests for the admin dashboard aggregates."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from plateshare.db.lifecycle_store import SqlLifecycleStore
from plateshare.db.stats import get_dashboard_stats, growth_label
from plateshare.lifecycle.manager import LifecycleManager
from plateshare.models.request import RequestStatus


def test_growth_label_formats_share_of_total():
    assert growth_label(0, 0) == "+0%"
    assert growth_label(8, 2) == "+25.0%"
    assert growth_label(3, 3) == "+100.0%"


def test_dashboard_counts_accounts_listings_and_requests(accounts, make_listing):
    restaurant = accounts["restaurant"]
    manager = LifecycleManager(SqlLifecycleStore())
    shared = make_listing(quantity=5)
    small = make_listing(quantity=2)
    make_listing(quantity=1)

    manager.create_request(accounts["user"].id, shared.id, 1)
    approved = manager.create_request(accounts["other_user"].id, shared.id, 1)
    manager.update_request_status(approved.id, restaurant.id, RequestStatus.APPROVED)
    donated = manager.create_request(accounts["user"].id, small.id, 2)
    manager.update_request_status(donated.id, restaurant.id, RequestStatus.APPROVED)
    manager.update_request_status(donated.id, restaurant.id, RequestStatus.COMPLETED)

    stats = get_dashboard_stats()

    assert (stats.total_users, stats.total_restaurants) == (3, 3)
    assert stats.pending_verifications == 1
    assert (stats.total_food_listings, stats.active_listings) == (3, 1)
    assert (stats.total_requests, stats.pending_requests, stats.approved_requests) == (3, 1, 1)
    assert stats.meals_donated == 1
    assert stats.users_growth == "+100.0%"
    assert stats.meals_growth == "+300.0%"


def test_dashboard_growth_ignores_rows_older_than_a_week(accounts):
    later = datetime.now(timezone.utc) + timedelta(days=30)

    stats = get_dashboard_stats(now=later)

    assert stats.total_users == 3
    assert stats.users_growth == "+0.0%"
    assert stats.restaurants_growth == "+0.0%"
    assert stats.meals_growth == "+0%"
