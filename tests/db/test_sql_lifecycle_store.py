"""Lifecycle manager tests against the SQLite-backed store."""

from __future__ import annotations

import threading
from datetime import datetime

import pytest

from plateshare.db.lifecycle_store import SqlLifecycleStore
from plateshare.db.accounts import create_user
from plateshare.db.listings import get_listing
from plateshare.db.requests import get_request, list_restaurant_requests, list_user_requests
from plateshare.errors import (
    ConflictError,
    InsufficientQuantityError,
    InvalidStateError,
    NotFoundError,
)
from plateshare.lifecycle.manager import LifecycleManager
from plateshare.models.listing import ListingStatus
from plateshare.models.notification import NotificationKind
from plateshare.models.request import RequestStatus
from tests.lifecycle.fakes import RecordingSink


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def manager(sink) -> LifecycleManager:
    return LifecycleManager(SqlLifecycleStore(), sink)


def test_full_claim_and_reject_round_trip(accounts, make_listing, manager, sink):
    user = accounts["user"]
    restaurant = accounts["restaurant"]
    listing = make_listing(quantity=5)

    request = manager.create_request(user.id, listing.id, 5, "Thanks!")

    reserved = get_listing(listing.id)
    assert (reserved.quantity, reserved.status) == (0, ListingStatus.RESERVED)
    assert request.user_name == "Ada Lovelace"
    assert sink.sent[0][1] == restaurant.id
    assert sink.sent[0][3]["restaurant_name"] == "Green Fork"

    manager.update_request_status(request.id, restaurant.id, RequestStatus.REJECTED)

    restored = get_listing(listing.id)
    assert (restored.quantity, restored.status) == (5, ListingStatus.AVAILABLE)
    assert get_request(request.id).status is RequestStatus.REJECTED


def test_approval_persists_pickup_date(accounts, make_listing, manager):
    user = accounts["user"]
    restaurant = accounts["restaurant"]
    listing = make_listing(quantity=3)
    request = manager.create_request(user.id, listing.id, 1)

    pickup = datetime(2026, 6, 1, 17, 0)
    manager.update_request_status(request.id, restaurant.id, RequestStatus.APPROVED, pickup)
    detail = get_request(request.id)

    assert detail.status is RequestStatus.APPROVED
    assert detail.pickup_date == pickup
    assert detail.food_listing.status is ListingStatus.RESERVED
    assert detail.food_listing.quantity == 2

    manager.update_request_status(request.id, restaurant.id, RequestStatus.COMPLETED)
    assert get_listing(listing.id).status is ListingStatus.CLAIMED


def test_cancel_returns_quantity(accounts, make_listing, manager, sink):
    user = accounts["user"]
    listing = make_listing(quantity=10)
    request = manager.create_request(user.id, listing.id, 3)
    assert get_listing(listing.id).quantity == 7

    manager.cancel_request(request.id, user.id)

    assert get_listing(listing.id).quantity == 10
    assert sink.sent[-1][2] is NotificationKind.REQUEST_CANCELLED


def test_failed_precondition_rolls_back(accounts, make_listing, manager):
    listing = make_listing(quantity=2)

    with pytest.raises(InsufficientQuantityError):
        manager.create_request(accounts["user"].id, listing.id, 3)

    assert get_listing(listing.id).quantity == 2
    assert list_user_requests(accounts["user"].id) == []


def test_unknown_user_cannot_claim(accounts, make_listing, manager):
    listing = make_listing(quantity=2)

    with pytest.raises(NotFoundError):
        manager.create_request("no-such-user", listing.id, 1)

    assert get_listing(listing.id).quantity == 2


def test_duplicate_pending_request_conflicts(accounts, make_listing, manager):
    user = accounts["user"]
    listing = make_listing(quantity=5)
    manager.create_request(user.id, listing.id, 1)

    with pytest.raises(ConflictError):
        manager.create_request(user.id, listing.id, 1)

    assert get_listing(listing.id).quantity == 4


def test_pending_uniqueness_is_enforced_by_the_schema(accounts, make_listing):
    user = accounts["user"]
    listing = make_listing(quantity=5)
    store = SqlLifecycleStore()

    with pytest.raises(ConflictError):
        with store.transaction() as tx:
            tx.insert_request(user_id=user.id, listing_id=listing.id, quantity=1, message=None)
            tx.insert_request(user_id=user.id, listing_id=listing.id, quantity=1, message=None)

    assert list_user_requests(user.id) == []


def test_conditional_reserve_refuses_to_overdraw(accounts, make_listing):
    listing = make_listing(quantity=3)
    store = SqlLifecycleStore()

    with store.transaction() as tx:
        assert tx.reserve_quantity(listing.id, 4) is None
        updated = tx.reserve_quantity(listing.id, 3)
        assert updated is not None and updated.quantity == 0
        assert tx.reserve_quantity(listing.id, 1) is None

    assert get_listing(listing.id).quantity == 0


def test_compare_and_set_detects_stale_status(accounts, make_listing, manager):
    listing = make_listing(quantity=3)
    request = manager.create_request(accounts["user"].id, listing.id, 1)
    store = SqlLifecycleStore()

    with store.transaction() as tx:
        stale = tx.transition_request(
            request.id, expected=RequestStatus.APPROVED, target=RequestStatus.COMPLETED
        )
        assert stale is None
        moved = tx.transition_request(
            request.id, expected=RequestStatus.PENDING, target=RequestStatus.REJECTED
        )
        assert moved.status is RequestStatus.REJECTED


def test_terminal_requests_are_frozen(accounts, make_listing, manager):
    restaurant = accounts["restaurant"]
    user = accounts["user"]
    listing = make_listing(quantity=4)
    request = manager.create_request(user.id, listing.id, 2)
    manager.cancel_request(request.id, user.id)

    with pytest.raises(InvalidStateError):
        manager.update_request_status(request.id, restaurant.id, RequestStatus.APPROVED)
    with pytest.raises(InvalidStateError):
        manager.cancel_request(request.id, user.id)

    assert get_listing(listing.id).quantity == 4
    assert get_request(request.id).status is RequestStatus.CANCELLED


def test_request_listings_by_owner_and_status(accounts, make_listing, manager):
    restaurant = accounts["restaurant"]
    listing = make_listing(quantity=6)
    first = manager.create_request(accounts["user"].id, listing.id, 1)
    manager.create_request(accounts["other_user"].id, listing.id, 2)
    manager.update_request_status(first.id, restaurant.id, RequestStatus.APPROVED)

    all_requests = list_restaurant_requests(restaurant.id)
    approved = list_restaurant_requests(restaurant.id, status=RequestStatus.APPROVED)

    assert len(all_requests) == 2
    assert [request.id for request in approved] == [first.id]
    assert list_restaurant_requests(accounts["other_restaurant"].id) == []
    assert [r.id for r in list_user_requests(accounts["user"].id)] == [first.id]
    assert list_user_requests(accounts["user"].id, status=RequestStatus.PENDING) == []


def test_release_and_status_writes_require_existing_listing(accounts):
    store = SqlLifecycleStore()

    with pytest.raises(NotFoundError, match="Food listing not found"):
        with store.transaction() as tx:
            tx.release_quantity("missing", 1)
    with pytest.raises(NotFoundError, match="Food listing not found"):
        with store.transaction() as tx:
            tx.set_listing_status("missing", ListingStatus.CLAIMED)


def test_concurrent_full_claims_grant_exactly_one(accounts, make_listing, sink):
    listing = make_listing(quantity=4)
    claimants = [
        create_user(name=f"Claimant {index}", email=f"claimant{index}@example.test")
        for index in range(3)
    ]
    barrier = threading.Barrier(len(claimants))
    outcomes: list[str] = []
    lock = threading.Lock()

    def claim(user_id: str) -> None:
        manager = LifecycleManager(SqlLifecycleStore(), sink)
        barrier.wait()
        try:
            manager.create_request(user_id, listing.id, 4)
            outcome = "ok"
        except (InvalidStateError, InsufficientQuantityError) as exc:
            outcome = exc.kind
        with lock:
            outcomes.append(outcome)

    threads = [threading.Thread(target=claim, args=(user.id,)) for user in claimants]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=30)

    assert sorted(outcomes) == ["invalid_state", "invalid_state", "ok"]
    final = get_listing(listing.id)
    assert (final.quantity, final.status) == (0, ListingStatus.RESERVED)
    assert len(list_restaurant_requests(accounts["restaurant"].id)) == 1
