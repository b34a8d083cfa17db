"""Tests for notification message templates."""

from __future__ import annotations

import pytest

from plateshare.models.notification import NotificationKind
from plateshare.notifications.templates import TEMPLATES, render

REQUEST_PAYLOAD = {
    "request_id": "r-1",
    "listing_id": "l-1",
    "food_title": "Vegetable lasagna",
    "quantity": 2,
    "unit": "portions",
    "user_name": "Ada Lovelace",
    "restaurant_name": "Green Fork",
    "pickup_date": "2026-05-01T18:30:00",
}


def test_every_kind_has_a_template():
    assert set(TEMPLATES) == set(NotificationKind)


def test_request_created_mentions_user_and_amount():
    rendered = render(NotificationKind.REQUEST_CREATED, REQUEST_PAYLOAD)

    assert rendered.title == "New Food Request"
    assert rendered.message == "Ada Lovelace requested 2 portions of Vegetable lasagna"
    assert rendered.action_url == "/restaurant/requests"


def test_approval_includes_pickup_date():
    rendered = render(NotificationKind.REQUEST_APPROVED, REQUEST_PAYLOAD)

    assert rendered.title == "Request Approved!"
    assert "Green Fork approved your request for Vegetable lasagna" in rendered.message
    assert rendered.message.endswith("for pickup on 2026-05-01")


def test_approval_without_pickup_date():
    payload = {**REQUEST_PAYLOAD, "pickup_date": None}

    rendered = render(NotificationKind.REQUEST_APPROVED, payload)

    assert "pickup" not in rendered.message


@pytest.mark.parametrize(
    ("kind", "title"),
    [
        (NotificationKind.REQUEST_REJECTED, "Request Declined"),
        (NotificationKind.REQUEST_COMPLETED, "Pickup Confirmed!"),
        (NotificationKind.REQUEST_CANCELLED, "Request Cancelled"),
    ],
)
def test_request_outcome_titles(kind, title):
    rendered = render(kind, REQUEST_PAYLOAD)

    assert rendered.title == title
    assert "Vegetable lasagna" in rendered.message


def test_missing_names_fall_back_to_generic_wording():
    payload = {**REQUEST_PAYLOAD, "user_name": None, "restaurant_name": None}

    assert render(NotificationKind.REQUEST_CREATED, payload).message.startswith("A user")
    assert render(NotificationKind.REQUEST_REJECTED, payload).message.startswith("The restaurant")


def test_expiring_and_verification_templates():
    expiring = render(
        NotificationKind.LISTING_EXPIRING_SOON,
        {"food_title": "Salad", "days_until_expiry": 1},
    )
    assert expiring.message == (
        'Your listing "Salad" expires in 1 day(s). Consider updating or removing it.'
    )

    verified = render(NotificationKind.RESTAURANT_VERIFIED, {"restaurant_name": "Green Fork"})
    revoked = render(NotificationKind.RESTAURANT_UNVERIFIED, {"restaurant_name": "Green Fork"})
    assert verified.title == "Restaurant Verified!"
    assert revoked.title == "Verification Revoked"


def test_unknown_kind_raises():
    with pytest.raises(ValueError):
        render("NOT_A_KIND", REQUEST_PAYLOAD)
