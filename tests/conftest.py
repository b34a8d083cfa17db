"""Shared pytest fixtures for the Plateshare test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Generator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from plateshare.config import get_settings
from plateshare.db.accounts import create_restaurant, create_user
from plateshare.db.listings import create_listing
from plateshare.db.repository import reset_repository_state
from plateshare.models.account import Restaurant
from plateshare.models.listing import FoodListing
from plateshare.server.app import create_app


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    """Ensure each test uses an isolated SQLite database location."""

    db_path = tmp_path / "test_plateshare.db"
    monkeypatch.setenv("PLATESHARE_DATABASE_PATH", str(db_path))
    monkeypatch.delenv("PLATESHARE_API_TOKEN", raising=False)
    get_settings.cache_clear()
    reset_repository_state()
    yield
    reset_repository_state()
    monkeypatch.delenv("PLATESHARE_DATABASE_PATH", raising=False)
    get_settings.cache_clear()


@pytest.fixture()
def app() -> Generator[FastAPI, None, None]:
    """Create a new FastAPI app instance for each test and reset overrides."""

    application = create_app()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture()
def client(app) -> TestClient:
    """Return a test client bound to the FastAPI app."""

    return TestClient(app)


@pytest.fixture()
def accounts() -> Dict[str, object]:
    """Seed a verified restaurant, an unverified one, two users and an admin."""

    return {
        "restaurant": create_restaurant(
            restaurant_name="Green Fork",
            email="kitchen@greenfork.test",
            is_verified=True,
        ),
        "other_restaurant": create_restaurant(
            restaurant_name="Blue Spoon",
            email="hello@bluespoon.test",
            is_verified=True,
        ),
        "unverified": create_restaurant(
            restaurant_name="New Bistro",
            email="owner@newbistro.test",
        ),
        "user": create_user(name="Ada Lovelace", email="ada@example.test"),
        "other_user": create_user(name="Grace Hopper", email="grace@example.test"),
        "admin": create_user(name="Site Admin", email="admin@example.test", role="ADMIN"),
    }


@pytest.fixture()
def make_listing(accounts) -> Callable[..., FoodListing]:
    """Factory creating listings owned by the verified restaurant."""

    restaurant: Restaurant = accounts["restaurant"]  # type: ignore[assignment]

    def _make(quantity: int = 5, **overrides) -> FoodListing:
        payload = {
            "restaurant_id": restaurant.id,
            "title": "Vegetable lasagna",
            "description": "Two trays left over from lunch service",
            "quantity": quantity,
            "unit": "portions",
            "pickup_time": "18:00-20:00",
            "category": "meals",
            "expiry_date": datetime.now(timezone.utc) + timedelta(days=2),
        }
        payload.update(overrides)
        return create_listing(**payload)

    return _make
