"""Shared helpers for integration tests."""

from __future__ import annotations

from plateshare.config import get_settings
from plateshare.models.account import Restaurant, User


def auth_headers() -> dict[str, str]:
    token = get_settings().api_token
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def as_user(user: User) -> dict[str, str]:
    return {**auth_headers(), "X-User-Id": user.id}


def as_restaurant(restaurant: Restaurant) -> dict[str, str]:
    return {**auth_headers(), "X-Restaurant-Id": restaurant.id}
