"""Integration tests for food listing endpoints."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi import status

from tests.integration.utils import as_restaurant, as_user


def _listing_payload(**overrides):
    payload = {
        "title": "Sourdough loaves",
        "description": "Baked this morning, six loaves left",
        "quantity": 6,
        "unit": "loaves",
        "pickup_time": "17:00-19:00",
        "category": "bakery",
        "expiry_date": (datetime.now(timezone.utc) + timedelta(days=1)).isoformat(),
    }
    payload.update(overrides)
    return payload


def test_verified_restaurant_creates_listing(client, accounts):
    restaurant = accounts["restaurant"]

    response = client.post("/food", json=_listing_payload(), headers=as_restaurant(restaurant))

    assert response.status_code == status.HTTP_201_CREATED
    body = response.json()
    assert body["status"] == "AVAILABLE"
    assert body["restaurant_id"] == restaurant.id
    assert body["restaurant_name"] == "Green Fork"
    assert client.get(f"/food/{body['id']}").status_code == status.HTTP_200_OK


def test_create_listing_rejections(client, accounts):
    response = client.post(
        "/food", json=_listing_payload(), headers=as_restaurant(accounts["unverified"])
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.post("/food", json=_listing_payload())
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    response = client.post(
        "/food",
        json=_listing_payload(title="ab", quantity=0),
        headers=as_restaurant(accounts["restaurant"]),
    )
    assert response.status_code == 422
    fields = {tuple(error["loc"])[-1] for error in response.json()["detail"]}
    assert {"title", "quantity"} <= fields


def test_browse_listings(client, make_listing):
    make_listing(title="Tomato soup", category="soups")
    make_listing(title="Rice bowls", category="meals")
    make_listing(title="Stale bread", expiry_date=datetime.now(timezone.utc) - timedelta(days=1))

    body = client.get("/food?limit=1").json()
    assert body["pagination"] == {"total": 2, "page": 1, "limit": 1, "total_pages": 2}
    assert len(body["food_listings"]) == 1

    body = client.get("/food", params={"search": "soup"}).json()
    assert [item["title"] for item in body["food_listings"]] == ["Tomato soup"]

    body = client.get("/food", params={"category": "meals"}).json()
    assert [item["title"] for item in body["food_listings"]] == ["Rice bowls"]

    assert client.get("/food?page=0").status_code == 422


def test_my_listings(client, accounts, make_listing):
    listing = make_listing()

    mine = client.get("/food/my/listings", headers=as_restaurant(accounts["restaurant"])).json()
    theirs = client.get(
        "/food/my/listings", headers=as_restaurant(accounts["other_restaurant"])
    ).json()

    assert [item["id"] for item in mine] == [listing.id]
    assert theirs == []


def test_missing_listing_returns_404(client):
    assert client.get("/food/does-not-exist").status_code == status.HTTP_404_NOT_FOUND


def test_update_listing(client, accounts, make_listing):
    listing = make_listing(quantity=4)
    owner = as_restaurant(accounts["restaurant"])

    response = client.put(f"/food/{listing.id}", json={"title": "Fresh lasagna"}, headers=owner)
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["title"] == "Fresh lasagna"
    assert response.json()["quantity"] == 4

    response = client.put(f"/food/{listing.id}", json={"category": None}, headers=owner)
    assert response.json()["category"] is None

    response = client.put(f"/food/{listing.id}", json={}, headers=owner)
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = client.put(
        f"/food/{listing.id}",
        json={"title": "Mine now"},
        headers=as_restaurant(accounts["other_restaurant"]),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_update_ignores_quantity_field(client, accounts, make_listing):
    listing = make_listing(quantity=4)

    response = client.put(
        f"/food/{listing.id}",
        json={"title": "Lasagna trays", "quantity": 99, "status": "CLAIMED"},
        headers=as_restaurant(accounts["restaurant"]),
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["quantity"] == 4
    assert response.json()["status"] == "AVAILABLE"


def test_delete_listing(client, accounts, make_listing):
    blocked = make_listing(quantity=3)
    free = make_listing(quantity=3)
    owner = as_restaurant(accounts["restaurant"])
    client.post(
        "/requests",
        json={"food_listing_id": blocked.id, "quantity": 1},
        headers=as_user(accounts["user"]),
    )

    response = client.delete(f"/food/{blocked.id}", headers=owner)
    assert response.status_code == status.HTTP_400_BAD_REQUEST

    response = client.delete(f"/food/{free.id}", headers=owner)
    assert response.status_code == status.HTTP_204_NO_CONTENT
    assert client.get(f"/food/{free.id}").status_code == status.HTTP_404_NOT_FOUND
