"""Integration tests for metrics endpoint."""

from __future__ import annotations

from tests.integration.utils import as_user


def test_metrics_endpoint_available(client):
    client.get("/health")
    response = client.get("/metrics")
    assert response.status_code == 200
    body = response.content.decode()
    assert "plateshare_http_requests_total" in body


def test_lifecycle_outcomes_are_counted(client, accounts, make_listing):
    listing = make_listing(quantity=1)
    client.post(
        "/requests",
        json={"food_listing_id": listing.id, "quantity": 2},
        headers=as_user(accounts["user"]),
    )

    body = client.get("/metrics").content.decode()

    assert "plateshare_lifecycle_operations_total" in body
    assert 'outcome="insufficient_quantity"' in body


def test_metric_help_describes_labels(client):
    body = client.get("/metrics").content.decode()

    assert (
        "# HELP plateshare_notifications_total Inbox notifications, by notification kind "
        "and result (delivered, skipped or failed)"
    ) in body
    assert "# HELP plateshare_http_requests_total HTTP requests served" in body
