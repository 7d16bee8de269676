"""Unit tests for health endpoints."""

import pytest


@pytest.mark.asyncio
async def test_health_check(test_client):
    """Test the health check endpoint."""
    response = await test_client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "flynext-api"
    assert "version" in data
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_ready_check(test_client):
    """Test the readiness check against the test database."""
    response = await test_client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "ok"}


@pytest.mark.asyncio
async def test_info_endpoint(test_client):
    """Test the service info endpoint."""
    response = await test_client.get("/info")
    assert response.status_code == 200
    data = response.json()
    assert "service" in data
    assert "version" in data
    assert data["features"]["idempotency"] is True


@pytest.mark.asyncio
async def test_metrics_count_bookings(test_client, agency_headers, flight_network, passenger):
    """Test that a confirmed booking shows up in the Prometheus output."""
    await test_client.post(
        "/api/bookings",
        json={**passenger, "flight_ids": [flight_network.yyz_yul]},
        headers=agency_headers
    )

    response = await test_client.get("/metrics")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "flight_bookings_created_total" in response.text
