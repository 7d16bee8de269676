"""Integration tests for accounts, agencies and notifications."""

import pytest


@pytest.mark.asyncio
async def test_register_login_profile(test_client):
    """Test the sign-up flow end to end."""
    registered = await test_client.post(
        "/api/auth/register",
        json={
            "email": "Ada@Example.com",
            "password": "analytical-engine",
            "first_name": "Ada",
            "last_name": "Lovelace",
        }
    )
    assert registered.status_code == 201
    assert registered.json()["email"] == "ada@example.com"
    assert registered.json()["role"] == "USER"

    login = await test_client.post(
        "/api/auth/login",
        json={"email": "ada@example.com", "password": "analytical-engine"}
    )
    assert login.status_code == 200
    token = login.json()["access_token"]
    assert login.json()["token_type"] == "bearer"
    assert login.json()["expires_in"] > 0

    profile = await test_client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})
    assert profile.status_code == 200
    assert profile.json()["id"] == registered.json()["id"]


@pytest.mark.asyncio
async def test_register_duplicate_email(test_client, traveller):
    response = await test_client.post(
        "/api/auth/register",
        json={
            "email": "traveller@example.com",
            "password": "another-password",
            "first_name": "Copy",
            "last_name": "Cat",
        }
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_login_wrong_password(test_client, traveller):
    response = await test_client.post(
        "/api/auth/login",
        json={"email": "traveller@example.com", "password": "wrong-password"}
    )

    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid email or password"


@pytest.mark.asyncio
async def test_invalid_bearer_token(test_client):
    response = await test_client.get("/api/auth/profile", headers={"Authorization": "Bearer not.a.token"})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


@pytest.mark.asyncio
async def test_agency_lifecycle(test_client, admin_headers, traveller_headers, flight_network, passenger):
    """Test issuing an agency key, booking with it and revoking it."""
    denied = await test_client.post("/api/agencies", json={"name": "Rogue Travel"}, headers=traveller_headers)
    assert denied.status_code == 403

    created = await test_client.post("/api/agencies", json={"name": "Coastal Getaways"}, headers=admin_headers)
    assert created.status_code == 201
    agency = created.json()
    api_key = agency["api_key"]

    booking = await test_client.post(
        "/api/bookings",
        json={**passenger, "flight_ids": [flight_network.yyz_yul]},
        headers={"x-api-key": api_key}
    )
    assert booking.status_code == 201
    assert booking.json()["agency_id"] == agency["id"]

    revoked = await test_client.delete(f"/api/agencies/{agency['id']}", headers=admin_headers)
    assert revoked.status_code == 200
    assert revoked.json()["is_active"] is False

    rejected = await test_client.get("/api/bookings", headers={"x-api-key": api_key})
    assert rejected.status_code == 403

    listed = await test_client.get("/api/agencies", headers=admin_headers)
    assert [a["name"] for a in listed.json()] == ["Coastal Getaways"]


@pytest.mark.asyncio
async def test_api_key_wins_over_bearer_token(
    test_client, agency_headers, traveller_headers, flight_network, passenger
):
    response = await test_client.post(
        "/api/bookings",
        json={**passenger, "flight_ids": [flight_network.yyz_yul]},
        headers={**traveller_headers, **agency_headers}
    )

    assert response.status_code == 201
    assert response.json()["user_id"] is None
    assert response.json()["agency_id"] is not None


@pytest.mark.asyncio
async def test_mark_notification_read(test_client, traveller_headers, other_headers, flight_network, passenger):
    await test_client.post(
        "/api/bookings",
        json={**passenger, "flight_ids": [flight_network.yyz_yul]},
        headers=traveller_headers
    )

    notifications = (await test_client.get("/api/notifications", headers=traveller_headers)).json()
    notification_id = notifications[0]["id"]

    foreign = await test_client.put(
        f"/api/notifications/{notification_id}",
        json={"is_read": True},
        headers=other_headers
    )
    assert foreign.status_code == 403

    updated = await test_client.put(
        f"/api/notifications/{notification_id}",
        json={"is_read": True},
        headers=traveller_headers
    )
    assert updated.status_code == 200
    assert updated.json()["is_read"] is True

    unread = await test_client.get("/api/notifications", params={"unread_only": True}, headers=traveller_headers)
    assert unread.json() == []


@pytest.mark.asyncio
async def test_update_profile(test_client, traveller_headers):
    """Test editing name and phone, then changing the password."""
    response = await test_client.put(
        "/api/auth/profile",
        json={"first_name": "Grace", "phone": "+1 416-555-0199"},
        headers=traveller_headers
    )

    assert response.status_code == 200
    assert response.json()["first_name"] == "Grace"
    assert response.json()["last_name"] == "Traveller"
    assert response.json()["phone"] == "+1 416-555-0199"

    changed = await test_client.put(
        "/api/auth/profile",
        json={"current_password": "correct-horse-battery", "new_password": "compiler-pioneer"},
        headers=traveller_headers
    )
    assert changed.status_code == 200

    old = await test_client.post(
        "/api/auth/login",
        json={"email": "traveller@example.com", "password": "correct-horse-battery"}
    )
    new = await test_client.post(
        "/api/auth/login",
        json={"email": "traveller@example.com", "password": "compiler-pioneer"}
    )
    assert old.status_code == 401
    assert new.status_code == 200


@pytest.mark.asyncio
async def test_update_profile_wrong_current_password(test_client, traveller_headers):
    response = await test_client.put(
        "/api/auth/profile",
        json={"current_password": "wrong-password", "new_password": "compiler-pioneer"},
        headers=traveller_headers
    )

    assert response.status_code == 400
    assert response.json()["detail"] == "Current password is incorrect"
    assert response.json()["code"] == "WRONG_PASSWORD"


@pytest.mark.asyncio
async def test_update_profile_new_password_alone(test_client, traveller_headers):
    response = await test_client.put(
        "/api/auth/profile",
        json={"new_password": "compiler-pioneer"},
        headers=traveller_headers
    )

    assert response.status_code == 400
    assert any("must be sent together" in v["message"] for v in response.json()["violations"])


@pytest.mark.asyncio
async def test_update_profile_email_taken(test_client, traveller_headers, other_traveller):
    response = await test_client.put(
        "/api/auth/profile",
        json={"email": "Other@Example.com"},
        headers=traveller_headers
    )

    assert response.status_code == 409

    moved = await test_client.put(
        "/api/auth/profile",
        json={"email": "Voyager@Example.com"},
        headers=traveller_headers
    )
    assert moved.status_code == 200
    assert moved.json()["email"] == "voyager@example.com"


@pytest.mark.asyncio
async def test_update_profile_requires_login(test_client):
    response = await test_client.put("/api/auth/profile", json={"first_name": "Nobody"})

    assert response.status_code == 401
