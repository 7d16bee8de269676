"""Unit tests for the idempotency service."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import select

from flynext.models.idempotency import IdempotencyRecord
from flynext.services.idempotency_service import IdempotencyMismatchError, IdempotencyService

BODY = {"flight_ids": ["a", "b"], "first_name": "Ada"}


@pytest.mark.asyncio
async def test_replay_returns_stored_response(test_session):
    """Test that a stored response is returned for the same key and body."""
    service = IdempotencyService(test_session)

    assert await service.check_idempotency("key-1", "agency:1", "bookings/create", BODY) is None

    await service.store_response("key-1", "agency:1", "bookings/create", BODY, 201, {"id": "booking-1"})

    cached = await service.check_idempotency("key-1", "agency:1", "bookings/create", dict(reversed(BODY.items())))
    assert cached == (201, {"id": "booking-1"})


@pytest.mark.asyncio
async def test_key_reuse_with_different_body(test_session):
    """Test that reusing a key for a different request is rejected."""
    service = IdempotencyService(test_session)
    await service.store_response("key-2", "agency:1", "bookings/create", BODY, 201, {"id": "booking-1"})

    with pytest.raises(IdempotencyMismatchError) as exc_info:
        await service.check_idempotency("key-2", "agency:1", "bookings/create", {**BODY, "first_name": "Grace"})

    assert exc_info.value.status_code == 422


@pytest.mark.asyncio
async def test_keys_are_scoped_per_caller(test_session):
    """Test that two callers may use the same key independently."""
    service = IdempotencyService(test_session)
    await service.store_response("shared", "agency:1", "bookings/create", BODY, 201, {"id": "booking-1"})

    assert await service.check_idempotency("shared", "agency:2", "bookings/create", BODY) is None


@pytest.mark.asyncio
async def test_duplicate_store_is_ignored(test_session):
    """Test that storing the same key twice keeps the first response."""
    service = IdempotencyService(test_session)
    await service.store_response("key-3", "user:1", "bookings/create", BODY, 201, {"id": "first"})
    await service.store_response("key-3", "user:1", "bookings/create", BODY, 201, {"id": "second"})

    cached = await service.check_idempotency("key-3", "user:1", "bookings/create", BODY)
    assert cached == (201, {"id": "first"})


@pytest.mark.asyncio
async def test_cleanup_expired_records(test_session):
    """Test that expired records are purged and ignored."""
    service = IdempotencyService(test_session)
    await service.store_response("old", "user:1", "bookings/create", BODY, 201, {"id": "old"})
    await service.store_response("fresh", "user:1", "bookings/create", BODY, 201, {"id": "fresh"})

    record = (await test_session.execute(
        select(IdempotencyRecord).where(IdempotencyRecord.idempotency_key == "old")
    )).scalar_one()
    record.expires_at = datetime.utcnow() - timedelta(minutes=1)
    await test_session.commit()

    assert await service.check_idempotency("old", "user:1", "bookings/create", BODY) is None
    assert await service.cleanup_expired_records() == 1
    assert await service.check_idempotency("fresh", "user:1", "bookings/create", BODY) == (201, {"id": "fresh"})
