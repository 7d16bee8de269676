"""Identifier parsing and booking code generation."""

import logging
import secrets
import string
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from .exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)

REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
TICKET_ALPHABET = string.ascii_lowercase + string.digits

REFERENCE_ATTEMPTS = 5


class BookingReferenceConflictError(ConflictError):
    """Exception when no unused booking reference could be stored."""

    def __init__(self):
        super().__init__(detail="Could not allocate a booking reference, please retry")
        self.problem_details.update({
            "code": "REFERENCE_CONFLICT",
            "retryable": True
        })


def parse_id(value: str, resource_type: str) -> UUID:
    """
    Parse a client supplied identifier.

    A string that is not a UUID cannot name an existing row, so it is
    reported the same way as a missing one.

    Raises:
        NotFoundError: If the value is not a valid UUID
    """
    try:
        return UUID(str(value))
    except ValueError:
        raise NotFoundError(resource_type, str(value)) from None


def generate_booking_reference(length: int = 6) -> str:
    """Random booking reference of upper-case letters and digits, e.g. ``K7QX2M``."""
    return ''.join(secrets.choice(REFERENCE_ALPHABET) for _ in range(length))


def generate_ticket_number(length: int = 10) -> str:
    """Random lower-case alphanumeric ticket number."""
    return ''.join(secrets.choice(TICKET_ALPHABET) for _ in range(length))


async def allocate_booking_reference(db: AsyncSession, column) -> str:
    """
    Draw booking references until one is not yet stored in ``column``.

    A reference taken by a concurrent transaction between this check and the
    commit still fails on the unique constraint; callers turn that into
    ``BookingReferenceConflictError``.

    Raises:
        BookingReferenceConflictError: If every attempt drew a taken reference
    """
    for attempt in range(1, REFERENCE_ATTEMPTS + 1):
        reference = generate_booking_reference()
        taken = (await db.execute(select(column).where(column == reference).limit(1))).scalar_one_or_none()
        if taken is None:
            return reference
        logger.info(
            "Booking reference already taken",
            extra={"column": str(column), "attempt": attempt}
        )

    logger.error("Booking reference allocation exhausted", extra={"attempts": REFERENCE_ATTEMPTS})
    raise BookingReferenceConflictError()


async def flush_booking(db: AsyncSession, kind: str) -> None:
    """
    Write a staged booking so a taken reference fails inside the transaction.

    Raises:
        BookingReferenceConflictError: If a reference was taken concurrently
    """
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Booking insert rejected by a unique constraint", extra={"kind": kind})
        raise BookingReferenceConflictError() from e
