"""Flight booking and booking leg model definitions."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, Integer, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .agency import Agency
    from .flight import Flight
    from .user import User


class BookingStatus(str, Enum):
    """Booking status enumeration."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class LegStatus(str, Enum):
    """Status of a single flight within a booking."""
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Booking(Base):
    """Flight booking for one passenger over one or more consecutive legs."""

    __tablename__ = "bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    booking_reference: Mapped[str] = mapped_column(String(6), nullable=False, unique=True, index=True)
    ticket_number: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)

    # Passenger details
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    passport_number: Mapped[str] = mapped_column(String(32), nullable=False)

    status: Mapped[BookingStatus] = mapped_column(
        String(20),
        nullable=False,
        default=BookingStatus.CONFIRMED,
        index=True
    )

    # Exactly one of agency_id / user_id identifies who made the booking
    agency_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("agencies.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    user_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    total_price_amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=datetime.utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("length(passport_number) >= 9", name="ck_booking_passport_number_length"),
        CheckConstraint("total_price_amount >= 0", name="ck_booking_total_price_non_negative"),
        CheckConstraint(
            "(agency_id IS NULL) != (user_id IS NULL)",
            name="ck_booking_single_principal"
        ),
    )

    legs: Mapped[list["BookingFlight"]] = relationship(
        "BookingFlight",
        back_populates="booking",
        cascade="all, delete-orphan",
        order_by="BookingFlight.leg_index"
    )
    agency: Mapped["Agency | None"] = relationship("Agency", back_populates="bookings")
    user: Mapped["User | None"] = relationship("User")

    @property
    def flights(self) -> list["Flight"]:
        """Flights of this booking in departure order."""
        return [leg.flight for leg in self.legs]

    def __repr__(self) -> str:
        return (
            f"<Booking(id={self.id}, reference='{self.booking_reference}', "
            f"legs={len(self.legs)}, status={self.status})>"
        )


class BookingFlight(Base):
    """Association between a booking and one of its flights."""

    __tablename__ = "booking_flights"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    booking_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    flight_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("flights.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # Position of the leg in departure order, starting at 0
    leg_index: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[LegStatus] = mapped_column(String(20), nullable=False, default=LegStatus.CONFIRMED)

    __table_args__ = (
        UniqueConstraint("booking_id", "flight_id", name="uq_booking_flight"),
        UniqueConstraint("booking_id", "leg_index", name="uq_booking_leg_index"),
        CheckConstraint("leg_index >= 0", name="ck_booking_flight_leg_index_non_negative"),
    )

    booking: Mapped["Booking"] = relationship("Booking", back_populates="legs")
    flight: Mapped["Flight"] = relationship("Flight")

    def __repr__(self) -> str:
        return (
            f"<BookingFlight(booking_id={self.booking_id}, flight_id={self.flight_id}, "
            f"leg_index={self.leg_index}, status={self.status})>"
        )
