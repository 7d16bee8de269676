"""Itinerary model: one trip grouping a flight booking and a hotel stay."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking
    from .hotel import HotelBooking
    from .user import User


class ItineraryStatus(str, Enum):
    """Status derived from the itinerary's components."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class ItineraryComponent(str, Enum):
    """Bookable parts of an itinerary."""
    FLIGHT = "flight"
    HOTEL = "hotel"


class Itinerary(Base):
    """A user's trip: a flight booking, a hotel booking, or both."""

    __tablename__ = "itineraries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    booking_reference: Mapped[str] = mapped_column(String(6), nullable=False, unique=True, index=True)

    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    booking_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("bookings.id", ondelete="SET NULL"),
        nullable=True,
        unique=True
    )
    hotel_booking_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("hotel_bookings.id", ondelete="SET NULL"),
        nullable=True,
        unique=True
    )

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
        CheckConstraint(
            "booking_id IS NOT NULL OR hotel_booking_id IS NOT NULL",
            name="ck_itinerary_has_component"
        ),
    )

    user: Mapped["User"] = relationship("User")
    flight_booking: Mapped["Booking | None"] = relationship("Booking")
    hotel_booking: Mapped["HotelBooking | None"] = relationship("HotelBooking")

    @property
    def components(self) -> list:
        return [part for part in (self.flight_booking, self.hotel_booking) if part is not None]

    @property
    def status(self) -> ItineraryStatus:
        """CANCELLED once every part is cancelled, PENDING while a part awaits checkout."""
        statuses = [part.status for part in self.components]
        if all(status == ItineraryStatus.CANCELLED for status in statuses):
            return ItineraryStatus.CANCELLED
        if any(status == ItineraryStatus.PENDING for status in statuses):
            return ItineraryStatus.PENDING
        return ItineraryStatus.CONFIRMED

    def __repr__(self) -> str:
        return (
            f"<Itinerary(id={self.id}, reference='{self.booking_reference}', "
            f"booking_id={self.booking_id}, hotel_booking_id={self.hotel_booking_id})>"
        )
