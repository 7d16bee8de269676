"""Hotel, room and hotel booking model definitions."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, CheckConstraint, Date, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .catalog import City
    from .user import User


class HotelBookingStatus(str, Enum):
    """Hotel booking status enumeration."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class Hotel(Base):
    """Hotel entity owned by a registered user."""

    __tablename__ = "hotels"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    owner_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    city_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("cities.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    star_rating: Mapped[int] = mapped_column(Integer, nullable=False, default=3)

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
        CheckConstraint("star_rating BETWEEN 1 AND 5", name="ck_hotel_star_rating_range"),
        CheckConstraint("length(name) > 0", name="ck_hotel_name_not_empty"),
    )

    owner: Mapped["User"] = relationship("User")
    city: Mapped["City"] = relationship("City", back_populates="hotels")
    rooms: Mapped[list["Room"]] = relationship(
        "Room",
        back_populates="hotel",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Hotel(id={self.id}, name='{self.name}')>"


class Room(Base):
    """Room type offered by a hotel; ``available_count`` identical units exist."""

    __tablename__ = "rooms"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    hotel_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("hotels.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    room_type: Mapped[str] = mapped_column(String(100), nullable=False)
    max_guests: Mapped[int] = mapped_column(Integer, nullable=False, default=2)
    available_count: Mapped[int] = mapped_column(Integer, nullable=False)

    # Nightly price in minor units
    price_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    amenities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

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
        CheckConstraint("max_guests > 0", name="ck_room_max_guests_positive"),
        CheckConstraint("available_count >= 0", name="ck_room_available_count_non_negative"),
        CheckConstraint("price_amount >= 0", name="ck_room_price_amount_non_negative"),
    )

    hotel: Mapped["Hotel"] = relationship("Hotel", back_populates="rooms")

    def __repr__(self) -> str:
        return (
            f"<Room(id={self.id}, hotel_id={self.hotel_id}, type='{self.room_type}', "
            f"units={self.available_count})>"
        )


class HotelBooking(Base):
    """Reservation of one room unit for a date range [check_in_date, check_out_date)."""

    __tablename__ = "hotel_bookings"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    booking_reference: Mapped[str] = mapped_column(String(6), nullable=False, unique=True, index=True)

    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    hotel_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("hotels.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    room_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("rooms.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    check_in_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    check_out_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    guest_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Total price for the whole stay in minor units
    price_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")
    guest_details: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    status: Mapped[HotelBookingStatus] = mapped_column(
        String(20),
        nullable=False,
        default=HotelBookingStatus.CONFIRMED,
        index=True
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
        CheckConstraint("check_out_date > check_in_date", name="ck_hotel_booking_dates_ordered"),
        CheckConstraint("guest_count > 0", name="ck_hotel_booking_guest_count_positive"),
        CheckConstraint("price_amount >= 0", name="ck_hotel_booking_price_non_negative"),
    )

    user: Mapped["User"] = relationship("User")
    hotel: Mapped["Hotel"] = relationship("Hotel")
    room: Mapped["Room"] = relationship("Room")

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    def __repr__(self) -> str:
        return (
            f"<HotelBooking(id={self.id}, room_id={self.room_id}, "
            f"{self.check_in_date}..{self.check_out_date}, status={self.status})>"
        )
