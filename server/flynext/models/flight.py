"""Flight model definition."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base
from .catalog import Airline, Airport


class FlightStatus(str, Enum):
    """Flight status enumeration."""
    SCHEDULED = "SCHEDULED"
    CANCELLED = "CANCELLED"
    DELAYED = "DELAYED"
    DEPARTED = "DEPARTED"
    LANDED = "LANDED"


class Flight(Base):
    """A single scheduled flight; one leg of a booking."""

    __tablename__ = "flights"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    flight_number: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    airline_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("airlines.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    origin_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("airports.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    destination_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("airports.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # Naive UTC timestamps
    departure_time: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    arrival_time: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # Price in minor units
    price_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    price_currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[FlightStatus] = mapped_column(
        String(20),
        nullable=False,
        default=FlightStatus.SCHEDULED,
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
        CheckConstraint("capacity >= 0", name="ck_flight_capacity_non_negative"),
        CheckConstraint("available_seats >= 0", name="ck_flight_available_seats_non_negative"),
        CheckConstraint("available_seats <= capacity", name="ck_flight_available_seats_lte_capacity"),
        CheckConstraint("arrival_time > departure_time", name="ck_flight_arrival_after_departure"),
        CheckConstraint("price_amount >= 0", name="ck_flight_price_amount_non_negative"),
        CheckConstraint("origin_id != destination_id", name="ck_flight_distinct_airports"),
    )

    airline: Mapped["Airline"] = relationship("Airline")
    origin: Mapped["Airport"] = relationship("Airport", foreign_keys=[origin_id])
    destination: Mapped["Airport"] = relationship("Airport", foreign_keys=[destination_id])

    @property
    def duration_minutes(self) -> int:
        return int((self.arrival_time - self.departure_time).total_seconds() // 60)

    def __repr__(self) -> str:
        return (
            f"<Flight(id={self.id}, flight_number='{self.flight_number}', "
            f"departure_time={self.departure_time}, seats={self.available_seats}/{self.capacity})>"
        )
