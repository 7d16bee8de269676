"""City, airport and airline model definitions."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, ForeignKey, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .hotel import Hotel


class City(Base):
    """City entity."""

    __tablename__ = "cities"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    country: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=datetime.utcnow,
        server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("name", "country", name="uq_city_name_country"),
    )

    airports: Mapped[list["Airport"]] = relationship("Airport", back_populates="city")
    hotels: Mapped[list["Hotel"]] = relationship("Hotel", back_populates="city")

    def __repr__(self) -> str:
        return f"<City(id={self.id}, name='{self.name}', country='{self.country}')>"


class Airport(Base):
    """Airport entity identified by its IATA code."""

    __tablename__ = "airports"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String(3), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    city_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("cities.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=datetime.utcnow,
        server_default=func.now()
    )

    __table_args__ = (
        CheckConstraint("length(code) = 3", name="ck_airport_code_length"),
    )

    city: Mapped["City"] = relationship("City", back_populates="airports")

    def __repr__(self) -> str:
        return f"<Airport(id={self.id}, code='{self.code}')>"


class Airline(Base):
    """Airline entity identified by its IATA designator."""

    __tablename__ = "airlines"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    code: Mapped[str] = mapped_column(String(3), nullable=False, unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    base_city_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("cities.id", ondelete="SET NULL"),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        nullable=False,
        default=datetime.utcnow,
        server_default=func.now()
    )

    base_city: Mapped["City | None"] = relationship("City")

    def __repr__(self) -> str:
        return f"<Airline(id={self.id}, code='{self.code}', name='{self.name}')>"
