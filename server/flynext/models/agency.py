"""Travel agency model definition."""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base

if TYPE_CHECKING:
    from .booking import Booking


class Agency(Base):
    """Agency entity; agencies authenticate with an API key and book on behalf of passengers."""

    __tablename__ = "agencies"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    api_key: Mapped[str] = mapped_column(String(128), nullable=False, unique=True, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Timestamps
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
        CheckConstraint("length(name) > 0", name="ck_agency_name_not_empty"),
        CheckConstraint("length(api_key) >= 32", name="ck_agency_api_key_length"),
    )

    bookings: Mapped[list["Booking"]] = relationship("Booking", back_populates="agency")

    def __repr__(self) -> str:
        return f"<Agency(id={self.id}, name='{self.name}', is_active={self.is_active})>"
