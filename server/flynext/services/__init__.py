"""Service layer package."""

from .afs_client import AFSClient
from .agency_service import AgencyService
from .auth_service import AuthService
from .booking_service import BookingService
from .catalog_service import CatalogService
from .flight_service import FlightService
from .hotel_booking_service import HotelBookingService
from .hotel_service import HotelService
from .idempotency_service import IdempotencyService
from .notification_service import NotificationService

__all__ = [
    "AFSClient",
    "AgencyService",
    "AuthService",
    "BookingService",
    "CatalogService",
    "FlightService",
    "HotelBookingService",
    "HotelService",
    "IdempotencyService",
    "NotificationService",
]
