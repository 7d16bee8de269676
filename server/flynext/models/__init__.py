"""Models module exporting all database models."""

from .agency import Agency
from .booking import Booking, BookingFlight, BookingStatus, LegStatus
from .catalog import Airline, Airport, City
from .flight import Flight, FlightStatus
from .hotel import Hotel, HotelBooking, HotelBookingStatus, Room
from .idempotency import IdempotencyRecord
from .itinerary import Itinerary, ItineraryComponent, ItineraryStatus
from .notification import Notification, NotificationType
from .user import User, UserRole

__all__ = [
    # Principals
    "Agency",
    "User",
    "UserRole",

    # Catalogue
    "City",
    "Airport",
    "Airline",
    "Flight",
    "FlightStatus",

    # Flight bookings
    "Booking",
    "BookingFlight",
    "BookingStatus",
    "LegStatus",

    # Hotels
    "Hotel",
    "Room",
    "HotelBooking",
    "HotelBookingStatus",

    # Itineraries
    "Itinerary",
    "ItineraryComponent",
    "ItineraryStatus",

    # Notifications
    "Notification",
    "NotificationType",

    # Idempotency
    "IdempotencyRecord",
]
