#!/usr/bin/env python3
"""Migrate the database and load sample data for the FlyNext API."""

import asyncio
import logging
import os
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from sqlalchemy import func, select  # noqa: E402

from flynext.core.database import async_session_factory, close_db  # noqa: E402
from flynext.core.security import generate_api_key, hash_password  # noqa: E402
from flynext.models import (  # noqa: E402
    Agency,
    Airline,
    Airport,
    City,
    Flight,
    FlightStatus,
    Hotel,
    Room,
    User,
    UserRole,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@example.com")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "change-me-please")

CITIES = [
    ("Toronto", "Canada", "YYZ", "Toronto Pearson International"),
    ("Montreal", "Canada", "YUL", "Montreal Trudeau International"),
    ("Vancouver", "Canada", "YVR", "Vancouver International"),
    ("New York", "United States", "JFK", "John F. Kennedy International"),
]

# (origin, destination, departure hour, minutes in the air, price in cents)
ROUTES = [
    ("YYZ", "YUL", 8, 90, 18900),
    ("YUL", "YVR", 11, 330, 42900),
    ("YVR", "YYZ", 7, 280, 39900),
    ("YYZ", "JFK", 9, 95, 24900),
    ("JFK", "YUL", 14, 85, 21900),
]


def run_migrations() -> None:
    logger.info("Running database migrations...")
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data() -> None:
    """Create cities, airports, a week of flights, an admin, an agency and a hotel."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        try:
            existing = (await db.execute(select(func.count(City.id)))).scalar_one()
            if existing > 0:
                logger.info("Sample data already exists, skipping...")
                return

            airports = {}
            cities = {}
            for name, country, code, airport_name in CITIES:
                city = City(name=name, country=country)
                db.add(city)
                await db.flush()
                cities[name] = city
                airports[code] = Airport(code=code, name=airport_name, city_id=city.id)
                db.add(airports[code])

            airline = Airline(code="FN", name="FlyNext Air", base_city_id=cities["Toronto"].id)
            db.add(airline)
            await db.flush()

            start = (datetime.utcnow() + timedelta(days=30)).replace(hour=0, minute=0, second=0, microsecond=0)
            for day in range(7):
                for number, (origin, destination, hour, minutes, price) in enumerate(ROUTES, start=100):
                    departs = start + timedelta(days=day, hours=hour)
                    db.add(Flight(
                        flight_number=f"FN{number + day * 10}",
                        airline_id=airline.id,
                        origin_id=airports[origin].id,
                        destination_id=airports[destination].id,
                        departure_time=departs,
                        arrival_time=departs + timedelta(minutes=minutes),
                        price_amount=price,
                        price_currency="CAD",
                        capacity=180,
                        available_seats=180,
                        status=FlightStatus.SCHEDULED
                    ))

            admin = User(
                email=ADMIN_EMAIL,
                first_name="FlyNext",
                last_name="Admin",
                password_hash=hash_password(ADMIN_PASSWORD),
                role=UserRole.ADMIN
            )
            agency = Agency(name="Sample Travel Agency", api_key=generate_api_key(), is_active=True)
            db.add_all([admin, agency])
            await db.flush()

            hotel = Hotel(
                owner_id=admin.id,
                city_id=cities["Montreal"].id,
                name="Hotel du Vieux-Port",
                address="97 Rue de la Commune Est",
                description="Boutique hotel facing the Old Port",
                star_rating=4
            )
            db.add(hotel)
            await db.flush()
            db.add_all([
                Room(hotel_id=hotel.id, room_type="Queen", max_guests=2, available_count=12,
                     price_amount=21900, price_currency="CAD", amenities=["wifi", "breakfast"]),
                Room(hotel_id=hotel.id, room_type="Loft Suite", max_guests=4, available_count=3,
                     price_amount=45900, price_currency="CAD", amenities=["wifi", "breakfast", "kitchenette"]),
            ])

            await db.commit()
            logger.info("Sample data created successfully!")
            logger.info(f"Admin login: {ADMIN_EMAIL}")
            logger.info(f"Agency API key: {agency.api_key}")

        except Exception as e:
            await db.rollback()
            logger.error(f"Failed to create sample data: {e}")
            raise


async def main():
    """Main setup function."""
    logger.info("Starting FlyNext API setup...")

    await asyncio.to_thread(run_migrations)
    await create_sample_data()
    await close_db()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn flynext.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())
