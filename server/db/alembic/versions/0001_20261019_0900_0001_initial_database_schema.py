"""Initial database schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _id_column() -> sa.Column:
    return sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False)


def _created_at() -> sa.Column:
    return sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False)


def _updated_at() -> sa.Column:
    return sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False)


def upgrade() -> None:
    """Upgrade database schema."""
    # Principals
    op.create_table('users',
        _id_column(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email')
    )
    op.create_index(op.f('ix_users_email'), 'users', ['email'], unique=False)

    op.create_table('agencies',
        _id_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('api_key', sa.String(length=128), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint('length(name) > 0', name='ck_agency_name_not_empty'),
        sa.CheckConstraint('length(api_key) >= 32', name='ck_agency_api_key_length'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('api_key')
    )
    op.create_index(op.f('ix_agencies_api_key'), 'agencies', ['api_key'], unique=False)

    # Catalogue
    op.create_table('cities',
        _id_column(),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('country', sa.String(length=255), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', 'country', name='uq_city_name_country')
    )
    op.create_index(op.f('ix_cities_name'), 'cities', ['name'], unique=False)

    op.create_table('airports',
        _id_column(),
        sa.Column('code', sa.String(length=3), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('city_id', postgresql.UUID(as_uuid=True), nullable=False),
        _created_at(),
        sa.CheckConstraint('length(code) = 3', name='ck_airport_code_length'),
        sa.ForeignKeyConstraint(['city_id'], ['cities.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code')
    )
    op.create_index(op.f('ix_airports_code'), 'airports', ['code'], unique=False)
    op.create_index(op.f('ix_airports_city_id'), 'airports', ['city_id'], unique=False)

    op.create_table('airlines',
        _id_column(),
        sa.Column('code', sa.String(length=3), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('base_city_id', postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['base_city_id'], ['cities.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('code')
    )
    op.create_index(op.f('ix_airlines_code'), 'airlines', ['code'], unique=False)

    op.create_table('flights',
        _id_column(),
        sa.Column('flight_number', sa.String(length=16), nullable=False),
        sa.Column('airline_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('origin_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('destination_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('departure_time', sa.DateTime(), nullable=False),
        sa.Column('arrival_time', sa.DateTime(), nullable=False),
        sa.Column('price_amount', sa.Integer(), nullable=False),
        sa.Column('price_currency', sa.String(length=3), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('available_seats', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint('capacity >= 0', name='ck_flight_capacity_non_negative'),
        sa.CheckConstraint('available_seats >= 0', name='ck_flight_available_seats_non_negative'),
        sa.CheckConstraint('available_seats <= capacity', name='ck_flight_available_seats_lte_capacity'),
        sa.CheckConstraint('arrival_time > departure_time', name='ck_flight_arrival_after_departure'),
        sa.CheckConstraint('price_amount >= 0', name='ck_flight_price_amount_non_negative'),
        sa.CheckConstraint('origin_id != destination_id', name='ck_flight_distinct_airports'),
        sa.ForeignKeyConstraint(['airline_id'], ['airlines.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['origin_id'], ['airports.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['destination_id'], ['airports.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_flights_flight_number'), 'flights', ['flight_number'], unique=False)
    op.create_index(op.f('ix_flights_airline_id'), 'flights', ['airline_id'], unique=False)
    op.create_index(op.f('ix_flights_origin_id'), 'flights', ['origin_id'], unique=False)
    op.create_index(op.f('ix_flights_destination_id'), 'flights', ['destination_id'], unique=False)
    op.create_index(op.f('ix_flights_departure_time'), 'flights', ['departure_time'], unique=False)
    op.create_index(op.f('ix_flights_status'), 'flights', ['status'], unique=False)

    # Flight bookings
    op.create_table('bookings',
        _id_column(),
        sa.Column('booking_reference', sa.String(length=6), nullable=False),
        sa.Column('ticket_number', sa.String(length=10), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('passport_number', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('agency_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('total_price_amount', sa.Integer(), nullable=False),
        sa.Column('price_currency', sa.String(length=3), nullable=False),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint('length(passport_number) >= 9', name='ck_booking_passport_number_length'),
        sa.CheckConstraint('total_price_amount >= 0', name='ck_booking_total_price_non_negative'),
        sa.CheckConstraint('(agency_id IS NULL) != (user_id IS NULL)', name='ck_booking_single_principal'),
        sa.ForeignKeyConstraint(['agency_id'], ['agencies.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('booking_reference'),
        sa.UniqueConstraint('ticket_number')
    )
    op.create_index(op.f('ix_bookings_booking_reference'), 'bookings', ['booking_reference'], unique=False)
    op.create_index(op.f('ix_bookings_last_name'), 'bookings', ['last_name'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(op.f('ix_bookings_agency_id'), 'bookings', ['agency_id'], unique=False)
    op.create_index(op.f('ix_bookings_user_id'), 'bookings', ['user_id'], unique=False)

    op.create_table('booking_flights',
        _id_column(),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('flight_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('leg_index', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.CheckConstraint('leg_index >= 0', name='ck_booking_flight_leg_index_non_negative'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['flight_id'], ['flights.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('booking_id', 'flight_id', name='uq_booking_flight'),
        sa.UniqueConstraint('booking_id', 'leg_index', name='uq_booking_leg_index')
    )
    op.create_index(op.f('ix_booking_flights_booking_id'), 'booking_flights', ['booking_id'], unique=False)
    op.create_index(op.f('ix_booking_flights_flight_id'), 'booking_flights', ['flight_id'], unique=False)

    # Hotels
    op.create_table('hotels',
        _id_column(),
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('city_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('star_rating', sa.Integer(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint('star_rating BETWEEN 1 AND 5', name='ck_hotel_star_rating_range'),
        sa.CheckConstraint('length(name) > 0', name='ck_hotel_name_not_empty'),
        sa.ForeignKeyConstraint(['owner_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['city_id'], ['cities.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_hotels_owner_id'), 'hotels', ['owner_id'], unique=False)
    op.create_index(op.f('ix_hotels_city_id'), 'hotels', ['city_id'], unique=False)
    op.create_index(op.f('ix_hotels_name'), 'hotels', ['name'], unique=False)

    op.create_table('rooms',
        _id_column(),
        sa.Column('hotel_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('room_type', sa.String(length=100), nullable=False),
        sa.Column('max_guests', sa.Integer(), nullable=False),
        sa.Column('available_count', sa.Integer(), nullable=False),
        sa.Column('price_amount', sa.Integer(), nullable=False),
        sa.Column('price_currency', sa.String(length=3), nullable=False),
        sa.Column('amenities', sa.JSON(), nullable=False),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint('max_guests > 0', name='ck_room_max_guests_positive'),
        sa.CheckConstraint('available_count >= 0', name='ck_room_available_count_non_negative'),
        sa.CheckConstraint('price_amount >= 0', name='ck_room_price_amount_non_negative'),
        sa.ForeignKeyConstraint(['hotel_id'], ['hotels.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_rooms_hotel_id'), 'rooms', ['hotel_id'], unique=False)

    op.create_table('hotel_bookings',
        _id_column(),
        sa.Column('booking_reference', sa.String(length=6), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('hotel_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('room_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('check_in_date', sa.Date(), nullable=False),
        sa.Column('check_out_date', sa.Date(), nullable=False),
        sa.Column('guest_count', sa.Integer(), nullable=False),
        sa.Column('price_amount', sa.Integer(), nullable=False),
        sa.Column('price_currency', sa.String(length=3), nullable=False),
        sa.Column('guest_details', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        _created_at(),
        _updated_at(),
        sa.CheckConstraint('check_out_date > check_in_date', name='ck_hotel_booking_dates_ordered'),
        sa.CheckConstraint('guest_count > 0', name='ck_hotel_booking_guest_count_positive'),
        sa.CheckConstraint('price_amount >= 0', name='ck_hotel_booking_price_non_negative'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['hotel_id'], ['hotels.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['room_id'], ['rooms.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('booking_reference')
    )
    op.create_index(op.f('ix_hotel_bookings_booking_reference'), 'hotel_bookings', ['booking_reference'], unique=False)
    op.create_index(op.f('ix_hotel_bookings_user_id'), 'hotel_bookings', ['user_id'], unique=False)
    op.create_index(op.f('ix_hotel_bookings_hotel_id'), 'hotel_bookings', ['hotel_id'], unique=False)
    op.create_index(op.f('ix_hotel_bookings_room_id'), 'hotel_bookings', ['room_id'], unique=False)
    op.create_index(op.f('ix_hotel_bookings_check_in_date'), 'hotel_bookings', ['check_in_date'], unique=False)
    op.create_index(op.f('ix_hotel_bookings_check_out_date'), 'hotel_bookings', ['check_out_date'], unique=False)
    op.create_index(op.f('ix_hotel_bookings_status'), 'hotel_bookings', ['status'], unique=False)

    # Notifications
    op.create_table('notifications',
        _id_column(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=40), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_notifications_user_id'), 'notifications', ['user_id'], unique=False)
    op.create_index(op.f('ix_notifications_created_at'), 'notifications', ['created_at'], unique=False)

    # Idempotency
    op.create_table('idempotency_records',
        _id_column(),
        sa.Column('idempotency_key', sa.String(length=255), nullable=False),
        sa.Column('scope', sa.String(length=100), nullable=False),
        sa.Column('method', sa.String(length=100), nullable=False),
        sa.Column('request_body_hash', sa.String(length=64), nullable=False),
        sa.Column('response_status_code', sa.Integer(), nullable=False),
        sa.Column('response_body', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        _created_at(),
        sa.CheckConstraint('length(idempotency_key) > 0', name='ck_idempotency_key_not_empty'),
        sa.CheckConstraint('length(request_body_hash) = 64', name='ck_idempotency_hash_length'),
        sa.CheckConstraint('response_status_code >= 100', name='ck_idempotency_status_code_valid'),
        sa.CheckConstraint('response_status_code <= 599', name='ck_idempotency_status_code_max'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('idempotency_key', 'scope', 'method', name='uq_idempotency_key_scope_method')
    )
    op.create_index(op.f('ix_idempotency_records_idempotency_key'), 'idempotency_records', ['idempotency_key'], unique=False)
    op.create_index(op.f('ix_idempotency_records_expires_at'), 'idempotency_records', ['expires_at'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('idempotency_records')
    op.drop_table('notifications')
    op.drop_table('hotel_bookings')
    op.drop_table('rooms')
    op.drop_table('hotels')
    op.drop_table('booking_flights')
    op.drop_table('bookings')
    op.drop_table('flights')
    op.drop_table('airlines')
    op.drop_table('airports')
    op.drop_table('cities')
    op.drop_table('agencies')
    op.drop_table('users')
