"""Initial schema: flights, reservations, seats, payments with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SEAT_CLASSES = "('ECONOMY', 'PREMIUM_ECONOMY', 'BUSINESS', 'FIRST')"


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # Flights table
    op.create_table(
        "flights",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("flight_number", sa.String(20), nullable=False),
        sa.Column("airline", sa.String(100), nullable=False),
        sa.Column("origin", sa.String(100), nullable=False),
        sa.Column("destination", sa.String(100), nullable=False),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("arrival_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_seats", sa.Integer(), nullable=False),
        sa.Column("available_seats", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("price >= 0", name="check_flight_price_non_negative"),
        sa.CheckConstraint("total_seats > 0", name="check_flight_total_seats_positive"),
        sa.CheckConstraint("available_seats >= 0", name="check_flight_available_non_negative"),
        sa.CheckConstraint("available_seats <= total_seats", name="check_flight_available_lte_total"),
    )
    op.create_index("ix_flights_id", "flights", ["id"])
    op.create_index("ix_flights_flight_number", "flights", ["flight_number"], unique=True)
    # Search is always origin + destination + departure day
    op.create_index("ix_flights_route_departure", "flights", ["origin", "destination", "departure_time"])

    # Reservations table
    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("booking_reference", sa.String(10), nullable=False),
        sa.Column("passenger_name", sa.String(255), nullable=False),
        sa.Column("passenger_email", sa.String(255), nullable=False),
        sa.Column("passenger_phone", sa.String(30), nullable=False),
        sa.Column("flight_id", sa.Integer(), sa.ForeignKey("flights.id"), nullable=False),
        sa.Column("booking_time", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("total_amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("preferred_seat_class", sa.String(20), nullable=False, server_default=sa.text("'ECONOMY'")),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'PENDING'")),
        *_timestamps(),
        sa.CheckConstraint("total_amount >= 0", name="check_reservation_amount_non_negative"),
        sa.CheckConstraint(f"preferred_seat_class IN {SEAT_CLASSES}", name="preferred_seat_class"),
        sa.CheckConstraint("status IN ('PENDING', 'CONFIRMED', 'CANCELLED')", name="reservation_status"),
    )
    op.create_index("ix_reservations_id", "reservations", ["id"])
    op.create_index("ix_reservations_booking_reference", "reservations", ["booking_reference"], unique=True)
    op.create_index("ix_reservations_passenger_email", "reservations", ["passenger_email"])
    op.create_index("ix_reservations_flight_id", "reservations", ["flight_id"])

    # Seats table
    op.create_table(
        "seats",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("flight_id", sa.Integer(), sa.ForeignKey("flights.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seat_number", sa.String(5), nullable=False),
        sa.Column("seat_class", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'AVAILABLE'")),
        sa.Column("reservation_id", sa.Integer(), sa.ForeignKey("reservations.id"), nullable=True),
        *_timestamps(),
        # Concurrent seat initialization relies on this constraint
        sa.UniqueConstraint("flight_id", "seat_number", name="uq_seat_flight_number"),
        sa.CheckConstraint(f"seat_class IN {SEAT_CLASSES}", name="seat_class"),
        sa.CheckConstraint("status IN ('AVAILABLE', 'BOOKED', 'BLOCKED')", name="seat_status"),
    )
    op.create_index("ix_seats_id", "seats", ["id"])
    op.create_index("ix_seats_flight_id", "seats", ["flight_id"])
    op.create_index("ix_seats_reservation_id", "seats", ["reservation_id"])
    # Availability queries and counts filter on (flight_id, status)
    op.create_index("ix_seats_flight_status", "seats", ["flight_id", "status"])

    # Payments table
    op.create_table(
        "payments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("reservation_id", sa.Integer(), sa.ForeignKey("reservations.id"), nullable=False),
        sa.Column("transaction_id", sa.String(40), nullable=False),
        sa.Column("payment_method", sa.String(30), nullable=False),
        sa.Column("amount", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("processed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("card_last_four", sa.String(4), nullable=True),
        sa.Column("card_holder_name", sa.String(255), nullable=True),
        sa.Column("payment_gateway_response", sa.String(255), nullable=True),
        sa.Column("failure_reason", sa.String(255), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('PENDING', 'SUCCESS', 'FAILED')", name="payment_status"),
    )
    op.create_index("ix_payments_id", "payments", ["id"])
    op.create_index("ix_payments_reservation_id", "payments", ["reservation_id"])
    op.create_index("ix_payments_transaction_id", "payments", ["transaction_id"], unique=True)
    op.create_index("ix_payments_reservation_status", "payments", ["reservation_id", "status"])


def downgrade() -> None:
    op.drop_table("payments")
    op.drop_table("seats")
    op.drop_table("reservations")
    op.drop_table("flights")
