"""Initial schema: trips and reservations with indexes and constraints.

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Trips table
    op.create_table(
        "trips",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("owner", sa.String(255), nullable=False),
        sa.Column("route", sa.String(255), nullable=False),
        sa.Column("departure_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("price", sa.Numeric(10, 2), nullable=False),
        sa.Column("seats_offered", sa.Integer(), nullable=False),
        sa.Column("state", sa.String(20), nullable=False, server_default=sa.text("'OPEN'")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("seats_offered >= 1", name="check_seats_offered_positive"),
        sa.CheckConstraint("duration_minutes > 0", name="check_duration_positive"),
        sa.CheckConstraint("price > 0", name="check_price_positive"),
        sa.CheckConstraint("state IN ('OPEN', 'CLOSED', 'CANCELLED')", name="check_trip_state"),
    )
    op.create_index("ix_trips_owner", "trips", ["owner"])
    # Listings filter open trips; bookings only ever look trips up by id
    op.create_index("ix_trips_state", "trips", ["state"])

    # Reservations table
    op.create_table(
        "reservations",
        sa.Column("code", sa.String(64), primary_key=True),
        sa.Column("user", sa.String(255), nullable=False),
        sa.Column("seats_requested", sa.Integer(), nullable=False),
        sa.Column(
            "trip_id",
            sa.Integer(),
            sa.ForeignKey("trips.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        # One reservation per user per trip, even if two processes race past the lock
        sa.UniqueConstraint("user", "trip_id", name="uq_user_trip_reservation"),
        sa.CheckConstraint("seats_requested > 0", name="check_seats_requested_positive"),
    )
    op.create_index("ix_reservations_user", "reservations", ["user"])
    # Seat sums and code generation both scan reservations by trip
    op.create_index("ix_reservations_trip_id", "reservations", ["trip_id"])


def downgrade() -> None:
    op.drop_table("reservations")
    op.drop_table("trips")
