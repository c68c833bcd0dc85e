"""initial booking schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17

"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

HOLDS_SEAT = sa.text("status IN ('active', 'pending')")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("role", sa.String(length=30), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "profiles",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("first_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=30), nullable=False, server_default="passenger"),
        sa.Column("phone_number", sa.String(length=40), nullable=True),
        sa.Column("date_of_birth", sa.String(length=20), nullable=True),
        sa.Column("national_id", sa.String(length=40), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_profiles_phone_number", "profiles", ["phone_number"])

    op.create_table(
        "trips",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("origin", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("destination", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("departure_time", sa.DateTime(timezone=True), nullable=True),
        sa.Column("price_usd", sa.Numeric(10, 2), nullable=False),
        sa.Column("total_seats", sa.Integer(), nullable=False),
        sa.Column("available_seats", sa.Integer(), nullable=False),
        sa.Column("seat_class", sa.String(length=30), nullable=False, server_default="economy"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("available_seats >= 0", name="ck_trips_available_seats_non_negative"),
    )
    op.create_index("ix_trips_departure_time", "trips", ["departure_time"])
    op.create_index("ix_trips_status", "trips", ["status"])

    op.create_table(
        "tickets",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ticket_number", sa.String(length=20), nullable=False),
        sa.Column("trip_id", sa.String(length=36), nullable=False),
        sa.Column("passenger_id", sa.String(length=36), nullable=False),
        sa.Column("seat_number", sa.String(length=10), nullable=False),
        sa.Column("seat_class", sa.String(length=30), nullable=False, server_default="economy"),
        sa.Column("price_paid_usd", sa.Numeric(10, 2), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("payment_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("payment_method", sa.String(length=30), nullable=False),
        sa.Column("payment_reference", sa.String(length=120), nullable=True),
        sa.Column("qr_code_data", sa.String(length=120), nullable=False),
        sa.Column("booking_source", sa.String(length=30), nullable=False, server_default="mobile_app"),
        sa.Column("idempotency_key", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("idempotency_key", name="uq_tickets_idempotency_key"),
    )
    op.create_index("ix_tickets_ticket_number", "tickets", ["ticket_number"], unique=True)
    op.create_index("ix_tickets_trip_id", "tickets", ["trip_id"])
    op.create_index("ix_tickets_passenger_id", "tickets", ["passenger_id"])
    op.create_index(
        "uq_tickets_trip_seat_active", "tickets", ["trip_id", "seat_number"],
        unique=True, postgresql_where=HOLDS_SEAT, sqlite_where=HOLDS_SEAT,
    )

    op.create_table(
        "payment_transactions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("ticket_id", sa.String(length=36), nullable=False),
        sa.Column("amount_usd", sa.Numeric(10, 2), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False, server_default="USD"),
        sa.Column("payment_method", sa.String(length=30), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="completed"),
        sa.Column("transaction_id", sa.String(length=120), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_payment_transactions_ticket_id", "payment_transactions", ["ticket_id"])


def downgrade() -> None:
    op.drop_table("payment_transactions")
    op.drop_index("uq_tickets_trip_seat_active", table_name="tickets")
    op.drop_table("tickets")
    op.drop_table("trips")
    op.drop_table("profiles")
    op.drop_table("users")
