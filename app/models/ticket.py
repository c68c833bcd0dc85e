from sqlalchemy import String, Numeric, DateTime, Index, text
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from decimal import Decimal
from app.db.session import Base

# Tickets in these states hold their seat
SEAT_HOLDING_STATUSES = ("active", "pending")
_HOLDS_SEAT = text("status IN ('active', 'pending')")

class Ticket(Base):
    __tablename__ = "tickets"
    __table_args__ = (
        # The authority on seat exclusivity; the coordinator's pre-check is only a fast path.
        Index(
            "uq_tickets_trip_seat_active", "trip_id", "seat_number",
            unique=True, postgresql_where=_HOLDS_SEAT, sqlite_where=_HOLDS_SEAT,
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    ticket_number: Mapped[str] = mapped_column(String(20), unique=True, index=True)

    trip_id: Mapped[str] = mapped_column(String(36), index=True)
    passenger_id: Mapped[str] = mapped_column(String(36), index=True)
    seat_number: Mapped[str] = mapped_column(String(10))
    seat_class: Mapped[str] = mapped_column(String(30), default="economy")
    price_paid_usd: Mapped[Decimal] = mapped_column(Numeric(10, 2))

    status: Mapped[str] = mapped_column(String(20), default="active")  # active, pending, cancelled, used
    payment_status: Mapped[str] = mapped_column(String(20), default="pending")  # pending, paid, failed, refunded
    payment_method: Mapped[str] = mapped_column(String(30))
    payment_reference: Mapped[str] = mapped_column(String(120), nullable=True)

    qr_code_data: Mapped[str] = mapped_column(String(120))
    booking_source: Mapped[str] = mapped_column(String(30), default="mobile_app")
    idempotency_key: Mapped[str] = mapped_column(String(64), unique=True, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
