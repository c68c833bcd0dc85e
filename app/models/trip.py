from sqlalchemy import String, Integer, Numeric, DateTime, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from decimal import Decimal
from app.db.session import Base

class Trip(Base):
    __tablename__ = "trips"
    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="ck_trips_available_seats_non_negative"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    origin: Mapped[str] = mapped_column(String(120), default="")
    destination: Mapped[str] = mapped_column(String(120), default="")
    departure_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    price_usd: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    total_seats: Mapped[int] = mapped_column(Integer)
    available_seats: Mapped[int] = mapped_column(Integer)  # maintained by recompute_available_seats
    seat_class: Mapped[str] = mapped_column(String(30), default="economy")  # economy, business
    status: Mapped[str] = mapped_column(String(20), default="scheduled", index=True)  # scheduled, departed, cancelled

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
