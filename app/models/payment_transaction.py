from sqlalchemy import String, Numeric, DateTime, Index
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from decimal import Decimal
from app.db.session import Base

class PaymentTransaction(Base):
    __tablename__ = "payment_transactions"
    __table_args__ = (
        # At most one completed payment per ticket, whoever records it
        Index("uq_payment_transactions_ticket_id", "ticket_id", unique=True),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    ticket_id: Mapped[str] = mapped_column(String(36))
    amount_usd: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    payment_method: Mapped[str] = mapped_column(String(30))  # cash, card, mobile_money
    status: Mapped[str] = mapped_column(String(20), default="completed")
    transaction_id: Mapped[str] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
