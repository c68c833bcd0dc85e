from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Sequence


@dataclass(frozen=True)
class TripRecord:
    id: str
    price_usd: Decimal
    total_seats: int
    available_seats: int
    seat_class: str
    status: str


@dataclass(frozen=True)
class TicketRecord:
    id: str
    ticket_number: str
    trip_id: str
    passenger_id: str
    seat_number: str
    seat_class: str
    price_paid_usd: Decimal
    status: str
    payment_status: str
    payment_method: str
    payment_reference: Optional[str]
    qr_code_data: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class PaymentTransactionRecord:
    id: str
    ticket_id: str
    amount_usd: Decimal
    currency: str
    payment_method: str
    status: str
    transaction_id: str


@dataclass(frozen=True)
class ProfileRecord:
    id: str
    first_name: str
    last_name: str
    role: str
    phone_number: Optional[str]
    date_of_birth: Optional[str] = None
    national_id: Optional[str] = None


class DataStore(ABC):
    """Everything the booking core needs from the transactional store.

    Writes are staged until the surrounding `atomic()` block exits; a method
    called outside `atomic()` is committed by the caller's unit of work.
    """

    @abstractmethod
    def atomic(self) -> AbstractContextManager:
        """Commit on clean exit, roll back on exception."""
        raise NotImplementedError

    @abstractmethod
    def find_tickets(self, trip_id: str, seat_number: str, statuses: Sequence[str]) -> list[TicketRecord]:
        raise NotImplementedError

    @abstractmethod
    def get_trip(self, trip_id: str, for_update: bool = False) -> Optional[TripRecord]:
        raise NotImplementedError

    @abstractmethod
    def get_ticket(self, ticket_id: str, for_update: bool = False) -> Optional[TicketRecord]:
        raise NotImplementedError

    @abstractmethod
    def find_ticket_by_idempotency_key(self, key: str) -> Optional[TicketRecord]:
        raise NotImplementedError

    @abstractmethod
    def insert_ticket(self, fields: dict[str, Any]) -> TicketRecord:
        """Insert a ticket; the store assigns `id` and `ticket_number`.

        Raises SeatTakenError when the seat-exclusivity constraint rejects the row.
        """
        raise NotImplementedError

    @abstractmethod
    def insert_payment_transaction(self, fields: dict[str, Any]) -> PaymentTransactionRecord:
        """Raises DuplicatePaymentError when the ticket already has a transaction."""
        raise NotImplementedError

    @abstractmethod
    def recompute_available_seats(self, trip_id: Optional[str] = None) -> None:
        """Idempotent: available = max(capacity - non-cancelled tickets, 0), for one trip or all."""
        raise NotImplementedError

    @abstractmethod
    def update_ticket(self, ticket_id: str, fields: dict[str, Any]) -> TicketRecord:
        """Raises TicketNotFoundError when the id does not resolve."""
        raise NotImplementedError

    @abstractmethod
    def find_payment_transaction_by_ticket(self, ticket_id: str) -> Optional[PaymentTransactionRecord]:
        raise NotImplementedError

    @abstractmethod
    def find_paid_cash_tickets_without_transaction(self) -> list[TicketRecord]:
        raise NotImplementedError

    @abstractmethod
    def find_profile_by_phone(self, phone: str) -> Optional[ProfileRecord]:
        raise NotImplementedError

    @abstractmethod
    def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        raise NotImplementedError

    @abstractmethod
    def update_profile(self, user_id: str, fields: dict[str, Any]) -> None:
        raise NotImplementedError
