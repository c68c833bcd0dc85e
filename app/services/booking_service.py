import hashlib
import logging
import secrets
import time
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from app.core.errors import (
    BookingFailedError, InvalidStatusError, NoSeatsAvailableError, SeatTakenError,
    StoreError, TripNotFoundError, ValidationError,
)
from app.store.base import DataStore, PaymentTransactionRecord, TicketRecord

logger = logging.getLogger(__name__)

PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
SEAT_HOLDING_STATUSES = ("active", "pending")
QR_PREFIX = "TKT"
CURRENCY = "USD"

# Widths of the matching tickets columns
MAX_ID_LENGTH = 36
MAX_SEAT_NUMBER_LENGTH = 10
MAX_LABEL_LENGTH = 30
MAX_REFERENCE_LENGTH = 120


@dataclass(frozen=True)
class BookingResult:
    ticket_id: str
    trip_id: str
    seat_number: str
    price_paid_usd: Decimal
    qr_code_data: str
    ticket_number: str
    payment_status: str
    payment_transaction_id: Optional[str] = None


def qr_payload(trip_id: str, seat_number: str) -> str:
    """QR payload printed on the ticket; recomputable from the ticket's own fields."""
    return f"{QR_PREFIX}-{trip_id}-{seat_number}"


def make_transaction_ref() -> str:
    # wall clock alone collides under concurrent bookings
    return f"txn-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def make_idempotency_key(trip_id: str, seat_number: str, passenger_id: str, nonce: str) -> str:
    raw = "|".join((trip_id, seat_number, passenger_id, nonce))
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


def _required(name: str, value, max_length: Optional[int] = None) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValidationError(f"{name} is required")
    if max_length and len(text) > max_length:
        raise ValidationError(f"{name} must be at most {max_length} characters")
    return text


def _optional(name: str, value: Optional[str], max_length: int) -> Optional[str]:
    if value is not None and len(value) > max_length:
        raise ValidationError(f"{name} must be at most {max_length} characters")
    return value


def effective_payment_status(payment_status: Optional[str]) -> str:
    return payment_status if payment_status in PAYMENT_STATUSES else "pending"


def recompute_seats(store: DataStore, trip_id: str) -> None:
    """Best-effort seat recount. A failure leaves a stale count for the reconcile job."""
    try:
        with store.atomic():
            store.recompute_available_seats(trip_id)
    except StoreError:
        logger.exception("seat recompute failed for trip %s", trip_id)


def _result(ticket: TicketRecord, txn: Optional[PaymentTransactionRecord]) -> BookingResult:
    return BookingResult(
        ticket_id=ticket.id,
        trip_id=ticket.trip_id,
        seat_number=ticket.seat_number,
        price_paid_usd=ticket.price_paid_usd,
        qr_code_data=ticket.qr_code_data,
        ticket_number=ticket.ticket_number,
        payment_status=ticket.payment_status,
        payment_transaction_id=txn.id if txn else None,
    )


def book(
    store: DataStore,
    trip_id: str,
    passenger_id: str,
    seat_number,
    payment_method: str,
    seat_class: Optional[str] = None,
    payment_reference: Optional[str] = None,
    payment_status: Optional[str] = None,
    request_nonce: Optional[str] = None,
) -> BookingResult:
    """Reserve one seat on a trip and issue the ticket.

    The seat pre-check is a fast path only: the store's unique index on
    (trip, seat) for held tickets decides concurrent races, and a lost race
    surfaces from insert_ticket as SeatTakenError. Ticket and payment
    transaction are written in one store transaction; the seat recount runs
    after commit.

    A request repeated with the same `request_nonce` returns the ticket the
    first request issued, as long as that ticket still holds its seat.
    """
    trip_id = _required("tripId", trip_id, MAX_ID_LENGTH)
    passenger_id = _required("passengerId", passenger_id, MAX_ID_LENGTH)
    seat_number = _required("seatNumber", seat_number, MAX_SEAT_NUMBER_LENGTH)
    payment_method = _required("paymentMethod", payment_method, MAX_LABEL_LENGTH)
    seat_class = _optional("seatClass", seat_class, MAX_LABEL_LENGTH)
    payment_reference = _optional("paymentReference", payment_reference, MAX_REFERENCE_LENGTH)
    status = effective_payment_status(payment_status)
    idempotency_key = make_idempotency_key(
        trip_id, seat_number, passenger_id, request_nonce or uuid.uuid4().hex,
    )

    txn: Optional[PaymentTransactionRecord] = None
    try:
        if request_nonce:
            previous = store.find_ticket_by_idempotency_key(idempotency_key)
            if previous is not None:
                if previous.status not in SEAT_HOLDING_STATUSES:
                    raise ValidationError("Idempotency-Key was used by a booking that no longer holds its seat")
                logger.info("replayed booking %s for trip %s seat %s", previous.ticket_number, trip_id, seat_number)
                return _result(previous, store.find_payment_transaction_by_ticket(previous.id))

        if store.find_tickets(trip_id, seat_number, SEAT_HOLDING_STATUSES):
            raise SeatTakenError(trip_id, seat_number)

        trip = store.get_trip(trip_id, for_update=True)
        if trip is None:
            raise TripNotFoundError(trip_id)
        if trip.available_seats <= 0:
            raise NoSeatsAvailableError(trip_id)

        with store.atomic():
            ticket = store.insert_ticket({
                "trip_id": trip_id,
                "passenger_id": passenger_id,
                "seat_number": seat_number,
                "seat_class": seat_class or trip.seat_class,
                "price_paid_usd": trip.price_usd,
                "payment_status": status,
                "payment_method": payment_method,
                "payment_reference": payment_reference,
                "qr_code_data": qr_payload(trip_id, seat_number),
                "booking_source": "mobile_app",
                "idempotency_key": idempotency_key,
            })
            if payment_method == "cash" and status == "paid":
                txn = store.insert_payment_transaction({
                    "ticket_id": ticket.id,
                    "amount_usd": trip.price_usd,
                    "currency": CURRENCY,
                    "payment_method": payment_method,
                    "status": "completed",
                    "transaction_id": payment_reference or make_transaction_ref(),
                })
    except StoreError as e:
        logger.error("booking aborted for trip %s seat %s: %s", trip_id, seat_number, e)
        raise BookingFailedError(e) from e

    recompute_seats(store, trip_id)
    logger.info("ticket %s issued for trip %s seat %s", ticket.ticket_number, trip_id, seat_number)
    return _result(ticket, txn)


def update_ticket_status(store: DataStore, ticket_id: str, payment_status: Optional[str]) -> TicketRecord:
    """Set a ticket's payment status; moving to `paid` records the cash payment once."""
    if payment_status not in PAYMENT_STATUSES:
        raise InvalidStatusError(payment_status, PAYMENT_STATUSES)

    created = False
    with store.atomic():
        # update_ticket locks the row, so concurrent `paid` updates see each other's transaction
        ticket = store.update_ticket(ticket_id, {"payment_status": payment_status})
        if payment_status == "paid" and store.find_payment_transaction_by_ticket(ticket.id) is None:
            store.insert_payment_transaction({
                "ticket_id": ticket.id,
                "amount_usd": ticket.price_paid_usd,
                "currency": CURRENCY,
                "payment_method": "cash",
                "status": "completed",
                "transaction_id": ticket.payment_reference or make_transaction_ref(),
            })
            created = True

    if created:
        recompute_seats(store, ticket.trip_id)
    logger.info("ticket %s payment status -> %s", ticket.id, payment_status)
    return ticket
