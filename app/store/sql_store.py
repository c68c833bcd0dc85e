import functools
import logging
import random
import string
import uuid
from contextlib import contextmanager
from typing import Any, Optional, Sequence

from sqlalchemy import select, func, exists
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import DuplicatePaymentError, SeatTakenError, StoreError, TicketNotFoundError
from app.models.payment_transaction import PaymentTransaction
from app.models.profile import Profile
from app.models.ticket import Ticket
from app.models.trip import Trip
from app.store.base import (
    DataStore, PaymentTransactionRecord, ProfileRecord, TicketRecord, TripRecord,
)

logger = logging.getLogger(__name__)

SEAT_INDEX_NAME = "uq_tickets_trip_seat_active"
PAYMENT_INDEX_NAME = "uq_payment_transactions_ticket_id"


def make_ticket_number() -> str:
    return "NB-" + "".join(random.choices(string.ascii_uppercase + string.digits, k=8))


def _store_call(retry: bool = False):
    """Translate SQLAlchemy failures into StoreError.

    With retry=True the call is repeated once on OperationalError, but only when
    no write is pending in the current transaction (the rollback would lose it).
    """
    def deco(fn):
        @functools.wraps(fn)
        def wrapper(self: "SqlAlchemyDataStore", *args, **kwargs):
            attempts = 2 if retry and not self._dirty else 1
            for attempt in range(1, attempts + 1):
                try:
                    return fn(self, *args, **kwargs)
                except OperationalError as e:
                    self.session.rollback()
                    self._dirty = False
                    if attempt < attempts:
                        logger.warning("store call %s failed (%s), retrying once", fn.__name__, e.orig)
                        continue
                    raise StoreError(f"{fn.__name__} failed") from e
                except SQLAlchemyError as e:
                    self.session.rollback()
                    self._dirty = False
                    raise StoreError(f"{fn.__name__} failed") from e
        return wrapper
    return deco


def _is_seat_conflict(exc: IntegrityError) -> bool:
    msg = str(exc.orig)
    # Postgres names the index; SQLite lists the columns
    return SEAT_INDEX_NAME in msg or "tickets.trip_id, tickets.seat_number" in msg


def _is_payment_conflict(exc: IntegrityError) -> bool:
    msg = str(exc.orig)
    return PAYMENT_INDEX_NAME in msg or "payment_transactions.ticket_id" in msg


def _trip_record(t: Trip) -> TripRecord:
    return TripRecord(
        id=t.id,
        price_usd=t.price_usd,
        total_seats=t.total_seats,
        available_seats=t.available_seats,
        seat_class=t.seat_class,
        status=t.status,
    )


def _ticket_record(t: Ticket) -> TicketRecord:
    return TicketRecord(
        id=t.id,
        ticket_number=t.ticket_number,
        trip_id=t.trip_id,
        passenger_id=t.passenger_id,
        seat_number=t.seat_number,
        seat_class=t.seat_class,
        price_paid_usd=t.price_paid_usd,
        status=t.status,
        payment_status=t.payment_status,
        payment_method=t.payment_method,
        payment_reference=t.payment_reference,
        qr_code_data=t.qr_code_data,
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


def _transaction_record(p: PaymentTransaction) -> PaymentTransactionRecord:
    return PaymentTransactionRecord(
        id=p.id,
        ticket_id=p.ticket_id,
        amount_usd=p.amount_usd,
        currency=p.currency,
        payment_method=p.payment_method,
        status=p.status,
        transaction_id=p.transaction_id,
    )


def _profile_record(p: Profile) -> ProfileRecord:
    return ProfileRecord(
        id=p.id,
        first_name=p.first_name or "",
        last_name=p.last_name or "",
        role=p.role or "passenger",
        phone_number=p.phone_number,
        date_of_birth=p.date_of_birth,
        national_id=p.national_id,
    )


class SqlAlchemyDataStore(DataStore):
    """DataStore over a SQLAlchemy session (Postgres in production, SQLite in tests)."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self._dirty = False

    @contextmanager
    def atomic(self):
        try:
            yield self
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise StoreError("commit failed") from e
        except Exception:
            self.session.rollback()
            raise
        finally:
            self._dirty = False

    @_store_call(retry=True)
    def find_tickets(self, trip_id: str, seat_number: str, statuses: Sequence[str]) -> list[TicketRecord]:
        rows = self.session.execute(
            select(Ticket).where(
                Ticket.trip_id == trip_id,
                Ticket.seat_number == seat_number,
                Ticket.status.in_(list(statuses)),
            )
        ).scalars().all()
        return [_ticket_record(t) for t in rows]

    @_store_call(retry=True)
    def get_trip(self, trip_id: str, for_update: bool = False) -> Optional[TripRecord]:
        stmt = select(Trip).where(Trip.id == trip_id)
        if for_update:
            stmt = stmt.with_for_update()
        trip = self.session.execute(stmt).scalar_one_or_none()
        return _trip_record(trip) if trip else None

    @_store_call(retry=True)
    def get_ticket(self, ticket_id: str, for_update: bool = False) -> Optional[TicketRecord]:
        stmt = select(Ticket).where(Ticket.id == ticket_id)
        if for_update:
            stmt = stmt.with_for_update()
        ticket = self.session.execute(stmt).scalar_one_or_none()
        return _ticket_record(ticket) if ticket else None

    @_store_call(retry=True)
    def find_ticket_by_idempotency_key(self, key: str) -> Optional[TicketRecord]:
        ticket = self.session.execute(
            select(Ticket).where(Ticket.idempotency_key == key)
        ).scalar_one_or_none()
        return _ticket_record(ticket) if ticket else None

    @_store_call(retry=True)
    def insert_ticket(self, fields: dict[str, Any]) -> TicketRecord:
        for _ in range(10):
            number = make_ticket_number()
            taken = self.session.execute(
                select(Ticket.id).where(Ticket.ticket_number == number)
            ).first()
            if not taken:
                break
        else:
            raise StoreError("could not allocate ticket number")

        ticket = Ticket(id=str(uuid.uuid4()), ticket_number=number, **fields)
        self._dirty = True
        self.session.add(ticket)
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            self._dirty = False
            if _is_seat_conflict(e):
                raise SeatTakenError(fields.get("trip_id"), fields.get("seat_number")) from e
            raise
        return _ticket_record(ticket)

    @_store_call()
    def insert_payment_transaction(self, fields: dict[str, Any]) -> PaymentTransactionRecord:
        txn = PaymentTransaction(id=str(uuid.uuid4()), **fields)
        self._dirty = True
        self.session.add(txn)
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            self._dirty = False
            if _is_payment_conflict(e):
                raise DuplicatePaymentError(fields.get("ticket_id")) from e
            raise
        return _transaction_record(txn)

    @_store_call()
    def recompute_available_seats(self, trip_id: Optional[str] = None) -> None:
        held = (
            select(Ticket.trip_id, func.count(Ticket.id))
            .where(Ticket.status != "cancelled")
            .group_by(Ticket.trip_id)
        )
        trips = select(Trip)
        if trip_id:
            held = held.where(Ticket.trip_id == trip_id)
            trips = trips.where(Trip.id == trip_id)
        counts = dict(self.session.execute(held).all())
        self._dirty = True
        for trip in self.session.execute(trips).scalars():
            trip.available_seats = max(trip.total_seats - counts.get(trip.id, 0), 0)
        self.session.flush()

    @_store_call()
    def update_ticket(self, ticket_id: str, fields: dict[str, Any]) -> TicketRecord:
        ticket = self.session.execute(
            select(Ticket).where(Ticket.id == ticket_id).with_for_update()
        ).scalar_one_or_none()
        if not ticket:
            raise TicketNotFoundError(ticket_id)
        self._dirty = True
        for name, value in fields.items():
            setattr(ticket, name, value)
        self.session.flush()
        return _ticket_record(ticket)

    @_store_call()
    def find_payment_transaction_by_ticket(self, ticket_id: str) -> Optional[PaymentTransactionRecord]:
        txn = self.session.execute(
            select(PaymentTransaction)
            .where(PaymentTransaction.ticket_id == ticket_id)
            .order_by(PaymentTransaction.created_at)
            .limit(1)
        ).scalar_one_or_none()
        return _transaction_record(txn) if txn else None

    @_store_call(retry=True)
    def find_paid_cash_tickets_without_transaction(self) -> list[TicketRecord]:
        has_txn = exists().where(PaymentTransaction.ticket_id == Ticket.id)
        rows = self.session.execute(
            select(Ticket).where(
                Ticket.payment_status == "paid",
                Ticket.payment_method == "cash",
                ~has_txn,
            )
        ).scalars().all()
        return [_ticket_record(t) for t in rows]

    @_store_call(retry=True)
    def find_profile_by_phone(self, phone: str) -> Optional[ProfileRecord]:
        profile = self.session.execute(
            select(Profile).where(Profile.phone_number == phone).order_by(Profile.created_at).limit(1)
        ).scalar_one_or_none()
        return _profile_record(profile) if profile else None

    @_store_call(retry=True)
    def get_profile(self, user_id: str) -> Optional[ProfileRecord]:
        profile = self.session.get(Profile, user_id)
        return _profile_record(profile) if profile else None

    @_store_call()
    def update_profile(self, user_id: str, fields: dict[str, Any]) -> None:
        profile = self.session.get(Profile, user_id)
        if not profile:
            raise StoreError(f"profile {user_id} not found")
        self._dirty = True
        for name, value in fields.items():
            setattr(profile, name, value)
        self.session.flush()
