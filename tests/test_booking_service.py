from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from app.core.errors import (
    BookingFailedError, DuplicatePaymentError, InvalidStatusError, NoSeatsAvailableError, SeatTakenError,
    StoreError, TicketNotFoundError, TripNotFoundError, ValidationError,
)
from app.services.booking_service import (
    book, effective_payment_status, make_idempotency_key, make_transaction_ref, qr_payload,
    update_ticket_status,
)
from app.store.base import PaymentTransactionRecord, TicketRecord, TripRecord


def _trip(available_seats: int = 10, price: str = "25.00") -> TripRecord:
    return TripRecord(
        id="T1", price_usd=Decimal(price), total_seats=10,
        available_seats=available_seats, seat_class="economy", status="scheduled",
    )


def _ticket(fields: dict) -> TicketRecord:
    return TicketRecord(
        id="TK1",
        ticket_number="NB-ABCD1234",
        trip_id=fields["trip_id"],
        passenger_id=fields["passenger_id"],
        seat_number=fields["seat_number"],
        seat_class=fields["seat_class"],
        price_paid_usd=fields["price_paid_usd"],
        status="active",
        payment_status=fields["payment_status"],
        payment_method=fields["payment_method"],
        payment_reference=fields["payment_reference"],
        qr_code_data=fields["qr_code_data"],
    )


@pytest.fixture
def mock_store():
    """Store mock that behaves like an empty trip T1 with free seats."""
    store = MagicMock()
    store.find_tickets.return_value = []
    store.get_trip.return_value = _trip()
    store.insert_ticket.side_effect = _ticket
    store.insert_payment_transaction.return_value = PaymentTransactionRecord(
        id="PT1", ticket_id="TK1", amount_usd=Decimal("25.00"), currency="USD",
        payment_method="cash", status="completed", transaction_id="ref-1",
    )
    return store


class TestBook:
    def test_card_booking_returns_ticket_without_transaction(self, mock_store):
        # Act
        result = book(mock_store, "T1", "P1", 15, "card")

        # Assert
        assert result.ticket_id == "TK1"
        assert result.seat_number == "15"
        assert result.price_paid_usd == Decimal("25.00")
        assert result.qr_code_data == "TKT-T1-15"
        assert result.ticket_number == "NB-ABCD1234"
        assert result.payment_transaction_id is None
        mock_store.insert_payment_transaction.assert_not_called()
        mock_store.recompute_available_seats.assert_called_once_with("T1")

    def test_ticket_fields_copied_from_trip(self, mock_store):
        book(mock_store, "T1", "P1", "15", "card", payment_reference="ref-9")

        fields = mock_store.insert_ticket.call_args[0][0]
        assert fields["price_paid_usd"] == Decimal("25.00")
        assert fields["seat_class"] == "economy"
        assert fields["payment_status"] == "pending"
        assert fields["payment_reference"] == "ref-9"
        assert fields["booking_source"] == "mobile_app"
        assert len(fields["idempotency_key"]) == 64

    def test_caller_seat_class_wins(self, mock_store):
        book(mock_store, "T1", "P1", "15", "card", seat_class="business")

        assert mock_store.insert_ticket.call_args[0][0]["seat_class"] == "business"

    def test_seat_taken_short_circuits(self, mock_store):
        mock_store.find_tickets.return_value = [MagicMock()]

        with pytest.raises(SeatTakenError):
            book(mock_store, "T1", "P1", "15", "card")

        mock_store.find_tickets.assert_called_once_with("T1", "15", ("active", "pending"))
        mock_store.get_trip.assert_not_called()
        mock_store.insert_ticket.assert_not_called()
        mock_store.recompute_available_seats.assert_not_called()

    def test_trip_not_found(self, mock_store):
        mock_store.get_trip.return_value = None

        with pytest.raises(TripNotFoundError):
            book(mock_store, "T1", "P1", "15", "card")

        mock_store.insert_ticket.assert_not_called()

    @pytest.mark.parametrize("available", [0, -1])
    def test_no_seats_guard(self, mock_store, available):
        mock_store.get_trip.return_value = _trip(available_seats=available)

        with pytest.raises(NoSeatsAvailableError):
            book(mock_store, "T1", "P1", "15", "card")

        mock_store.insert_ticket.assert_not_called()

    def test_lost_race_on_insert_is_seat_taken(self, mock_store):
        """The pre-check passed but the store's unique index rejected the insert."""
        mock_store.insert_ticket.side_effect = SeatTakenError("T1", "15")

        with pytest.raises(SeatTakenError):
            book(mock_store, "T1", "P1", "15", "cash", payment_status="paid")

        mock_store.insert_payment_transaction.assert_not_called()
        mock_store.recompute_available_seats.assert_not_called()

    @pytest.mark.parametrize(
        "method, status, expect_txn",
        [
            ("cash", "paid", True),
            ("cash", "pending", False),
            ("cash", None, False),
            ("card", "paid", False),
            ("mobile_money", "paid", False),
            ("cash", "failed", False),
        ],
    )
    def test_transaction_only_for_paid_cash(self, mock_store, method, status, expect_txn):
        result = book(mock_store, "T1", "P1", "15", method, payment_status=status)

        assert mock_store.insert_payment_transaction.called is expect_txn
        assert (result.payment_transaction_id == "PT1") is expect_txn
        mock_store.recompute_available_seats.assert_called_once_with("T1")

    def test_cash_transaction_fields(self, mock_store):
        book(mock_store, "T1", "P1", "15", "cash", payment_status="paid", payment_reference="ref-1")

        fields = mock_store.insert_payment_transaction.call_args[0][0]
        assert fields == {
            "ticket_id": "TK1",
            "amount_usd": Decimal("25.00"),
            "currency": "USD",
            "payment_method": "cash",
            "status": "completed",
            "transaction_id": "ref-1",
        }

    def test_cash_transaction_generates_reference(self, mock_store):
        book(mock_store, "T1", "P1", "15", "cash", payment_status="paid")

        assert mock_store.insert_payment_transaction.call_args[0][0]["transaction_id"].startswith("txn-")

    def test_store_failure_becomes_booking_failed(self, mock_store):
        cause = StoreError("get_trip failed")
        mock_store.get_trip.side_effect = cause

        with pytest.raises(BookingFailedError) as exc_info:
            book(mock_store, "T1", "P1", "15", "card")

        assert exc_info.value.cause is cause
        assert exc_info.value.__cause__ is cause

    def test_transaction_insert_failure_aborts(self, mock_store):
        mock_store.insert_payment_transaction.side_effect = StoreError("insert failed")

        with pytest.raises(BookingFailedError):
            book(mock_store, "T1", "P1", "15", "cash", payment_status="paid")

        mock_store.recompute_available_seats.assert_not_called()

    def test_recompute_failure_does_not_fail_booking(self, mock_store):
        mock_store.recompute_available_seats.side_effect = StoreError("rpc failed")

        result = book(mock_store, "T1", "P1", "15", "card")

        assert result.ticket_id == "TK1"

    @pytest.mark.parametrize(
        "trip_id, passenger_id, seat, method",
        [("", "P1", "15", "card"), ("T1", " ", "15", "card"), ("T1", "P1", None, "card"), ("T1", "P1", "15", "")],
    )
    def test_required_fields(self, mock_store, trip_id, passenger_id, seat, method):
        with pytest.raises(ValidationError):
            book(mock_store, trip_id, passenger_id, seat, method)

        mock_store.find_tickets.assert_not_called()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"trip_id": "T" * 37},
            {"passenger_id": "P" * 37},
            {"seat_number": "ABCDEFGHIJK"},
            {"seat_number": 12345678901},
            {"payment_method": "m" * 31},
            {"seat_class": "c" * 31},
            {"payment_reference": "r" * 121},
        ],
    )
    def test_values_wider_than_their_columns_are_rejected(self, mock_store, overrides):
        args = {"trip_id": "T1", "passenger_id": "P1", "seat_number": "15", "payment_method": "card"}
        args.update(overrides)

        with pytest.raises(ValidationError):
            book(mock_store, **args)

        mock_store.find_tickets.assert_not_called()
        mock_store.insert_ticket.assert_not_called()

    def test_replayed_request_returns_first_ticket(self, mock_store):
        fields = {
            "trip_id": "T1", "passenger_id": "P1", "seat_number": "15", "seat_class": "economy",
            "price_paid_usd": Decimal("25.00"), "payment_status": "pending", "payment_method": "card",
            "payment_reference": None, "qr_code_data": "TKT-T1-15",
        }
        mock_store.find_ticket_by_idempotency_key.return_value = _ticket(fields)
        mock_store.find_payment_transaction_by_ticket.return_value = None

        result = book(mock_store, "T1", "P1", "15", "card", request_nonce="req-1")

        assert result.ticket_id == "TK1"
        key = mock_store.find_ticket_by_idempotency_key.call_args[0][0]
        assert key == make_idempotency_key("T1", "15", "P1", "req-1")
        mock_store.find_tickets.assert_not_called()
        mock_store.insert_ticket.assert_not_called()

    def test_no_lookup_without_nonce(self, mock_store):
        book(mock_store, "T1", "P1", "15", "card")

        mock_store.find_ticket_by_idempotency_key.assert_not_called()


class TestUpdateTicketStatus:
    @pytest.fixture
    def ticket(self):
        return TicketRecord(
            id="TK1", ticket_number="NB-ABCD1234", trip_id="T1", passenger_id="P1",
            seat_number="15", seat_class="economy", price_paid_usd=Decimal("30.00"),
            status="active", payment_status="paid", payment_method="cash",
            payment_reference=None, qr_code_data="TKT-T1-15",
        )

    def test_invalid_status(self, mock_store):
        with pytest.raises(InvalidStatusError):
            update_ticket_status(mock_store, "TK1", "done")

        mock_store.update_ticket.assert_not_called()

    def test_paid_creates_transaction_at_stored_price(self, mock_store, ticket):
        mock_store.update_ticket.return_value = ticket
        mock_store.find_payment_transaction_by_ticket.return_value = None

        result = update_ticket_status(mock_store, "TK1", "paid")

        assert result is ticket
        mock_store.update_ticket.assert_called_once_with("TK1", {"payment_status": "paid"})
        fields = mock_store.insert_payment_transaction.call_args[0][0]
        assert fields["amount_usd"] == Decimal("30.00")
        assert fields["payment_method"] == "cash"
        assert fields["status"] == "completed"
        mock_store.recompute_available_seats.assert_called_once_with("T1")

    def test_paid_with_existing_transaction_is_noop(self, mock_store, ticket):
        mock_store.update_ticket.return_value = ticket
        mock_store.find_payment_transaction_by_ticket.return_value = MagicMock()

        update_ticket_status(mock_store, "TK1", "paid")

        mock_store.insert_payment_transaction.assert_not_called()
        mock_store.recompute_available_seats.assert_not_called()

    def test_non_paid_status_skips_transaction_lookup(self, mock_store, ticket):
        mock_store.update_ticket.return_value = ticket

        update_ticket_status(mock_store, "TK1", "refunded")

        mock_store.find_payment_transaction_by_ticket.assert_not_called()
        mock_store.insert_payment_transaction.assert_not_called()

    def test_concurrent_payment_surfaces_as_duplicate(self, mock_store, ticket):
        mock_store.update_ticket.return_value = ticket
        mock_store.find_payment_transaction_by_ticket.return_value = None
        mock_store.insert_payment_transaction.side_effect = DuplicatePaymentError("TK1")

        with pytest.raises(DuplicatePaymentError):
            update_ticket_status(mock_store, "TK1", "paid")

        mock_store.recompute_available_seats.assert_not_called()

    def test_ticket_not_found(self, mock_store):
        mock_store.update_ticket.side_effect = TicketNotFoundError("nope")

        with pytest.raises(TicketNotFoundError):
            update_ticket_status(mock_store, "nope", "paid")


def test_qr_payload_format():
    assert qr_payload("T1", "15") == "TKT-T1-15"


@pytest.mark.parametrize("given, expected", [("paid", "paid"), ("refunded", "refunded"), ("bogus", "pending"), (None, "pending")])
def test_effective_payment_status(given, expected):
    assert effective_payment_status(given) == expected


def test_transaction_refs_do_not_collide():
    refs = {make_transaction_ref() for _ in range(200)}
    assert len(refs) == 200


def test_idempotency_key_depends_on_nonce():
    assert make_idempotency_key("T1", "15", "P1", "a") == make_idempotency_key("T1", "15", "P1", "a")
    assert make_idempotency_key("T1", "15", "P1", "a") != make_idempotency_key("T1", "15", "P1", "b")
