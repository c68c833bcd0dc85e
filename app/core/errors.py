class BookingError(Exception):
    """Base for every error raised by the booking core."""


class ValidationError(BookingError):
    """Missing or malformed input."""


class SeatTakenError(BookingError):
    def __init__(self, trip_id: str, seat_number: str):
        self.trip_id = trip_id
        self.seat_number = seat_number
        super().__init__("Seat already taken")


class TripNotFoundError(BookingError):
    def __init__(self, trip_id: str):
        self.trip_id = trip_id
        super().__init__("Trip not found")


class NoSeatsAvailableError(BookingError):
    def __init__(self, trip_id: str):
        self.trip_id = trip_id
        super().__init__("No seats available")


class InvalidStatusError(BookingError):
    def __init__(self, status: str | None, allowed):
        self.status = status
        self.allowed = tuple(allowed)
        super().__init__(f"Invalid payment status. Must be one of: {', '.join(self.allowed)}")


class TicketNotFoundError(BookingError):
    def __init__(self, ticket_id: str):
        self.ticket_id = ticket_id
        super().__init__("Ticket not found")


class ConflictError(BookingError):
    """The identity provider already holds an account for this identity."""


class AuthenticationError(BookingError):
    """Bad credentials or an invalid/expired token."""


class StoreError(BookingError):
    """A data store round trip failed. The original exception is chained as __cause__."""


class BookingFailedError(BookingError):
    """The booking workflow aborted on an infrastructure failure."""

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Booking failed: {cause}")


class DuplicatePaymentError(BookingError):
    def __init__(self, ticket_id: str):
        self.ticket_id = ticket_id
        super().__init__("Payment already recorded for ticket")
