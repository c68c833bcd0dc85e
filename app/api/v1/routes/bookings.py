import logging
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException
from app.api.deps import get_store
from app.core.errors import (
    BookingFailedError, NoSeatsAvailableError, SeatTakenError, TripNotFoundError, ValidationError,
)
from app.schemas.booking import BookingCreate, BookingOut, TicketSummary
from app.services.booking_service import book
from app.store.base import DataStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["bookings"])

@router.post("/booking", response_model=BookingOut, status_code=201)
def create_booking(
    body: BookingCreate,
    store: DataStore = Depends(get_store),
    idempotency_key: Optional[str] = Header(default=None, alias="Idempotency-Key"),
):
    try:
        result = book(
            store,
            body.tripId,
            body.passengerId,
            body.seatNumber,
            body.paymentMethod,
            seat_class=body.seatClass,
            payment_reference=body.paymentReference,
            payment_status=body.paymentStatus,
            request_nonce=idempotency_key,
        )
    except (ValidationError, SeatTakenError, NoSeatsAvailableError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TripNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except BookingFailedError:
        logger.exception("booking failed for trip %s", body.tripId)
        raise HTTPException(status_code=500, detail="Booking failed")
    return BookingOut(
        ticket=TicketSummary(
            id=result.ticket_id,
            trip_id=result.trip_id,
            seat_number=result.seat_number,
            price_paid_usd=float(result.price_paid_usd),
            qr_code_data=result.qr_code_data,
            ticket_number=result.ticket_number,
        )
    )
