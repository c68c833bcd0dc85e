import logging
from fastapi import APIRouter, Depends, HTTPException
from app.api.deps import get_store
from app.core.errors import DuplicatePaymentError, InvalidStatusError, StoreError, TicketNotFoundError
from app.schemas.tickets import TicketOut, TicketStatusOut, TicketStatusUpdate
from app.services.booking_service import update_ticket_status
from app.store.base import DataStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tickets"])

@router.patch("/tickets/{ticket_id}/update-status", response_model=TicketStatusOut)
def update_status(ticket_id: str, body: TicketStatusUpdate, store: DataStore = Depends(get_store)):
    try:
        t = update_ticket_status(store, ticket_id, body.payment_status)
    except InvalidStatusError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TicketNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except DuplicatePaymentError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError:
        logger.exception("status update failed for ticket %s", ticket_id)
        raise HTTPException(status_code=500, detail="Failed to update ticket status")
    return TicketStatusOut(
        ticket=TicketOut(
            id=t.id,
            ticket_number=t.ticket_number,
            trip_id=t.trip_id,
            passenger_id=t.passenger_id,
            seat_number=t.seat_number,
            seat_class=t.seat_class,
            price_paid_usd=float(t.price_paid_usd),
            status=t.status,
            payment_status=t.payment_status,
            payment_method=t.payment_method,
            payment_reference=t.payment_reference,
            qr_code_data=t.qr_code_data,
        )
    )
