from pydantic import BaseModel
from typing import Optional

class TicketStatusUpdate(BaseModel):
    payment_status: Optional[str] = None

class TicketOut(BaseModel):
    id: str
    ticket_number: str
    trip_id: str
    passenger_id: str
    seat_number: str
    seat_class: str
    price_paid_usd: float
    status: str
    payment_status: str
    payment_method: str
    payment_reference: Optional[str] = None
    qr_code_data: str

class TicketStatusOut(BaseModel):
    success: bool = True
    ticket: TicketOut
