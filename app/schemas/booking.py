from pydantic import BaseModel
from typing import Optional, Union

class BookingCreate(BaseModel):
    tripId: str
    passengerId: str
    seatNumber: Union[int, str]  # bus seats are numbered; "12A" style labels are kept as given
    seatClass: Optional[str] = None
    paymentMethod: str  # cash, card, mobile_money
    paymentReference: Optional[str] = None
    paymentStatus: Optional[str] = None  # anything outside pending|paid|failed|refunded becomes pending

class TicketSummary(BaseModel):
    id: str
    trip_id: str
    seat_number: str
    price_paid_usd: float
    qr_code_data: str
    ticket_number: str

class BookingOut(BaseModel):
    success: bool = True
    ticket: TicketSummary
