from pydantic import BaseModel, Field
from typing import Optional

class TicketPurchase(BaseModel):
    tripId: str = Field(min_length=1)
    seatId: str = Field(min_length=1)
    passengerName: str = Field(min_length=1)
    passengerPhone: str = Field(min_length=1)
    paymentType: str = "CASH"  # CASH, CARD, UPI
    price: Optional[int] = Field(default=None, ge=0)
    qrCode: Optional[str] = None
    machineId: Optional[str] = None

class TicketCancel(BaseModel):
    ticketId: str = Field(min_length=1)

class TicketStatusChange(BaseModel):
    id: str = Field(min_length=1)
    status: str  # CANCELLED or REFUNDED
