from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from buspos.db.session import Base

PAYMENT_TYPES = ("CASH", "CARD", "UPI")

class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    trip_id: Mapped[str] = mapped_column(String(36), ForeignKey("trips.id"), index=True)
    price: Mapped[int] = mapped_column(Integer)

    status: Mapped[str] = mapped_column(String(12), default="BOOKED", index=True)       # BOOKED, CANCELLED, REFUNDED
    payment_type: Mapped[str] = mapped_column(String(10), default="CASH")               # CASH, CARD, UPI
    payment_status: Mapped[str] = mapped_column(String(12), default="PENDING")          # PENDING, COMPLETED, REFUNDED, FAILED

    qr_code: Mapped[str] = mapped_column(String(80), unique=True, index=True)          # boarding token
    passenger_name: Mapped[str] = mapped_column(String(200))
    passenger_phone: Mapped[str] = mapped_column(String(40), index=True)

    # sold by a kiosk or by a vendor at the counter
    machine_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("machines.id"), nullable=True, index=True)
    vendor_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("vendors.id"), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                                                 onupdate=lambda: datetime.now(timezone.utc))
