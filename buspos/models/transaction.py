from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from buspos.db.session import Base

class Transaction(Base):
    """Append-only money movement for a ticket. Never updated after insert."""
    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    ticket_id: Mapped[str] = mapped_column(String(36), ForeignKey("tickets.id"), index=True)
    amount: Mapped[int] = mapped_column(Integer)
    type: Mapped[str] = mapped_column(String(10), index=True)               # PAYMENT, REFUND
    status: Mapped[str] = mapped_column(String(12), default="PENDING")      # PENDING, COMPLETED, FAILED
    payment_method: Mapped[str] = mapped_column(String(10), default="CASH")
    reference_id: Mapped[str] = mapped_column(String(120), default="")
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
