from sqlalchemy import String, Integer, DateTime, Boolean, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from buspos.db.session import Base

BUS_TYPES = ("STANDARD", "AC", "SLEEPER", "AC_SLEEPER", "AC_SEATER")

class Bus(Base):
    __tablename__ = "buses"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    bus_number: Mapped[str] = mapped_column(String(30), unique=True, index=True)
    route_id: Mapped[str] = mapped_column(String(36), ForeignKey("routes.id"), index=True)
    vendor_id: Mapped[str | None] = mapped_column(String(36), ForeignKey("vendors.id"), nullable=True, index=True)
    total_seats: Mapped[int] = mapped_column(Integer, default=40)
    bus_type: Mapped[str] = mapped_column(String(20), default="STANDARD")
    amenities_csv: Mapped[str] = mapped_column(String(600), default="")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @property
    def amenities(self):
        return [s.strip() for s in (self.amenities_csv or "").split(",") if s.strip()]
