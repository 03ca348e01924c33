import uuid
import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, ProgrammingError

from buspos.db.session import SessionLocal
from buspos.core.security import hash_password
from buspos.models.bus import Bus
from buspos.models.machine import Machine
from buspos.models.route import Route
from buspos.models.seat import Seat
from buspos.models.trip import Trip
from buspos.models.user import User
from buspos.models.vendor import Vendor

logger = logging.getLogger(__name__)


def ensure_user(db: Session, email: str, password: str, role: str, name: str) -> User:
    u = db.query(User).filter(User.email == email).first()
    if u:
        return u
    u = User(
        id=str(uuid.uuid4()),
        email=email,
        name=name,
        role=role,
        password_hash=hash_password(password),
        is_active=True,
    )
    db.add(u)
    db.commit()
    return u


def ensure_vendor(db: Session, user: User, name: str, phone: str, address: str) -> Vendor:
    v = db.query(Vendor).filter(Vendor.user_id == user.id).first()
    if v:
        return v
    v = Vendor(id=str(uuid.uuid4()), user_id=user.id, name=name, email=user.email, phone=phone, address=address)
    db.add(v)
    db.commit()
    return v


def run(db=None):
    own = db is None
    if own:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM users LIMIT 1"))
        except (ProgrammingError, OperationalError):
            db.rollback()
            logger.warning("[seed] users table not found yet. Skipping seeding (run alembic upgrade head).")
            return

        ensure_user(db, "admin@buspos.com", "admin123", "ADMIN", "Admin User")
        vendor_user = ensure_user(db, "vendor@buspos.com", "vendor123", "VENDOR", "Test Vendor")
        vendor = ensure_vendor(db, vendor_user, "Test Vendor", "1234567890", "123 Test Street")

        route = db.query(Route).filter(Route.name == "Delhi to Mumbai").first()
        if not route:
            route = Route(id=str(uuid.uuid4()), name="Delhi to Mumbai", source="Delhi", destination="Mumbai",
                          distance=1400, base_price=800)
            db.add(route)
            db.commit()

        bus = db.query(Bus).filter(Bus.bus_number == "BUS001").first()
        if not bus:
            bus = Bus(id=str(uuid.uuid4()), bus_number="BUS001", route_id=route.id, vendor_id=vendor.id,
                      total_seats=40, bus_type="AC", amenities_csv="WiFi,Charging Point,Water Bottle",
                      is_active=True)
            db.add(bus)
            db.commit()

        if not db.query(Trip).filter(Trip.bus_id == bus.id).first():
            departure = (datetime.now(timezone.utc) + timedelta(days=1)).replace(minute=0, second=0, microsecond=0)
            trip = Trip(id=str(uuid.uuid4()), bus_id=bus.id, departure_time=departure,
                        arrival_time=departure + timedelta(hours=14), status="SCHEDULED",
                        available_seats=bus.total_seats)
            db.add(trip)
            db.add_all([
                Seat(id=str(uuid.uuid4()), trip_id=trip.id, seat_number=n, status="AVAILABLE")
                for n in range(1, bus.total_seats + 1)
            ])
            db.commit()

        if not db.query(Machine).filter(Machine.route_id == route.id).first():
            db.add(Machine(id=str(uuid.uuid4()), name="Delhi ISBT Kiosk 1", location="Kashmere Gate ISBT",
                           route_id=route.id, is_active=True))
            db.commit()

        logger.info("[seed] done")
    finally:
        if own:
            db.close()


if __name__ == "__main__":
    from buspos.core.logging import configure_logging
    configure_logging()
    run()
