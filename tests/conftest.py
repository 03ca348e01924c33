import os
import uuid
import tempfile
from types import SimpleNamespace
from datetime import datetime, timedelta, timezone

# Settings are read at import time; point them at a throwaway SQLite file first.
_DB_DIR = tempfile.mkdtemp(prefix="buspos-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient

from buspos.db.base import Base
from buspos.db.session import engine, SessionLocal
from buspos.core.security import hash_password, create_session_token
from buspos.main import app
from buspos.models.bus import Bus
from buspos.models.machine import Machine
from buspos.models.route import Route
from buspos.models.seat import Seat
from buspos.models.trip import Trip
from buspos.models.user import User
from buspos.models.vendor import Vendor
from buspos.services import booking_service


@pytest.fixture(autouse=True)
def _schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    engine.dispose()


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def make_user(db, email, role, name="Test"):
    u = User(id=str(uuid.uuid4()), name=name, email=email, role=role,
             password_hash=hash_password("secret123"), is_active=True)
    db.add(u)
    db.commit()
    return u


def make_trip(db, bus, departure=None, status="SCHEDULED", with_seats=True):
    departure = departure or datetime.now(timezone.utc) + timedelta(days=1)
    trip = Trip(id=str(uuid.uuid4()), bus_id=bus.id, departure_time=departure,
                arrival_time=departure + timedelta(hours=14), status=status, available_seats=bus.total_seats)
    db.add(trip)
    if with_seats:
        db.add_all([Seat(id=str(uuid.uuid4()), trip_id=trip.id, seat_number=n, status="AVAILABLE")
                    for n in range(1, bus.total_seats + 1)])
    db.commit()
    return trip


def auth(user):
    return {"Authorization": f"Bearer {create_session_token(user.id, user.role)}"}


def seats_of(db, trip):
    return db.query(Seat).filter(Seat.trip_id == trip.id).order_by(Seat.seat_number.asc()).all()


@pytest.fixture
def world(db):
    """Admin, a vendor with one AC bus (4 seats) on Delhi-Mumbai, a trip tomorrow and a kiosk."""
    admin = make_user(db, "admin@test.local", "ADMIN", "Admin")
    vendor_user = make_user(db, "vendor@test.local", "VENDOR", "Vendor")
    rider = make_user(db, "rider@test.local", "USER", "Rider")
    vendor = Vendor(id=str(uuid.uuid4()), user_id=vendor_user.id, name="Sharma Travels", email=vendor_user.email)
    route = Route(id=str(uuid.uuid4()), name="Delhi to Mumbai", source="Delhi", destination="Mumbai",
                  distance=1400, base_price=800)
    db.add_all([vendor, route])
    db.commit()
    bus = Bus(id=str(uuid.uuid4()), bus_number="BUS001", route_id=route.id, vendor_id=vendor.id,
              total_seats=4, bus_type="AC", is_active=True)
    db.add(bus)
    db.commit()
    trip = make_trip(db, bus)
    machine = Machine(id=str(uuid.uuid4()), name="Kiosk 1", location="ISBT", route_id=route.id, is_active=True)
    db.add(machine)
    db.commit()
    return SimpleNamespace(admin=admin, vendor_user=vendor_user, rider=rider, vendor=vendor, route=route,
                           bus=bus, trip=trip, machine=machine)


@pytest.fixture
def booked(db, world):
    """A BOOKED ticket on seat 1 of the world trip, sold at the counter."""
    seat = seats_of(db, world.trip)[0]
    return booking_service.purchase_ticket(
        db,
        trip_id=world.trip.id,
        seat_id=seat.id,
        passenger_name="Asha",
        passenger_phone="9999999999",
        payment_type="UPI",
        seller=world.vendor_user,
    )
