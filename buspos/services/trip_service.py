import uuid
import logging
from datetime import datetime, timedelta, timezone
from sqlalchemy.orm import Session
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from buspos.core.errors import NotFound, ValidationError
from buspos.models.bus import Bus
from buspos.models.machine import Machine
from buspos.models.route import Route
from buspos.models.seat import Seat
from buspos.models.trip import Trip, TRIP_STATUSES
from buspos.models.user import User
from buspos.services.audit_service import log_audit

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_SEATS = 40

FARE_MULTIPLIERS = {
    "AC": 1.5,
    "AC_SLEEPER": 1.5,
    "AC_SEATER": 1.5,
    "SLEEPER": 1.3,
}

TIME_SLOTS = ("MORNING", "AFTERNOON", "EVENING")


def calculate_fare(base_price: int, bus_type: str | None = None) -> int:
    return int(round(base_price * FARE_MULTIPLIERS.get(bus_type or "", 1)))


def _seat_rows(trip_id: str, total: int) -> list[Seat]:
    return [Seat(id=str(uuid.uuid4()), trip_id=trip_id, seat_number=n, status="AVAILABLE") for n in range(1, total + 1)]


def as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value.astimezone(timezone.utc)


def create_trip(db: Session, actor: User, bus_id: str, departure_time: datetime, arrival_time: datetime,
                status: str = "SCHEDULED") -> Trip:
    departure_time, arrival_time = as_utc(departure_time), as_utc(arrival_time)
    if arrival_time <= departure_time:
        raise ValidationError("Arrival time must be after departure time")
    if status not in TRIP_STATUSES:
        raise ValidationError("Invalid trip status")
    bus = db.get(Bus, bus_id)
    if not bus:
        raise NotFound("Bus not found")

    trip = Trip(
        id=str(uuid.uuid4()),
        bus_id=bus.id,
        departure_time=departure_time,
        arrival_time=arrival_time,
        status=status,
        available_seats=bus.total_seats,
    )
    db.add(trip)
    db.add_all(_seat_rows(trip.id, bus.total_seats))
    log_audit(db, actor.id, "trip.create", "trip", trip.id, {"busId": bus.id, "seats": bus.total_seats})
    db.commit()
    db.refresh(trip)
    return trip


def list_seats(db: Session, trip_id: str) -> list[Seat]:
    """Seats of a trip by number; trips created without seat rows get 1..N on first read."""
    trip = db.get(Trip, trip_id)
    if not trip:
        raise NotFound("Trip not found")

    seats = db.query(Seat).filter(Seat.trip_id == trip_id).order_by(Seat.seat_number.asc()).all()
    if seats:
        return seats

    bus = db.get(Bus, trip.bus_id)
    total = (bus.total_seats if bus else 0) or DEFAULT_TOTAL_SEATS
    logger.warning("No seats found for trip %s. Creating %d default seats.", trip_id, total)
    db.add_all(_seat_rows(trip_id, total))
    try:
        db.commit()
    except IntegrityError:
        # another first read created them
        db.rollback()
    return db.query(Seat).filter(Seat.trip_id == trip_id).order_by(Seat.seat_number.asc()).all()


def get_trip(db: Session, trip_id: str) -> Trip:
    trip = db.get(Trip, trip_id)
    if not trip:
        raise NotFound("Trip not found")
    return trip


def list_trips(db: Session, bus_id: str | None = None, now: datetime | None = None) -> list[Trip]:
    q = db.query(Trip)
    if bus_id:
        now = now or datetime.now(timezone.utc)
        q = q.filter(Trip.bus_id == bus_id, Trip.departure_time >= now)
    return q.order_by(Trip.departure_time.asc()).all()


def search_public_trips(db: Session, route_id: str, now: datetime | None = None) -> list[dict]:
    """Future scheduled trips of active buses on a route, with the computed fare."""
    route = db.get(Route, route_id)
    if not route:
        raise NotFound("Route not found")
    now = now or datetime.now(timezone.utc)

    rows = (
        db.query(Trip, Bus)
        .join(Bus, Bus.id == Trip.bus_id)
        .filter(
            Bus.route_id == route_id,
            Bus.is_active == True,
            Trip.status == "SCHEDULED",
            Trip.departure_time > now,
        )
        .order_by(Trip.departure_time.asc())
        .all()
    )
    return [{
        "id": t.id,
        "departureTime": t.departure_time.isoformat(),
        "availableSeats": t.available_seats,
        "fare": calculate_fare(route.base_price, bus.bus_type),
        "bus": {"id": bus.id, "name": bus.bus_type or "Bus", "busNumber": bus.bus_number or "N/A"},
        "route": {"id": route.id, "name": route.name, "source": route.source, "destination": route.destination},
    } for t, bus in rows]


def _slot_window(time_slot: str, now: datetime) -> tuple[datetime, datetime]:
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    noon = midnight.replace(hour=12)
    five_pm = midnight.replace(hour=17)
    if time_slot == "MORNING":
        return now, noon
    if time_slot == "AFTERNOON":
        return max(now, noon), five_pm
    return max(now, five_pm), midnight + timedelta(days=1)


def machine_trips(db: Session, machine_id: str, time_slot: str | None = None, bus_type: str | None = None,
                  now: datetime | None = None) -> list[dict]:
    machine = db.get(Machine, machine_id)
    if not machine:
        raise NotFound("Machine not found")
    route = db.get(Route, machine.route_id)
    now = now or datetime.now(timezone.utc)

    q = (
        db.query(Trip, Bus)
        .join(Bus, Bus.id == Trip.bus_id)
        .filter(Bus.route_id == machine.route_id, Trip.status == "SCHEDULED")
    )
    if time_slot:
        if time_slot not in TIME_SLOTS:
            raise ValidationError("timeSlot must be one of MORNING, AFTERNOON, EVENING")
        start, end = _slot_window(time_slot, now)
        q = q.filter(Trip.departure_time >= start, Trip.departure_time < end)
    else:
        q = q.filter(Trip.departure_time >= now)
    if bus_type:
        q = q.filter(Bus.bus_type == bus_type)

    rows = q.order_by(Trip.departure_time.asc()).all()
    logger.debug("machine %s: %d trips on route %s", machine_id, len(rows), machine.route_id)

    vendor_names = _vendor_names(db, {bus.vendor_id for _, bus in rows if bus.vendor_id})
    return [{
        "id": t.id,
        "departureTime": t.departure_time.isoformat(),
        "arrivalTime": t.arrival_time.isoformat(),
        "availableSeats": t.available_seats,
        "bus": {
            "id": bus.id,
            "busNumber": bus.bus_number,
            "busType": bus.bus_type,
            "totalSeats": bus.total_seats,
            "vendor": {"name": vendor_names.get(bus.vendor_id)},
            "route": {"source": route.source if route else None, "destination": route.destination if route else None},
        },
        "fare": route.base_price if route else 0,
    } for t, bus in rows]


def _vendor_names(db: Session, vendor_ids: set) -> dict:
    from buspos.models.vendor import Vendor
    if not vendor_ids:
        return {}
    return {v.id: v.name for v in db.query(Vendor).filter(Vendor.id.in_(vendor_ids)).all()}


def booked_seat_count(db: Session, trip_id: str) -> int:
    return db.execute(
        select(func.count(Seat.id)).where(Seat.trip_id == trip_id, Seat.status == "BOOKED")
    ).scalar_one()
