import uuid
import secrets
import logging
from datetime import datetime, timezone
from sqlalchemy.orm import Session

from buspos.core.errors import NotFound, ValidationError, Conflict
from buspos.core.security import hash_password
from buspos.models.bus import Bus, BUS_TYPES
from buspos.models.machine import Machine
from buspos.models.route import Route
from buspos.models.user import User
from buspos.models.vendor import Vendor
from buspos.services.audit_service import log_audit

logger = logging.getLogger(__name__)


# ---- routes ----

def list_routes(db: Session) -> list[Route]:
    return db.query(Route).order_by(Route.name.asc()).all()


def get_route(db: Session, route_id: str) -> Route:
    route = db.get(Route, route_id)
    if not route:
        raise NotFound("Route not found")
    return route


def _check_route_fields(distance: int | None, base_price: int | None):
    if distance is not None and distance < 0:
        raise ValidationError("distance must be >= 0")
    if base_price is not None and base_price < 0:
        raise ValidationError("basePrice must be >= 0")


def create_route(db: Session, actor: User, name: str, source: str, destination: str, distance: int,
                 base_price: int) -> Route:
    if not name or not source or not destination:
        raise ValidationError("name, source and destination are required")
    _check_route_fields(distance, base_price)
    route = Route(
        id=str(uuid.uuid4()),
        name=name.strip(),
        source=source.strip(),
        destination=destination.strip(),
        distance=int(distance),
        base_price=int(base_price),
    )
    db.add(route)
    log_audit(db, actor.id, "route.create", "route", route.id, {"name": route.name})
    db.commit()
    db.refresh(route)
    return route


def update_route(db: Session, actor: User, route_id: str, changes: dict) -> Route:
    route = get_route(db, route_id)
    _check_route_fields(changes.get("distance"), changes.get("base_price"))
    for key in ("name", "source", "destination", "distance", "base_price"):
        if changes.get(key) is not None:
            setattr(route, key, changes[key])
    log_audit(db, actor.id, "route.update", "route", route.id, {k: v for k, v in changes.items() if v is not None})
    db.commit()
    db.refresh(route)
    return route


def delete_route(db: Session, actor: User, route_id: str) -> None:
    route = get_route(db, route_id)
    buses = db.query(Bus).filter(Bus.route_id == route_id).count()
    machines = db.query(Machine).filter(Machine.route_id == route_id).count()
    if buses or machines:
        raise ValidationError("Route is still used by buses or machines")
    db.delete(route)
    log_audit(db, actor.id, "route.delete", "route", route_id)
    db.commit()


# ---- buses ----

def list_buses(db: Session, vendor_id: str | None = None) -> list[Bus]:
    q = db.query(Bus)
    if vendor_id:
        q = q.filter(Bus.vendor_id == vendor_id)
    return q.order_by(Bus.bus_number.asc()).all()


def create_bus(db: Session, actor: User, bus_number: str, route_id: str, total_seats: int = 40,
               bus_type: str = "STANDARD", amenities: list[str] | None = None, vendor_id: str | None = None) -> Bus:
    if not bus_number:
        raise ValidationError("busNumber is required")
    if total_seats < 1:
        raise ValidationError("totalSeats must be >= 1")
    if bus_type not in BUS_TYPES:
        raise ValidationError("Invalid busType")
    get_route(db, route_id)

    if actor.role == "VENDOR":
        vendor = vendor_for_user(db, actor.id)
        vendor_id = vendor.id if vendor else None
    elif vendor_id and not db.get(Vendor, vendor_id):
        raise NotFound("Vendor not found")

    if db.query(Bus).filter(Bus.bus_number == bus_number).first():
        raise Conflict("Bus number already exists")

    bus = Bus(
        id=str(uuid.uuid4()),
        bus_number=bus_number.strip(),
        route_id=route_id,
        vendor_id=vendor_id,
        total_seats=int(total_seats),
        bus_type=bus_type,
        amenities_csv=",".join(a.strip() for a in (amenities or []) if a.strip()),
        is_active=True,
    )
    db.add(bus)
    log_audit(db, actor.id, "bus.create", "bus", bus.id, {"busNumber": bus.bus_number, "routeId": route_id})
    db.commit()
    db.refresh(bus)
    return bus


# ---- vendors ----

def vendor_for_user(db: Session, user_id: str) -> Vendor | None:
    return db.query(Vendor).filter(Vendor.user_id == user_id).first()


def list_vendors(db: Session) -> list[Vendor]:
    return db.query(Vendor).order_by(Vendor.name.asc()).all()


def create_vendor(db: Session, actor: User, name: str, email: str, phone: str | None = None,
                  address: str | None = None, user_id: str | None = None, password: str | None = None) -> Vendor:
    if not name or not email:
        raise ValidationError("Missing required fields: name and email are required")

    if user_id:
        user = db.get(User, user_id)
        if not user:
            raise NotFound("User not found")
        if vendor_for_user(db, user_id):
            raise Conflict("User already has a vendor profile")
        if user.role == "USER":
            user.role = "VENDOR"
    else:
        # no account yet: open a VENDOR login for the counter
        email_l = email.strip().lower()
        if db.query(User).filter(User.email == email_l).first():
            raise Conflict("User with this email already exists")
        user = User(
            id=str(uuid.uuid4()),
            name=name,
            email=email_l,
            role="VENDOR",
            password_hash=hash_password(password or secrets.token_urlsafe(9)),
            is_active=True,
        )
        db.add(user)

    vendor = Vendor(id=str(uuid.uuid4()), user_id=user.id, name=name, email=email, phone=phone, address=address)
    db.add(vendor)
    log_audit(db, actor.id, "vendor.create", "vendor", vendor.id, {"userId": user.id})
    db.commit()
    db.refresh(vendor)
    return vendor


def update_vendor(db: Session, actor: User, vendor_id: str, changes: dict) -> Vendor:
    vendor = db.get(Vendor, vendor_id)
    if not vendor:
        raise NotFound("Vendor not found")
    for key in ("name", "email", "phone", "address"):
        if changes.get(key) is not None:
            setattr(vendor, key, changes[key])
    log_audit(db, actor.id, "vendor.update", "vendor", vendor.id, {k: v for k, v in changes.items() if v is not None})
    db.commit()
    db.refresh(vendor)
    return vendor


# ---- machines ----

def list_machines(db: Session) -> list[Machine]:
    return db.query(Machine).order_by(Machine.name.asc()).all()


def get_machine(db: Session, machine_id: str) -> Machine:
    machine = db.get(Machine, machine_id)
    if not machine:
        raise NotFound("Machine not found")
    return machine


def create_machine(db: Session, actor: User, name: str, location: str, route_id: str,
                   is_active: bool = True) -> Machine:
    if not name or not location:
        raise ValidationError("name and location are required")
    get_route(db, route_id)
    machine = Machine(id=str(uuid.uuid4()), name=name, location=location, route_id=route_id, is_active=is_active)
    db.add(machine)
    log_audit(db, actor.id, "machine.create", "machine", machine.id, {"routeId": route_id})
    db.commit()
    db.refresh(machine)
    return machine


def update_machine(db: Session, actor: User, machine_id: str, changes: dict) -> Machine:
    machine = get_machine(db, machine_id)
    if changes.get("route_id") is not None:
        get_route(db, changes["route_id"])
    for key in ("name", "location", "route_id", "is_active"):
        if changes.get(key) is not None:
            setattr(machine, key, changes[key])
    log_audit(db, actor.id, "machine.update", "machine", machine.id, {k: v for k, v in changes.items() if v is not None})
    db.commit()
    db.refresh(machine)
    return machine


def touch_machine(db: Session, machine_id: str, synced_at: datetime | None = None) -> Machine:
    """Record a kiosk heartbeat."""
    machine = get_machine(db, machine_id)
    machine.last_sync_at = synced_at or datetime.now(timezone.utc)
    db.commit()
    db.refresh(machine)
    logger.debug("machine %s synced at %s", machine_id, machine.last_sync_at)
    return machine
