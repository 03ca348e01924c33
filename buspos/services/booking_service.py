import uuid
import random
import logging
from datetime import datetime, timezone
from sqlalchemy.orm import Session
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from buspos.core.errors import NotFound, ValidationError, Conflict, InvalidState
from buspos.models.bus import Bus
from buspos.models.machine import Machine
from buspos.models.route import Route
from buspos.models.seat import Seat
from buspos.models.ticket import Ticket, PAYMENT_TYPES
from buspos.models.transaction import Transaction
from buspos.models.trip import Trip
from buspos.models.user import User
from buspos.models.vendor import Vendor
from buspos.services.audit_service import log_audit
from buspos.services.trip_service import calculate_fare

logger = logging.getLogger(__name__)

REFUNDABLE_STATUSES = ("CANCELLED", "REFUNDED")


def make_qr_code() -> str:
    ms = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"TICKET-{ms}-{random.randint(0, 9999)}"


def purchase_ticket(
    db: Session,
    trip_id: str,
    seat_id: str,
    passenger_name: str,
    passenger_phone: str,
    payment_type: str,
    price: int | None = None,
    qr_code: str | None = None,
    machine_id: str | None = None,
    seller: User | None = None,
) -> Ticket:
    """Sell one seat. Ticket, seat claim, counter, payment row and audit commit together."""
    if not trip_id or not seat_id or not passenger_name or not passenger_phone:
        raise ValidationError("All fields are required")
    if payment_type not in PAYMENT_TYPES:
        raise ValidationError("paymentType must be one of CASH, CARD, UPI")
    if price is not None and price < 0:
        raise ValidationError("price must be >= 0")

    machine = None
    if machine_id:
        machine = db.get(Machine, machine_id)
        if not machine:
            raise NotFound("Machine not found")
        if not machine.is_active:
            raise InvalidState("Machine is not active")

    seat = db.execute(select(Seat).where(Seat.id == seat_id).with_for_update()).scalar_one_or_none()
    if not seat:
        raise NotFound("Seat not found")
    if seat.trip_id != trip_id:
        raise ValidationError("Seat does not belong to this trip")

    trip = db.execute(select(Trip).where(Trip.id == trip_id).with_for_update()).scalar_one_or_none()
    if not trip:
        raise NotFound("Trip not found")
    if trip.status != "SCHEDULED":
        raise InvalidState("Trip is not open for booking")
    if seat.status != "AVAILABLE":
        raise Conflict("Seat is not available")

    if price is None:
        bus = db.get(Bus, trip.bus_id)
        route = db.get(Route, bus.route_id) if bus else None
        price = calculate_fare(route.base_price if route else 0, bus.bus_type if bus else None)

    vendor_id = None
    if seller is not None and seller.role == "VENDOR":
        vendor = db.query(Vendor).filter(Vendor.user_id == seller.id).first()
        vendor_id = vendor.id if vendor else None

    ticket = Ticket(
        id=str(uuid.uuid4()),
        trip_id=trip.id,
        price=int(price),
        status="BOOKED",
        payment_type=payment_type,
        payment_status="COMPLETED",
        qr_code=qr_code or make_qr_code(),
        passenger_name=passenger_name,
        passenger_phone=passenger_phone,
        machine_id=machine.id if machine else None,
        vendor_id=vendor_id,
    )
    db.add(ticket)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise Conflict("QR code already in use")

    # Losing a race here means another sale took the seat after our read.
    claimed = db.execute(
        update(Seat)
        .where(Seat.id == seat.id, Seat.status == "AVAILABLE")
        .values(status="BOOKED", ticket_id=ticket.id)
    ).rowcount
    if claimed != 1:
        db.rollback()
        raise Conflict("Seat is not available")

    db.execute(update(Trip).where(Trip.id == trip.id).values(available_seats=Trip.available_seats - 1))
    db.add(Transaction(
        id=str(uuid.uuid4()),
        ticket_id=ticket.id,
        amount=ticket.price,
        type="PAYMENT",
        status="COMPLETED",
        payment_method=payment_type,
        reference_id="PAY-" + ticket.qr_code,
    ))
    actor = seller.id if seller is not None else (f"machine:{machine.id}" if machine else "anonymous")
    log_audit(db, actor, "ticket.purchase", "ticket", ticket.id,
              {"tripId": trip.id, "seatNumber": seat.seat_number, "price": ticket.price, "paymentType": payment_type})
    db.commit()
    db.refresh(ticket)
    return ticket


def cancel_ticket(db: Session, ticket_id: str, actor: str = "system", final_status: str = "CANCELLED") -> Ticket:
    """Cancel a BOOKED ticket: release its seat, restore the counter, record the refund.

    Of two concurrent cancels for the same ticket exactly one wins; the other gets
    InvalidState and writes nothing.
    """
    if not ticket_id:
        raise ValidationError("Ticket ID is required")
    if final_status not in REFUNDABLE_STATUSES:
        raise ValidationError("Invalid target status")

    ticket = db.execute(select(Ticket).where(Ticket.id == ticket_id).with_for_update()).scalar_one_or_none()
    if not ticket:
        raise NotFound("Ticket not found")
    if ticket.status != "BOOKED":
        db.rollback()
        raise InvalidState("Ticket is already cancelled or refunded")

    won = db.execute(
        update(Ticket)
        .where(Ticket.id == ticket_id, Ticket.status == "BOOKED")
        .values(status=final_status, payment_status="REFUNDED", updated_at=datetime.now(timezone.utc))
        .execution_options(synchronize_session=False)
    ).rowcount
    if won != 1:
        db.rollback()
        raise InvalidState("Ticket is already cancelled or refunded")

    seat = db.execute(select(Seat).where(Seat.ticket_id == ticket_id).with_for_update()).scalar_one_or_none()
    if seat:
        seat.status = "AVAILABLE"
        seat.ticket_id = None
    else:
        logger.warning("ticket %s had no seat attached at cancellation", ticket_id)

    db.execute(update(Trip).where(Trip.id == ticket.trip_id).values(available_seats=Trip.available_seats + 1))
    db.add(Transaction(
        id=str(uuid.uuid4()),
        ticket_id=ticket.id,
        amount=ticket.price,
        type="REFUND",
        status="COMPLETED",
        payment_method=ticket.payment_type,
        reference_id="REFUND-" + ticket.qr_code,
    ))
    action = "ticket.refund" if final_status == "REFUNDED" else "ticket.cancel"
    log_audit(db, actor, action, "ticket", ticket.id,
              {"status": final_status, "seatNumber": seat.seat_number if seat else None, "refund": ticket.price})
    db.commit()
    db.refresh(ticket)
    return ticket


def change_ticket_status(db: Session, ticket_id: str, status: str, actor: str = "system") -> Ticket:
    """Staff status change. Moving off BOOKED goes through the cancellation procedure."""
    if not ticket_id or not status:
        raise ValidationError("Ticket ID and status are required")
    if status == "BOOKED":
        raise InvalidState("A ticket cannot be moved back to BOOKED")
    if status not in REFUNDABLE_STATUSES:
        raise ValidationError("Invalid status")
    return cancel_ticket(db, ticket_id, actor=actor, final_status=status)


def get_ticket(db: Session, ticket_id: str) -> Ticket:
    ticket = db.get(Ticket, ticket_id)
    if not ticket:
        raise NotFound("Ticket not found")
    return ticket


def list_tickets(db: Session, trip_id: str | None = None, phone: str | None = None, limit: int = 50) -> list[Ticket]:
    q = db.query(Ticket)
    if trip_id:
        q = q.filter(Ticket.trip_id == trip_id)
    if phone:
        q = q.filter(Ticket.passenger_phone == phone)
    q = q.order_by(Ticket.created_at.desc())
    if not trip_id and not phone:
        q = q.limit(limit)
    return q.all()


def ticket_seat(db: Session, ticket_id: str) -> Seat | None:
    return db.query(Seat).filter(Seat.ticket_id == ticket_id).first()
