from fastapi import APIRouter, BackgroundTasks, Depends, Response
from sqlalchemy.orm import Session

from buspos.db.session import get_db
from buspos.api.deps import get_current_user, get_optional_user, require_roles
from buspos.core.errors import Unauthorized
from buspos.models.bus import Bus
from buspos.models.route import Route
from buspos.models.ticket import Ticket
from buspos.models.trip import Trip
from buspos.models.user import User
from buspos.realtime import publish_seat_update
from buspos.schemas.ticket import TicketPurchase, TicketCancel, TicketStatusChange
from buspos.services import booking_service
from buspos.services.ticket_service import render_qr_png_bytes, render_ticket_pdf_bytes

router = APIRouter(tags=["tickets"])


def ticket_out(db: Session, t: Ticket) -> dict:
    seat = booking_service.ticket_seat(db, t.id)
    trip = db.get(Trip, t.trip_id)
    bus = db.get(Bus, trip.bus_id) if trip else None
    route = db.get(Route, bus.route_id) if bus else None
    return {
        "id": t.id,
        "tripId": t.trip_id,
        "price": t.price,
        "status": t.status,
        "paymentType": t.payment_type,
        "paymentStatus": t.payment_status,
        "qrCode": t.qr_code,
        "passengerName": t.passenger_name,
        "passengerPhone": t.passenger_phone,
        "machineId": t.machine_id,
        "vendorId": t.vendor_id,
        "createdAt": t.created_at.isoformat(),
        "seat": {"id": seat.id, "seatNumber": str(seat.seat_number)} if seat else None,
        "trip": {
            "departureTime": trip.departure_time.isoformat(),
            "arrivalTime": trip.arrival_time.isoformat(),
            "bus": {
                "busNumber": bus.bus_number,
                "busType": bus.bus_type,
                "route": {"source": route.source, "destination": route.destination} if route else None,
            } if bus else None,
        } if trip else None,
    }


def _push_seat(background: BackgroundTasks, db: Session, ticket: Ticket, seat_id: str | None,
               seat_number: int | None, status: str):
    trip = db.get(Trip, ticket.trip_id)
    background.add_task(publish_seat_update, ticket.trip_id, seat_id, seat_number, status,
                        trip.available_seats if trip else 0)


@router.post("/tickets", status_code=201)
def purchase(body: TicketPurchase, background: BackgroundTasks, db: Session = Depends(get_db),
             me: User | None = Depends(get_optional_user)):
    # kiosks sell without a session; everyone else must be counter staff
    if not body.machineId and (me is None or me.role not in ("VENDOR", "ADMIN")):
        raise Unauthorized("Unauthorized")

    ticket = booking_service.purchase_ticket(
        db,
        trip_id=body.tripId,
        seat_id=body.seatId,
        passenger_name=body.passengerName,
        passenger_phone=body.passengerPhone,
        payment_type=body.paymentType,
        price=body.price,
        qr_code=body.qrCode,
        machine_id=body.machineId,
        seller=me if not body.machineId else None,
    )
    seat = booking_service.ticket_seat(db, ticket.id)
    _push_seat(background, db, ticket, seat.id if seat else None, seat.seat_number if seat else None, "BOOKED")
    return ticket_out(db, ticket)


@router.get("/tickets")
def list_tickets(id: str | None = None, tripId: str | None = None, phone: str | None = None,
                 db: Session = Depends(get_db), me: User = Depends(get_current_user)):
    if id:
        return ticket_out(db, booking_service.get_ticket(db, id))
    return [ticket_out(db, t) for t in booking_service.list_tickets(db, trip_id=tripId, phone=phone)]


@router.put("/tickets")
def change_status(body: TicketStatusChange, background: BackgroundTasks, db: Session = Depends(get_db),
                  me: User = Depends(require_roles("VENDOR", "ADMIN"))):
    seat = booking_service.ticket_seat(db, body.id)
    seat_id, seat_number = (seat.id, seat.seat_number) if seat else (None, None)
    ticket = booking_service.change_ticket_status(db, body.id, body.status, actor=me.id)
    _push_seat(background, db, ticket, seat_id, seat_number, "AVAILABLE")
    return ticket_out(db, ticket)


@router.post("/tickets/cancel")
def cancel(body: TicketCancel, background: BackgroundTasks, db: Session = Depends(get_db),
           me: User = Depends(require_roles("VENDOR", "ADMIN"))):
    seat = booking_service.ticket_seat(db, body.ticketId)
    seat_id, seat_number = (seat.id, seat.seat_number) if seat else (None, None)
    ticket = booking_service.cancel_ticket(db, body.ticketId, actor=me.id)
    _push_seat(background, db, ticket, seat_id, seat_number, "AVAILABLE")
    return {"message": "Ticket cancelled successfully", "ticket": ticket_out(db, ticket)}


@router.get("/tickets/{ticket_id}/qr")
def ticket_qr(ticket_id: str, db: Session = Depends(get_db)):
    ticket = booking_service.get_ticket(db, ticket_id)
    return Response(content=render_qr_png_bytes(ticket.qr_code), media_type="image/png")


@router.get("/tickets/{ticket_id}/pdf")
def ticket_pdf(ticket_id: str, db: Session = Depends(get_db)):
    t = booking_service.get_ticket(db, ticket_id)
    info = ticket_out(db, t)
    trip = info["trip"] or {}
    bus = trip.get("bus") or {}
    route = bus.get("route") or {}
    pdf = render_ticket_pdf_bytes(
        qr_code=t.qr_code,
        passenger_name=t.passenger_name,
        passenger_phone=t.passenger_phone,
        route_from=route.get("source", ""),
        route_to=route.get("destination", ""),
        departure=trip.get("departureTime", ""),
        arrival=trip.get("arrivalTime", ""),
        bus_number=bus.get("busNumber", ""),
        seat_number=info["seat"]["seatNumber"] if info["seat"] else "-",
        price=t.price,
        status=t.status,
        payment_type=t.payment_type,
        payment_status=t.payment_status,
    )
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="ticket-{t.qr_code}.pdf"'},
    )
