import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from sqlalchemy.orm import Session
from sqlalchemy import func

from buspos.core.errors import ValidationError
from buspos.models.bus import Bus
from buspos.models.route import Route
from buspos.models.seat import Seat
from buspos.models.ticket import Ticket
from buspos.models.trip import Trip
from buspos.models.user import User
from buspos.models.vendor import Vendor

logger = logging.getLogger(__name__)

PERIODS = ("day", "week", "month", "year")


def dashboard_stats(db: Session) -> dict:
    return {
        "totalBuses": db.query(func.count(Bus.id)).scalar(),
        "activeBuses": db.query(func.count(Bus.id)).filter(Bus.is_active == True).scalar(),
        "totalRoutes": db.query(func.count(Route.id)).scalar(),
        "totalTrips": db.query(func.count(Trip.id)).scalar(),
        "totalUsers": db.query(func.count(User.id)).scalar(),
        "totalBookings": db.query(func.count(Ticket.id)).scalar(),
    }


def trip_metrics(db: Session) -> list[dict]:
    rows = (
        db.query(Trip, Bus, Route)
        .join(Bus, Bus.id == Trip.bus_id)
        .join(Route, Route.id == Bus.route_id)
        .order_by(Trip.departure_time.desc())
        .all()
    )

    tickets_by_trip = defaultdict(list)
    for t in db.query(Ticket.trip_id, Ticket.price, Ticket.status).all():
        tickets_by_trip[t.trip_id].append(t)
    booked_by_trip = dict(
        db.query(Seat.trip_id, func.count(Seat.id)).filter(Seat.status == "BOOKED").group_by(Seat.trip_id).all()
    )

    out = []
    for trip, bus, route in rows:
        tickets = tickets_by_trip.get(trip.id, [])
        revenue = sum(t.price for t in tickets)
        occupied = booked_by_trip.get(trip.id, 0)
        out.append({
            "id": trip.id,
            "bus": {
                "busNumber": bus.bus_number,
                "route": {"name": route.name, "source": route.source, "destination": route.destination},
            },
            "departureTime": trip.departure_time.isoformat(),
            "arrivalTime": trip.arrival_time.isoformat(),
            "status": trip.status,
            "availableSeats": trip.available_seats,
            "totalSeats": bus.total_seats,
            "metrics": {
                "totalPassengers": len(tickets),
                "totalRevenue": revenue,
                "occupancyRate": round(occupied / bus.total_seats * 100) if bus.total_seats else 0,
                "cancelledTickets": sum(1 for t in tickets if t.status == "CANCELLED"),
                "refundedTickets": sum(1 for t in tickets if t.status == "REFUNDED"),
                "averageTicketPrice": round(revenue / len(tickets)) if tickets else 0,
            },
        })
    return out


def period_start(period: str, now: datetime) -> datetime:
    if period == "day":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "month":
        return now - timedelta(days=30)
    if period == "year":
        return now - timedelta(days=365)
    return now - timedelta(days=7)


def sales_report(db: Session, period: str = "week", now: datetime | None = None) -> dict:
    if period not in PERIODS:
        raise ValidationError("period must be one of day, week, month, year")
    now = now or datetime.now(timezone.utc)
    since = period_start(period, now)

    rows = (
        db.query(Ticket, Route, Vendor)
        .join(Trip, Trip.id == Ticket.trip_id)
        .join(Bus, Bus.id == Trip.bus_id)
        .outerjoin(Route, Route.id == Bus.route_id)
        .outerjoin(Vendor, Vendor.id == Bus.vendor_id)
        .filter(Ticket.created_at >= since)
        .order_by(Ticket.created_at.desc())
        .all()
    )

    by_route = defaultdict(lambda: {"count": 0, "revenue": 0})
    by_vendor = defaultdict(lambda: {"count": 0, "revenue": 0})
    recent = []
    for ticket, route, vendor in rows:
        route_name = f"{route.source} to {route.destination}" if route else "Unknown Route"
        vendor_name = vendor.name if vendor else "Unknown Vendor"
        by_route[route_name]["count"] += 1
        by_route[route_name]["revenue"] += ticket.price
        by_vendor[vendor_name]["count"] += 1
        by_vendor[vendor_name]["revenue"] += ticket.price
        if len(recent) < 5:
            recent.append({
                "id": ticket.id,
                "passengerName": ticket.passenger_name,
                "routeName": route_name,
                "date": ticket.created_at.date().isoformat(),
                "amount": ticket.price,
            })

    logger.debug("sales report %s: %d tickets", period, len(rows))
    return {
        "period": period,
        "totalTickets": len(rows),
        "totalRevenue": sum(t.price for t, _, _ in rows),
        "ticketsByRoute": [{"routeName": k, **v} for k, v in by_route.items()],
        "ticketsByVendor": [{"vendorName": k, **v} for k, v in by_vendor.items()],
        "recentTickets": recent,
    }
