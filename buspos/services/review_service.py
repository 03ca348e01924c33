import uuid
import logging
from sqlalchemy.orm import Session

from buspos.core.errors import NotFound, ValidationError, Conflict
from buspos.models.bus import Bus
from buspos.models.review import Review
from buspos.models.route import Route
from buspos.models.ticket import Ticket
from buspos.models.trip import Trip

logger = logging.getLogger(__name__)


def create_review(db: Session, ticket_id: str, rating: int, review: str | None = None) -> Review:
    if not ticket_id or rating is None:
        raise ValidationError("Ticket ID and rating are required")
    if rating < 1 or rating > 5:
        raise ValidationError("Rating must be between 1 and 5")
    if not db.get(Ticket, ticket_id):
        raise NotFound("Ticket not found")
    if db.query(Review).filter(Review.ticket_id == ticket_id).first():
        raise Conflict("Review already exists for this ticket")

    row = Review(id=str(uuid.uuid4()), ticket_id=ticket_id, rating=rating, review=review or None)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("review %s for ticket %s (%d stars)", row.id, ticket_id, rating)
    return row


def list_reviews(db: Session) -> list[dict]:
    rows = (
        db.query(Review, Ticket, Trip, Bus, Route)
        .join(Ticket, Ticket.id == Review.ticket_id)
        .join(Trip, Trip.id == Ticket.trip_id)
        .join(Bus, Bus.id == Trip.bus_id)
        .join(Route, Route.id == Bus.route_id)
        .order_by(Review.created_at.desc())
        .all()
    )
    return [{
        "id": r.id,
        "ticketId": r.ticket_id,
        "rating": r.rating,
        "review": r.review,
        "createdAt": r.created_at.isoformat(),
        "ticket": {
            "id": t.id,
            "passengerName": t.passenger_name,
            "trip": {
                "id": trip.id,
                "departureTime": trip.departure_time.isoformat(),
                "bus": {
                    "busNumber": bus.bus_number,
                    "route": {"name": route.name, "source": route.source, "destination": route.destination},
                },
            },
        },
    } for r, t, trip, bus, route in rows]
