from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from buspos.db.session import get_db
from buspos.api.deps import get_current_user, require_roles
from buspos.models.bus import Bus
from buspos.models.route import Route
from buspos.models.trip import Trip
from buspos.models.user import User
from buspos.schemas.catalog import TripIn
from buspos.services import trip_service

router = APIRouter(tags=["trips"])


def trip_out(db: Session, t: Trip) -> dict:
    bus = db.get(Bus, t.bus_id)
    route = db.get(Route, bus.route_id) if bus else None
    return {
        "id": t.id,
        "busId": t.bus_id,
        "departureTime": t.departure_time.isoformat(),
        "arrivalTime": t.arrival_time.isoformat(),
        "status": t.status,
        "availableSeats": t.available_seats,
        "bus": {
            "busNumber": bus.bus_number,
            "busType": bus.bus_type,
            "totalSeats": bus.total_seats,
        } if bus else None,
        "route": {
            "id": route.id,
            "name": route.name,
            "source": route.source,
            "destination": route.destination,
        } if route else None,
    }


@router.get("/trips")
def list_trips(id: str | None = None, busId: str | None = None, db: Session = Depends(get_db),
               me: User = Depends(get_current_user)):
    if id:
        return trip_out(db, trip_service.get_trip(db, id))
    return [trip_out(db, t) for t in trip_service.list_trips(db, bus_id=busId)]


@router.post("/trips", status_code=201)
def create_trip(body: TripIn, db: Session = Depends(get_db), me: User = Depends(require_roles("VENDOR", "ADMIN"))):
    trip = trip_service.create_trip(db, me, body.busId, body.departureTime, body.arrivalTime, body.status)
    return trip_out(db, trip)
