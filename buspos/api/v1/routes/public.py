from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from buspos.db.session import get_db
from buspos.core.errors import ValidationError
from buspos.models.route import Route
from buspos.services import catalog_service, trip_service

router = APIRouter(tags=["public"])


def route_out(r: Route) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "source": r.source,
        "destination": r.destination,
        "distance": r.distance,
        "basePrice": r.base_price,
    }


@router.get("/routes/public")
def public_routes(id: str | None = None, db: Session = Depends(get_db)):
    if id:
        return route_out(catalog_service.get_route(db, id))
    return [route_out(r) for r in catalog_service.list_routes(db)]


@router.get("/trips/public")
def public_trips(routeId: str | None = None, db: Session = Depends(get_db)):
    if not routeId:
        raise ValidationError("routeId is required")
    return trip_service.search_public_trips(db, routeId)


@router.get("/seats")
def seats(tripId: str | None = None, db: Session = Depends(get_db)):
    if not tripId:
        raise ValidationError("Trip ID is required")
    return [{
        "id": s.id,
        "seatNumber": str(s.seat_number),
        "status": s.status,
    } for s in trip_service.list_seats(db, tripId)]
