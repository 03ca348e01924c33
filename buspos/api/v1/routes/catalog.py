from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from buspos.db.session import get_db
from buspos.api.deps import get_current_user, require_roles
from buspos.core.errors import NotFound, ValidationError
from buspos.models.bus import Bus
from buspos.models.user import User
from buspos.models.vendor import Vendor
from buspos.schemas.catalog import RouteIn, RoutePatch, BusIn, VendorIn, VendorPatch
from buspos.services import catalog_service
from buspos.api.v1.routes.public import route_out

router = APIRouter(tags=["catalog"])


def bus_out(b: Bus) -> dict:
    return {
        "id": b.id,
        "busNumber": b.bus_number,
        "routeId": b.route_id,
        "vendorId": b.vendor_id,
        "totalSeats": b.total_seats,
        "busType": b.bus_type,
        "amenities": b.amenities,
        "isActive": b.is_active,
    }


def vendor_out(v: Vendor) -> dict:
    return {
        "id": v.id,
        "userId": v.user_id,
        "name": v.name,
        "email": v.email,
        "phone": v.phone,
        "address": v.address,
        "createdAt": v.created_at.isoformat(),
        "updatedAt": v.updated_at.isoformat(),
    }


# ---- routes ----

@router.get("/routes")
def list_routes(db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    return [route_out(r) for r in catalog_service.list_routes(db)]


@router.post("/routes", status_code=201)
def create_route(body: RouteIn, db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    r = catalog_service.create_route(db, me, body.name, body.source, body.destination, body.distance, body.basePrice)
    return route_out(r)


@router.put("/routes")
def update_route(body: RoutePatch, db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    r = catalog_service.update_route(db, me, body.id, {
        "name": body.name,
        "source": body.source,
        "destination": body.destination,
        "distance": body.distance,
        "base_price": body.basePrice,
    })
    return route_out(r)


@router.delete("/routes")
def delete_route(id: str | None = None, db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    if not id:
        raise ValidationError("Route ID is required")
    catalog_service.delete_route(db, me, id)
    return {"ok": True}


# ---- buses ----

@router.get("/buses")
def list_buses(id: str | None = None, routeId: str | None = None, db: Session = Depends(get_db),
               me: User = Depends(get_current_user)):
    if id:
        bus = db.get(Bus, id)
        if not bus:
            raise NotFound("Bus not found")
        return bus_out(bus)
    vendor_id = None
    if me.role == "VENDOR":
        vendor = catalog_service.vendor_for_user(db, me.id)
        vendor_id = vendor.id if vendor else None
    buses = catalog_service.list_buses(db, vendor_id=vendor_id)
    if routeId:
        buses = [b for b in buses if b.route_id == routeId]
    return [bus_out(b) for b in buses]


@router.post("/buses", status_code=201)
def create_bus(body: BusIn, db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN", "VENDOR"))):
    bus = catalog_service.create_bus(db, me, body.busNumber, body.routeId, body.totalSeats, body.busType,
                                     body.amenities, body.vendorId)
    return bus_out(bus)


# ---- vendors (ADMIN; also enforced by the path gate) ----

@router.get("/vendors")
def list_vendors(db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    return [vendor_out(v) for v in catalog_service.list_vendors(db)]


@router.post("/vendors", status_code=201)
def create_vendor(body: VendorIn, db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    v = catalog_service.create_vendor(db, me, body.name, body.email, body.phone, body.address,
                                      user_id=body.userId, password=body.password)
    return vendor_out(v)


@router.put("/vendors")
def update_vendor(body: VendorPatch, db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    v = catalog_service.update_vendor(db, me, body.id, {
        "name": body.name,
        "email": body.email,
        "phone": body.phone,
        "address": body.address,
    })
    return vendor_out(v)
