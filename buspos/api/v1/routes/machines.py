from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from buspos.db.session import get_db
from buspos.api.deps import get_optional_user, require_roles
from buspos.core.errors import Unauthorized, Forbidden
from buspos.models.machine import Machine
from buspos.models.user import User
from buspos.schemas.catalog import MachineIn, MachinePatch, MachineSync
from buspos.services import catalog_service, trip_service

router = APIRouter(tags=["machines"])


def machine_out(m: Machine) -> dict:
    return {
        "id": m.id,
        "name": m.name,
        "location": m.location,
        "routeId": m.route_id,
        "isActive": m.is_active,
        "lastSyncAt": m.last_sync_at.isoformat() if m.last_sync_at else None,
    }


@router.get("/machines")
def list_machines(id: str | None = None, public: bool = False, db: Session = Depends(get_db),
                  me: User | None = Depends(get_optional_user)):
    if public:
        # kiosk boot screen: active machines only, no session
        if id:
            m = catalog_service.get_machine(db, id)
            return machine_out(m)
        return [machine_out(m) for m in catalog_service.list_machines(db) if m.is_active]

    if me is None:
        raise Unauthorized("Unauthorized")
    if me.role != "ADMIN":
        raise Forbidden("Forbidden")
    if id:
        return machine_out(catalog_service.get_machine(db, id))
    return [machine_out(m) for m in catalog_service.list_machines(db)]


@router.post("/machines", status_code=201)
def create_machine(body: MachineIn, db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    m = catalog_service.create_machine(db, me, body.name, body.location, body.routeId, body.isActive)
    return machine_out(m)


@router.put("/machines")
def update_machine(body: MachinePatch, db: Session = Depends(get_db), me: User = Depends(require_roles("ADMIN"))):
    m = catalog_service.update_machine(db, me, body.id, {
        "name": body.name,
        "location": body.location,
        "route_id": body.routeId,
        "is_active": body.isActive,
    })
    return machine_out(m)


@router.patch("/machines")
def sync_machine(body: MachineSync, db: Session = Depends(get_db)):
    return machine_out(catalog_service.touch_machine(db, body.id, body.lastSyncAt))


@router.get("/machines/{machine_id}/trips")
def machine_trips(machine_id: str, timeSlot: str | None = None, busType: str | None = None,
                  db: Session = Depends(get_db)):
    return trip_service.machine_trips(db, machine_id, time_slot=timeSlot, bus_type=busType)
