import logging
from datetime import datetime, timezone
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session
from sqlalchemy.exc import ProgrammingError
from buspos.db.session import SessionLocal
from buspos.models.bus import Bus
from buspos.models.seat import Seat
from buspos.models.trip import Trip
from buspos.services.audit_service import log_audit

logger = logging.getLogger(__name__)


def _recount():
    """availableSeats as the database sees it right now: bus capacity minus BOOKED seats."""
    booked = (
        select(func.count(Seat.id))
        .where(Seat.trip_id == Trip.id, Seat.status == "BOOKED")
        .scalar_subquery()
    )
    total = select(Bus.total_seats).where(Bus.id == Trip.bus_id).scalar_subquery()
    return total - booked


def reconcile_available_seats(db: Session | None = None) -> dict:
    """Recount BOOKED seats per trip and repair the denormalized counter where it drifted.

    The trip row is locked first and the new value is computed inside the UPDATE itself.
    """
    own = db is None
    db = db or SessionLocal()
    try:
        try:
            trip_ids = [r[0] for r in db.query(Trip.id).all()]
        except ProgrammingError:
            # DB not migrated yet; don't crash the worker.
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        recount = _recount()
        repaired = 0
        for trip_id in trip_ids:
            counter = db.execute(select(Trip.available_seats).where(Trip.id == trip_id).with_for_update()).scalar()
            changed = db.execute(
                update(Trip)
                .where(Trip.id == trip_id, Trip.available_seats != recount)
                .values(available_seats=recount)
                .execution_options(synchronize_session=False)
            ).rowcount
            if not changed:
                continue
            expected = db.execute(select(Trip.available_seats).where(Trip.id == trip_id)).scalar()
            logger.warning("trip %s availableSeats drift: counter=%s recount=%s", trip_id, counter, expected)
            log_audit(db, "system", "trip.reconcile", "trip", trip_id, {"from": counter, "to": expected})
            repaired += 1
        db.commit()
        return {"checked": len(trip_ids), "repaired": repaired}
    finally:
        if own:
            db.close()


def complete_finished_trips(db: Session | None = None, now: datetime | None = None) -> dict:
    """Mark SCHEDULED trips whose arrival time has passed as COMPLETED."""
    own = db is None
    db = db or SessionLocal()
    now = now or datetime.now(timezone.utc)
    try:
        try:
            done = db.query(Trip).filter(Trip.status == "SCHEDULED", Trip.arrival_time < now).all()
        except ProgrammingError:
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        for t in done:
            t.status = "COMPLETED"
            log_audit(db, "system", "trip.complete", "trip", t.id)
        db.commit()
        if done:
            logger.info("completed %d finished trips", len(done))
        return {"completed": len(done)}
    finally:
        if own:
            db.close()
