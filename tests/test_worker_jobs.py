from datetime import datetime, timedelta, timezone

from sqlalchemy import event

from buspos.db.session import SessionLocal, engine
from buspos.models.audit_log import AuditLog
from buspos.models.trip import Trip
from buspos.services import booking_service
from buspos.tasks import worker_jobs

from conftest import make_trip, seats_of


def test_reconcile_repairs_counter_drift(db, world, booked):
    trip = db.get(Trip, world.trip.id)
    trip.available_seats = 4  # one seat is BOOKED, so this is wrong
    db.commit()

    result = worker_jobs.reconcile_available_seats(db)
    assert result == {"checked": 1, "repaired": 1}

    db.expire_all()
    assert db.get(Trip, world.trip.id).available_seats == 3
    audit = db.query(AuditLog).filter(AuditLog.action == "trip.reconcile").one()
    assert audit.entity_id == world.trip.id


def test_reconcile_leaves_consistent_trips_alone(db, world, booked):
    assert worker_jobs.reconcile_available_seats(db) == {"checked": 1, "repaired": 0}


def test_reconcile_keeps_sale_committed_mid_run(db, world, booked):
    trip = db.get(Trip, world.trip.id)
    trip.available_seats = 99
    db.commit()
    second = seats_of(db, world.trip)[1]
    sold = []

    # sell seat 2 from another session right before the reconcile job writes the counter
    def sell_before_repair(conn, cursor, statement, parameters, context, executemany):
        if sold or not statement.startswith("UPDATE trips") or "count(" not in statement:
            return
        other = SessionLocal()
        try:
            sold.append(booking_service.purchase_ticket(other, world.trip.id, second.id, "Ravi", "8888888888", "CASH"))
        finally:
            other.close()

    event.listen(engine, "before_cursor_execute", sell_before_repair)
    try:
        result = worker_jobs.reconcile_available_seats(db)
    finally:
        event.remove(engine, "before_cursor_execute", sell_before_repair)

    assert len(sold) == 1
    assert result == {"checked": 1, "repaired": 1}
    db.expire_all()
    # 4 seats, 2 booked
    assert db.get(Trip, world.trip.id).available_seats == 2


def test_complete_finished_trips(db, world):
    past = make_trip(db, world.bus, departure=datetime.now(timezone.utc) - timedelta(days=2))
    result = worker_jobs.complete_finished_trips(db)
    assert result == {"completed": 1}
    db.expire_all()
    assert db.get(Trip, past.id).status == "COMPLETED"
    assert db.get(Trip, world.trip.id).status == "SCHEDULED"
