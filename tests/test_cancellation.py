import threading

import pytest

from buspos.core.errors import InvalidState, NotFound
from buspos.db.session import SessionLocal
from buspos.models.audit_log import AuditLog
from buspos.models.seat import Seat
from buspos.models.ticket import Ticket
from buspos.models.transaction import Transaction
from buspos.models.trip import Trip
from buspos.services import booking_service

from conftest import auth


def _refunds(db, ticket_id):
    return db.query(Transaction).filter(Transaction.ticket_id == ticket_id, Transaction.type == "REFUND").all()


def test_cancel_releases_seat_and_records_refund(db, world, booked):
    before = db.get(Trip, world.trip.id).available_seats

    booking_service.cancel_ticket(db, booked.id, actor=world.vendor_user.id)
    db.expire_all()

    t = db.get(Ticket, booked.id)
    assert t.status == "CANCELLED"
    assert t.payment_status == "REFUNDED"

    seat = db.query(Seat).filter(Seat.trip_id == world.trip.id, Seat.seat_number == 1).one()
    assert seat.status == "AVAILABLE"
    assert seat.ticket_id is None

    assert db.get(Trip, world.trip.id).available_seats == before + 1

    refunds = _refunds(db, booked.id)
    assert len(refunds) == 1
    r = refunds[0]
    assert r.status == "COMPLETED"
    assert r.amount == t.price
    assert r.payment_method == "UPI"
    assert r.reference_id == "REFUND-" + t.qr_code

    actions = [a.action for a in db.query(AuditLog).filter(AuditLog.entity_id == booked.id).all()]
    assert "ticket.cancel" in actions
    assert "ticket.refund" not in actions


def test_second_cancel_is_invalid_state_and_writes_nothing(db, world, booked):
    booking_service.cancel_ticket(db, booked.id)
    seats_after_first = db.get(Trip, world.trip.id).available_seats

    with pytest.raises(InvalidState):
        booking_service.cancel_ticket(db, booked.id)

    db.expire_all()
    assert len(_refunds(db, booked.id)) == 1
    assert db.get(Trip, world.trip.id).available_seats == seats_after_first
    assert db.get(Ticket, booked.id).status == "CANCELLED"


def test_cancel_unknown_ticket_is_not_found(db, world):
    with pytest.raises(NotFound):
        booking_service.cancel_ticket(db, "no-such-ticket")


def test_concurrent_cancellations_exactly_one_wins(db, world, booked):
    ticket_id = booked.id
    before = db.get(Trip, world.trip.id).available_seats
    barrier = threading.Barrier(2)
    results = []

    def worker():
        s = SessionLocal()
        try:
            barrier.wait()
            booking_service.cancel_ticket(s, ticket_id)
            results.append("ok")
        except InvalidState:
            results.append("invalid")
        finally:
            s.close()

    threads = [threading.Thread(target=worker) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(results) == ["invalid", "ok"]
    db.expire_all()
    assert len(_refunds(db, ticket_id)) == 1
    assert db.get(Trip, world.trip.id).available_seats == before + 1


def test_status_change_to_refunded_uses_cancellation(db, world, booked):
    booking_service.change_ticket_status(db, booked.id, "REFUNDED", actor=world.admin.id)
    db.expire_all()
    t = db.get(Ticket, booked.id)
    assert t.status == "REFUNDED"
    assert t.payment_status == "REFUNDED"
    assert len(_refunds(db, booked.id)) == 1
    actions = {a.action for a in db.query(AuditLog).filter(AuditLog.entity_id == booked.id).all()}
    assert actions == {"ticket.purchase", "ticket.refund"}


def test_status_change_back_to_booked_is_rejected(db, world, booked):
    booking_service.cancel_ticket(db, booked.id)
    with pytest.raises(InvalidState):
        booking_service.change_ticket_status(db, booked.id, "BOOKED")


# ---- HTTP ----

def test_cancel_endpoint(client, db, world, booked):
    r = client.post("/api/tickets/cancel", json={"ticketId": booked.id}, headers=auth(world.vendor_user))
    assert r.status_code == 200
    body = r.json()
    assert body["ticket"]["status"] == "CANCELLED"
    assert body["ticket"]["paymentStatus"] == "REFUNDED"

    again = client.post("/api/tickets/cancel", json={"ticketId": booked.id}, headers=auth(world.vendor_user))
    assert again.status_code == 409
    assert again.json() == {"error": "Ticket is already cancelled or refunded"}


def test_cancel_endpoint_errors(client, world):
    headers = auth(world.vendor_user)
    assert client.post("/api/tickets/cancel", json={}, headers=headers).status_code == 400
    missing = client.post("/api/tickets/cancel", json={"ticketId": "nope"}, headers=headers)
    assert missing.status_code == 404
    assert missing.json() == {"error": "Ticket not found"}
    assert client.post("/api/tickets/cancel", json={"ticketId": "nope"}).status_code == 401


def test_put_ticket_status(client, db, world, booked):
    r = client.put("/api/tickets", json={"id": booked.id, "status": "BOOKED"}, headers=auth(world.admin))
    assert r.status_code == 409

    r = client.put("/api/tickets", json={"id": booked.id, "status": "REFUNDED"}, headers=auth(world.admin))
    assert r.status_code == 200
    assert r.json()["status"] == "REFUNDED"

    r = client.put("/api/tickets", json={"id": booked.id, "status": "CANCELLED"}, headers=auth(world.rider))
    assert r.status_code == 403
