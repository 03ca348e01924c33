import threading

import pytest

from buspos.core.errors import Conflict, InvalidState, ValidationError
from buspos.db.session import SessionLocal
from buspos.models.machine import Machine
from buspos.models.seat import Seat
from buspos.models.ticket import Ticket
from buspos.models.transaction import Transaction
from buspos.models.trip import Trip
from buspos.services import booking_service
from buspos.services.trip_service import calculate_fare

from conftest import auth, make_trip, seats_of


def _body(world, seat, **extra):
    body = {
        "tripId": world.trip.id,
        "seatId": seat.id,
        "passengerName": "Ravi",
        "passengerPhone": "9876543210",
        "paymentType": "CASH",
    }
    body.update(extra)
    return body


@pytest.mark.parametrize("bus_type,expected", [
    ("AC", 1200),
    ("AC_SLEEPER", 1200),
    ("AC_SEATER", 1200),
    ("SLEEPER", 1040),
    ("STANDARD", 800),
    (None, 800),
])
def test_calculate_fare(bus_type, expected):
    assert calculate_fare(800, bus_type) == expected


def test_vendor_purchase(client, db, world):
    seat = seats_of(db, world.trip)[1]
    r = client.post("/api/tickets", json=_body(world, seat), headers=auth(world.vendor_user))
    assert r.status_code == 201
    body = r.json()
    assert body["status"] == "BOOKED"
    assert body["paymentStatus"] == "COMPLETED"
    assert body["price"] == 1200
    assert body["vendorId"] == world.vendor.id
    assert body["seat"]["seatNumber"] == "2"
    assert body["qrCode"].startswith("TICKET-")

    db.expire_all()
    assert db.get(Trip, world.trip.id).available_seats == 3
    s = db.get(Seat, seat.id)
    assert s.status == "BOOKED"
    assert s.ticket_id == body["id"]
    payments = db.query(Transaction).filter(Transaction.ticket_id == body["id"]).all()
    assert [(p.type, p.status, p.amount) for p in payments] == [("PAYMENT", "COMPLETED", 1200)]


def test_purchase_booked_seat_conflicts(client, db, world, booked):
    seat = booking_service.ticket_seat(db, booked.id)
    r = client.post("/api/tickets", json=_body(world, seat), headers=auth(world.vendor_user))
    assert r.status_code == 409
    assert r.json() == {"error": "Seat is not available"}


def test_kiosk_purchase_without_session(client, db, world):
    seat = seats_of(db, world.trip)[0]
    r = client.post("/api/tickets", json=_body(world, seat, machineId=world.machine.id, price=999))
    assert r.status_code == 201
    assert r.json()["machineId"] == world.machine.id
    assert r.json()["price"] == 999


def test_purchase_needs_staff_or_machine(client, db, world):
    seat = seats_of(db, world.trip)[0]
    assert client.post("/api/tickets", json=_body(world, seat)).status_code == 401
    assert client.post("/api/tickets", json=_body(world, seat), headers=auth(world.rider)).status_code == 401


def test_purchase_validation(client, db, world):
    seat = seats_of(db, world.trip)[0]
    headers = auth(world.vendor_user)
    r = client.post("/api/tickets", json=_body(world, seat, paymentType="CHEQUE"), headers=headers)
    assert r.status_code == 400
    body = _body(world, seat)
    del body["passengerName"]
    assert client.post("/api/tickets", json=body, headers=headers).status_code == 400


def test_seat_from_another_trip_is_rejected(db, world):
    other = make_trip(db, world.bus)
    foreign_seat = seats_of(db, other)[0]
    with pytest.raises(ValidationError):
        booking_service.purchase_ticket(db, world.trip.id, foreign_seat.id, "A", "1", "CASH")


def test_trip_not_scheduled(db, world):
    cancelled = make_trip(db, world.bus, status="CANCELLED")
    with pytest.raises(InvalidState):
        booking_service.purchase_ticket(db, cancelled.id, seats_of(db, cancelled)[0].id, "A", "1", "CASH")


def test_inactive_machine(db, world):
    m = db.get(Machine, world.machine.id)
    m.is_active = False
    db.commit()
    with pytest.raises(InvalidState):
        booking_service.purchase_ticket(db, world.trip.id, seats_of(db, world.trip)[0].id, "A", "1", "CASH",
                                        machine_id=world.machine.id)


def test_duplicate_qr_code(db, world):
    seats = seats_of(db, world.trip)
    booking_service.purchase_ticket(db, world.trip.id, seats[0].id, "A", "1", "CASH", qr_code="QR-1")
    with pytest.raises(Conflict):
        booking_service.purchase_ticket(db, world.trip.id, seats[1].id, "B", "2", "CASH", qr_code="QR-1")
    db.expire_all()
    assert db.get(Seat, seats[1].id).status == "AVAILABLE"


def test_concurrent_purchase_of_one_seat(db, world):
    seat_id = seats_of(db, world.trip)[2].id
    trip_id = world.trip.id
    barrier = threading.Barrier(2)
    results = []

    def worker(n):
        s = SessionLocal()
        try:
            barrier.wait()
            booking_service.purchase_ticket(s, trip_id, seat_id, f"P{n}", "1", "CASH", qr_code=f"RACE-{n}")
            results.append("ok")
        except Conflict:
            results.append("conflict")
        finally:
            s.close()

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)

    assert sorted(results) == ["conflict", "ok"]
    db.expire_all()
    assert db.query(Ticket).filter(Ticket.trip_id == trip_id).count() == 1
    assert db.get(Trip, trip_id).available_seats == 3


def test_list_tickets_by_phone(client, db, world, booked):
    r = client.get("/api/tickets", params={"phone": "9999999999"}, headers=auth(world.admin))
    assert r.status_code == 200
    assert [t["id"] for t in r.json()] == [booked.id]
    assert client.get("/api/tickets").status_code == 401


def test_ticket_documents(client, db, world, booked):
    qr = client.get(f"/api/tickets/{booked.id}/qr")
    assert qr.status_code == 200
    assert qr.headers["content-type"] == "image/png"
    assert qr.content[:8] == b"\x89PNG\r\n\x1a\n"

    pdf = client.get(f"/api/tickets/{booked.id}/pdf")
    assert pdf.status_code == 200
    assert pdf.content.startswith(b"%PDF")
    assert client.get("/api/tickets/nope/pdf").status_code == 404
