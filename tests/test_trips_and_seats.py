from datetime import datetime, timedelta, timezone

from buspos.db.session import SessionLocal
from buspos.models.bus import Bus
from buspos.models.seat import Seat
from buspos.models.trip import Trip
from buspos.services import trip_service

from conftest import auth, make_trip


def test_seats_need_trip_id(client):
    r = client.get("/api/seats")
    assert r.status_code == 400
    assert r.json() == {"error": "Trip ID is required"}


def test_seats_unknown_trip(client, world):
    assert client.get("/api/seats", params={"tripId": "nope"}).status_code == 404


def test_seats_listing_is_public_and_ordered(client, world):
    r = client.get("/api/seats", params={"tripId": world.trip.id})
    assert r.status_code == 200
    seats = r.json()
    assert [s["seatNumber"] for s in seats] == ["1", "2", "3", "4"]
    assert {s["status"] for s in seats} == {"AVAILABLE"}


def test_seats_created_on_first_read(client, db, world):
    bare = make_trip(db, world.bus, with_seats=False)
    r = client.get("/api/seats", params={"tripId": bare.id})
    assert r.status_code == 200
    assert len(r.json()) == world.bus.total_seats
    assert db.query(Seat).filter(Seat.trip_id == bare.id).count() == world.bus.total_seats


def test_vendor_creates_trip_with_seats(client, db, world):
    dep = datetime.now(timezone.utc) + timedelta(days=3)
    r = client.post("/api/trips", json={
        "busId": world.bus.id,
        "departureTime": dep.isoformat(),
        "arrivalTime": (dep + timedelta(hours=10)).isoformat(),
    }, headers=auth(world.vendor_user))
    assert r.status_code == 201
    trip = r.json()
    assert trip["status"] == "SCHEDULED"
    assert trip["availableSeats"] == 4
    assert db.query(Seat).filter(Seat.trip_id == trip["id"]).count() == 4


def test_trip_arrival_must_follow_departure(client, world):
    dep = datetime.now(timezone.utc) + timedelta(days=3)
    r = client.post("/api/trips", json={
        "busId": world.bus.id,
        "departureTime": dep.isoformat(),
        "arrivalTime": (dep - timedelta(hours=1)).isoformat(),
    }, headers=auth(world.admin))
    assert r.status_code == 400


def test_riders_cannot_create_trips(client, world):
    dep = datetime.now(timezone.utc) + timedelta(days=3)
    r = client.post("/api/trips", json={
        "busId": world.bus.id,
        "departureTime": dep.isoformat(),
        "arrivalTime": (dep + timedelta(hours=1)).isoformat(),
    }, headers=auth(world.rider))
    assert r.status_code == 403


def test_public_trip_search(client, db, world):
    make_trip(db, world.bus, departure=datetime.now(timezone.utc) - timedelta(days=1))
    r = client.get("/api/trips/public", params={"routeId": world.route.id})
    assert r.status_code == 200
    trips = r.json()
    assert [t["id"] for t in trips] == [world.trip.id]
    assert trips[0]["fare"] == 1200
    assert trips[0]["bus"]["busNumber"] == "BUS001"


def test_public_trip_search_skips_inactive_buses(client, db, world):
    bus = db.get(Bus, world.bus.id)
    bus.is_active = False
    db.commit()
    assert client.get("/api/trips/public", params={"routeId": world.route.id}).json() == []


def test_machine_trips(client, db, world):
    sleeper = Bus(id="bus-sleeper", bus_number="BUS002", route_id=world.route.id, total_seats=2,
                  bus_type="SLEEPER", is_active=True)
    db.add(sleeper)
    db.commit()
    make_trip(db, sleeper)

    r = client.get(f"/api/machines/{world.machine.id}/trips")
    assert r.status_code == 200
    assert len(r.json()) == 2

    r = client.get(f"/api/machines/{world.machine.id}/trips", params={"busType": "SLEEPER"})
    assert [t["bus"]["busNumber"] for t in r.json()] == ["BUS002"]

    assert client.get(f"/api/machines/{world.machine.id}/trips", params={"timeSlot": "NIGHT"}).status_code == 400
    assert client.get("/api/machines/nope/trips").status_code == 404


def test_trip_listing_requires_session(client, world):
    assert client.get("/api/trips").status_code == 401
    r = client.get("/api/trips", params={"id": world.trip.id}, headers=auth(world.rider))
    assert r.status_code == 200
    assert r.json()["route"]["name"] == "Delhi to Mumbai"


def test_seats_created_concurrently_on_first_read(db, world, monkeypatch):
    bare = make_trip(db, world.bus, with_seats=False)
    make_rows = trip_service._seat_rows

    # another request creates the seat rows between our empty read and our insert
    def racing_rows(trip_id, total):
        other = SessionLocal()
        try:
            other.add_all(make_rows(trip_id, total))
            other.commit()
        finally:
            other.close()
        return make_rows(trip_id, total)

    monkeypatch.setattr(trip_service, "_seat_rows", racing_rows)
    seats = trip_service.list_seats(db, bare.id)
    assert [s.seat_number for s in seats] == [1, 2, 3, 4]
    assert db.query(Seat).filter(Seat.trip_id == bare.id).count() == 4
