"""Per-trip WebSocket channel for live seat maps."""
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


class SeatChannel:
    """In-process registry of seat-map subscribers keyed by trip id."""

    def __init__(self):
        self.subscribers: dict[str, set[WebSocket]] = {}

    async def connect(self, trip_id: str, websocket: WebSocket):
        await websocket.accept()
        self.subscribers.setdefault(trip_id, set()).add(websocket)
        await websocket.send_json({
            "type": "subscription_confirmed",
            "tripId": trip_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    def disconnect(self, trip_id: str, websocket: WebSocket):
        subs = self.subscribers.get(trip_id)
        if not subs:
            return
        subs.discard(websocket)
        if not subs:
            del self.subscribers[trip_id]

    async def publish(self, trip_id: str, message: dict):
        dead = []
        for ws in list(self.subscribers.get(trip_id, ())):
            try:
                await ws.send_json(message)
            except (WebSocketDisconnect, RuntimeError) as e:
                logger.info("dropping seat subscriber for trip %s: %s", trip_id, e)
                dead.append(ws)
        for ws in dead:
            self.disconnect(trip_id, ws)


seat_channel = SeatChannel()


async def publish_seat_update(trip_id: str, seat_id: str | None, seat_number: int | None, status: str,
                              available_seats: int):
    await seat_channel.publish(trip_id, {
        "type": "seat_update",
        "tripId": trip_id,
        "seatId": seat_id,
        "seatNumber": str(seat_number) if seat_number is not None else None,
        "status": status,
        "availableSeats": available_seats,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


@router.websocket("/ws/trips/{trip_id}")
async def trip_seats_ws(websocket: WebSocket, trip_id: str):
    await seat_channel.connect(trip_id, websocket)
    try:
        while True:
            # clients only listen; anything they send is treated as a ping
            await websocket.receive_text()
            await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        seat_channel.disconnect(trip_id, websocket)
