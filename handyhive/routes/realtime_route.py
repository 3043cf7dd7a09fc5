"""
Live booking updates over a WebSocket.

Connection URL: /ws/bookings?token=<access token>

Protocol:
- Server sends: {"type": "snapshot", "bookings": [...]} on connect and on request
- Server sends: {"type": "change", "table": "bookings", "entity_id": "...",
  "version": n, "event_type": "created|updated", "payload": {...}}
- Client sends: {"type": "resync"} to get a fresh snapshot
- Client sends: {"type": "ping"}, answered with {"type": "pong"}

Customers and providers only receive bookings they are a party to; admins
receive every booking.
"""

import asyncio
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool

from handyhive.database import SessionLocal
from handyhive.security.actor import Actor
from handyhive.security.auth import user_from_access_token
from handyhive.services.booking_crud import booking_crud
from handyhive.services.change_feed import BOOKINGS_TABLE, ChangeEvent, booking_feed, booking_payload, party_filter
from handyhive.logger import get_logger

realtime_router = APIRouter()
logger = get_logger(__name__)


def _authenticate(token: Optional[str]) -> Optional[Actor]:
    if not token:
        return None
    db = SessionLocal()
    try:
        user = user_from_access_token(token, db)
        if user.status != "active":
            return None
        return Actor.from_user(user)
    except HTTPException:
        return None
    finally:
        db.close()


def _snapshot(actor: Actor) -> List[dict]:
    db = SessionLocal()
    try:
        return [booking_payload(b) for b in booking_crud.get_visible_to(db, actor)]
    finally:
        db.close()


@realtime_router.websocket("/ws/bookings")
async def booking_updates(websocket: WebSocket, token: Optional[str] = Query(None)):
    actor = await run_in_threadpool(_authenticate, token)
    if actor is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info(f"Booking feed connected for user {actor.user_id}")

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def on_change(event: ChangeEvent) -> None:
        # publish runs on worker threads
        loop.call_soon_threadsafe(queue.put_nowait, event)

    subscription = booking_feed.subscribe(
        BOOKINGS_TABLE,
        None if actor.is_admin else party_filter(actor.user_id),
        on_change,
    )

    async def send_snapshot():
        bookings = await run_in_threadpool(_snapshot, actor)
        await websocket.send_json({"type": "snapshot", "bookings": bookings})

    async def forward_changes():
        while True:
            event = await queue.get()
            await websocket.send_json(event.as_message())

    async def handle_client():
        while True:
            message = await websocket.receive_json()
            kind = message.get("type") if isinstance(message, dict) else None
            if kind == "resync":
                await send_snapshot()
            elif kind == "ping":
                await websocket.send_json({"type": "pong"})
            else:
                await websocket.send_json({"type": "error", "message": f"Unknown message type: {kind}"})

    tasks = []
    try:
        # subscribed before the snapshot is read so no change falls between them
        await send_snapshot()
        tasks = [asyncio.create_task(forward_changes()), asyncio.create_task(handle_client())]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                logger.error(f"Booking feed for user {actor.user_id} failed: {str(error)}")
    except WebSocketDisconnect:
        pass
    finally:
        for task in tasks:
            task.cancel()
        subscription.unsubscribe()
        logger.info(f"Booking feed disconnected for user {actor.user_id}")
