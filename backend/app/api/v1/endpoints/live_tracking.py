"""
Live Tracking WebSocket.

Relays a driver's Redis broadcast channel to a WebSocket client. Browsers
cannot set headers on WebSocket upgrades, so the bearer token travels in
the `token` query parameter.
"""

import asyncio
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.guards import can_view_driver
from backend.app.core.jwt import decode_access_token
from backend.app.core.redis_client import get_redis
from backend.app.db.session import get_db
from backend.app.models.user import User
from backend.app.services.broadcast import driver_channel

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Live Tracking"])


async def _resolve_user(db: AsyncSession, token: str):
    payload = decode_access_token(token)
    if not payload or not payload.get("user_id"):
        return None
    user = await db.get(User, payload["user_id"])
    if not user or not user.is_active:
        return None
    return {"user_id": user.id, "sub": user.username, "role": user.role.value}


async def _relay(websocket: WebSocket, pubsub) -> None:
    while True:
        message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
        if message is None:
            continue
        data = message["data"]
        await websocket.send_text(data.decode() if isinstance(data, bytes) else data)


async def _drain(websocket: WebSocket) -> None:
    # Client messages are ignored; this only notices the disconnect
    while True:
        await websocket.receive_text()


async def _close_pubsub(pubsub, channel: str) -> None:
    try:
        await pubsub.unsubscribe(channel)
        await pubsub.aclose()
    except Exception as e:
        logger.warning("Could not release subscription to %s: %s", channel, e)


@router.websocket("/ws/drivers/{driver_id}/location")
async def driver_location_feed(
    websocket: WebSocket,
    driver_id: int,
    token: str = Query(...),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis)
):
    """Stream location updates for one driver (the driver itself or an admin)."""
    try:
        current_user = await _resolve_user(db, token)
    finally:
        # The feed outlives the handshake; hand the connection back to the pool now
        await db.close()
    
    if current_user is None or not can_view_driver(driver_id, current_user):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    
    await websocket.accept()
    channel = driver_channel(driver_id)
    pubsub = redis.pubsub()
    tasks = []
    try:
        try:
            await pubsub.subscribe(channel)
        except Exception as e:
            logger.warning("Live feed for driver %s unavailable: %s", driver_id, e)
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
            return
        logger.info("User %s subscribed to driver %s live feed", current_user["user_id"], driver_id)
        
        tasks = [asyncio.create_task(_relay(websocket, pubsub)), asyncio.create_task(_drain(websocket))]
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in done:
            exc = task.exception()
            if exc and not isinstance(exc, WebSocketDisconnect):
                logger.warning("Live feed for driver %s ended with error: %s", driver_id, exc)
    finally:
        for task in tasks:
            task.cancel()
        await _close_pubsub(pubsub, channel)
        logger.info("User %s left driver %s live feed", current_user["user_id"], driver_id)
        await asyncio.gather(*tasks, return_exceptions=True)
