"""WebSocket endpoint streaming API key usage events.

Protocol (JSON text frames):

    client -> {"action": "subscribe", "key_id": 3}
    server -> {"event": "subscribed", "data": {"keyId": 3}}
    server -> {"event": "api_key_usage_updated", "data": {"keyId": 3, "usageCount": 8, "lastUsedAt": "..."}}
    client -> {"action": "unsubscribe", "key_id": 3}
    server -> {"event": "unsubscribed", "data": {"keyId": 3}}
    client -> {"action": "ping"}
    server -> {"event": "pong"}

Anything else gets ``{"event": "error", "data": {"message": ...}}``. A
client may only subscribe to keys it owns. When authentication is enabled
the handshake must carry ``?token=<jwt>``; otherwise it is closed with 4401.
"""

import asyncio
import json
import logging
from typing import Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from ..core.auth import resolve_socket_user
from ..database import SessionLocal
from ..models import ApiKey
from ..services.usage_broadcast import Subscription, usage_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter(tags=["api-keys"])

CLOSE_UNAUTHORIZED = 4401


def _authenticate(token: Optional[str]) -> Optional[str]:
    db = SessionLocal()
    try:
        return resolve_socket_user(token, db)
    finally:
        db.close()


def _owns_key(user_id: str, key_id: int) -> bool:
    db = SessionLocal()
    try:
        owner = db.query(ApiKey.user_id).filter(ApiKey.id == key_id).scalar()
        return owner is not None and owner == user_id
    finally:
        db.close()


def _error(message: str) -> dict:
    return {"event": "error", "data": {"message": message}}


async def _pump(websocket: WebSocket, sub: Subscription) -> None:
    while True:
        message = await sub.queue.get()
        await websocket.send_json(message)


async def _stop_sender(sender: asyncio.Task, user_id: str) -> Optional[Exception]:
    """Cancel the sender and collect its outcome. Returns the error it died with, if any."""
    sender.cancel()
    [outcome] = await asyncio.gather(sender, return_exceptions=True)
    if isinstance(outcome, Exception):
        logger.warning("Usage socket sender failed", extra={"user_id": user_id, "error": str(outcome)})
        return outcome
    return None


async def _handle(message: dict, user_id: str, sub: Subscription) -> dict:
    """Apply one client message and return the reply."""
    action = message.get("action")
    if action == "ping":
        return {"event": "pong"}
    if action not in ("subscribe", "unsubscribe"):
        return _error(f"Unknown action: {action}")

    key_id = message.get("key_id")
    if not isinstance(key_id, int) or isinstance(key_id, bool):
        return _error("key_id must be an integer")

    if action == "unsubscribe":
        usage_broadcaster.unsubscribe(sub, key_id)
        return {"event": "unsubscribed", "data": {"keyId": key_id}}

    if not await run_in_threadpool(_owns_key, user_id, key_id):
        return _error(f"API key not found: {key_id}")
    usage_broadcaster.subscribe(sub, key_id)
    return {"event": "subscribed", "data": {"keyId": key_id}}


@router.websocket("/ws/api-keys")
async def api_key_usage_socket(websocket: WebSocket, token: Optional[str] = Query(None)):
    user_id = await run_in_threadpool(_authenticate, token)
    if user_id is None:
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return

    await websocket.accept()
    sub = usage_broadcaster.register()
    sender = asyncio.create_task(_pump(websocket, sub))
    logger.info("Usage socket connected", extra={"user_id": user_id})

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                message = None
            if isinstance(message, dict):
                reply = await _handle(message, user_id, sub)
            else:
                reply = _error("Expected a JSON object")
            # Replies share the queue so an ack always precedes the events it enables.
            await sub.queue.put(reply)
    except WebSocketDisconnect:
        logger.info("Usage socket disconnected", extra={"user_id": user_id, "dropped": sub.dropped})
    finally:
        usage_broadcaster.unregister(sub)
        await _stop_sender(sender, user_id)
