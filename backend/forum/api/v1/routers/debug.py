# forum/api/v1/routers/debug.py
import json
import logging

from fastapi import APIRouter, Depends, Query, WebSocket, status
from starlette.websockets import WebSocketDisconnect

from forum.api.v1.deps import require_admin, resolve_user
from forum.core.errors import AuthenticationError
from forum.core.policy import is_allowed
from forum.core.pubsub import channel
from forum.models.user import User

logger = logging.getLogger("uvicorn.error")

router = APIRouter(tags=["debug"])

# Mounted without the /api/v1 prefix, like the other WebSocket endpoints
ws_router = APIRouter()


@router.get("/debug/logs", response_model=dict)
async def recent_logs(
    limit: int = Query(100, ge=1, le=1000),
    admin: User = Depends(require_admin),
):
    """Most recent server log entries, oldest first (admin only)."""
    return {"items": channel.recent(limit)}


@ws_router.websocket("/ws/logs")
async def ws_logs(ws: WebSocket, token: str | None = Query(None)):
    """
    WebSocket endpoint streaming server log entries to the debug log viewer.

    Message flow:
    1. Client connects with ?token=<admin session token>
    2. Server sends: {"type": "ready", "history": [entry, ...]}
    3. Server sends: {"type": "log", "entry": {...}} for every new entry

    Connections without a valid admin token are closed with 1008 (policy violation).
    """
    user = None
    if token:
        try:
            user = await resolve_user(token)
        except AuthenticationError as exc:
            logger.debug("[ws_logs] rejected token: %s", exc.message)
    if not is_allowed(user, "logs", "read"):
        await ws.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await ws.accept()
    queue = channel.subscribe()
    logger.info("[ws_logs] connected admin id=%s", user.id)
    try:
        await ws.send_text(json.dumps({"type": "ready", "history": channel.recent()}))
        while True:
            entry = await queue.get()
            await ws.send_text(json.dumps({"type": "log", "entry": entry}))
    except WebSocketDisconnect:
        pass
    finally:
        channel.unsubscribe(queue)
