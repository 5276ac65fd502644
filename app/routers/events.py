from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect

from app.config import logger
from app.core.firebase_client import user_from_claims, verify_id_token
from app.core.notifier import ConnectionManager
from app.core.security import log_security_event
from app.dependencies import get_notifier

router = APIRouter()


@router.websocket("/ws/events")
async def events_endpoint(
    websocket: WebSocket,
    token: str = Query(..., min_length=1),
    notifier: ConnectionManager = Depends(get_notifier),
):
    """Subscribe to processing events for the authenticated user."""
    try:
        user = user_from_claims(verify_id_token(token))
    except Exception as e:
        logger.warning(f"WebSocket auth failed: {e}")
        log_security_event("ws_auth_failed", conn=websocket)
        await websocket.close(code=1008, reason="Authentication failed")
        return

    await websocket.accept()
    uid = user["uid"]
    await notifier.connect(uid, websocket)
    try:
        # Clients never need to send anything; reading keeps the socket open
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"Events socket closed for {uid}")
    finally:
        await notifier.disconnect(uid, websocket)
