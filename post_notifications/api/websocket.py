# post_notifications/api/websocket.py
import logging

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from post_notifications.security.jwt_utils import decode_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


@router.websocket("/ws/notifications")
async def websocket_notifications(websocket: WebSocket, token: str = Query(...)):
    """
    Live notification feed.
    Clients connect with:
      ws://localhost:8001/ws/notifications?token=JWT
    and receive the full list on connect and after every change.
    """
    # 1. Validate token
    try:
        payload = decode_token(token)
    except HTTPException:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    user_id = payload["sub"]

    ws_manager = websocket.app.state.ws_manager
    try:
        # 2. Register connection (subscribes to the user's notifications)
        await ws_manager.connect(user_id, websocket)

        # 3. Keep the connection alive
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("WebSocket closed for %s", user_id)
    except Exception:
        logger.exception("WebSocket feed failed for %s", user_id)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
    finally:
        ws_manager.disconnect(user_id, websocket)
