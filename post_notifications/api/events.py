# post_notifications/api/events.py
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException, status

from post_notifications.api.deps import get_dispatcher
from post_notifications.security.jwt_utils import current_user_id
from post_notifications.services.dispatch import NotificationDispatcher

router = APIRouter(prefix="/events", tags=["events"])


@router.post("/{interaction_type}", status_code=status.HTTP_202_ACCEPTED)
async def interaction_event(
    interaction_type: str,
    event: Dict[str, Any] = Body(...),
    current: str = Depends(current_user_id),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """
    Like/comment hook called by the acting user after the interaction was
    written. The event's actorId must be the token's sub. Beyond that the
    call is always accepted: notification problems are logged, never
    returned, so the caller's like/comment is not affected.
    """
    actor_id = event.get("actorId")
    if actor_id not in (None, "") and actor_id != current:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="actorId does not match token")

    notification_id = await dispatcher.dispatch(interaction_type, event)
    return {"ok": True, "notificationId": notification_id}
