# post_notifications/api/notifications.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from post_notifications.api.deps import get_notification_service
from post_notifications.errors import NotificationNotFoundError
from post_notifications.security.jwt_utils import current_user_id
from post_notifications.services.messages import serialize_notification
from post_notifications.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _ensure_owner(user_id: str, current: str):
    if current != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")


def _store_failure(action: str, e: Exception) -> HTTPException:
    logger.error("Could not %s: %s", action, e)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"Could not {action}: {e}",
    )


@router.get("/user/{user_id}")
async def list_user_notifications(
    user_id: str,
    limit: Optional[int] = Query(None, ge=1, le=500),
    unread_only: bool = Query(False, alias="unreadOnly"),
    current: str = Depends(current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    """
    Notifications of a user, newest first.
    Only the owner can read them (compared against the JWT sub).
    """
    _ensure_owner(user_id, current)
    try:
        notifications = await service.list(user_id, limit=limit, unread_only=unread_only)
    except Exception as e:
        raise _store_failure("load notifications", e)
    return [serialize_notification(n) for n in notifications]


@router.get("/unread-count/{user_id}")
async def unread_count(
    user_id: str,
    current: str = Depends(current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    _ensure_owner(user_id, current)
    try:
        count = await service.unread_count(user_id)
    except Exception as e:
        raise _store_failure("count unread notifications", e)
    return {"count": count}


@router.post("/mark-read/{notification_id}")
async def mark_notification_as_read(
    notification_id: str,
    current: str = Depends(current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        await service.mark_read(current, notification_id)
    except NotificationNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception as e:
        raise _store_failure("mark notification as read", e)
    return {"ok": True}


@router.post("/mark-all-read")
async def mark_all_as_read(
    current: str = Depends(current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        updated = await service.mark_all_read(current)
    except Exception as e:
        raise _store_failure("mark notifications as read", e)
    return {"ok": True, "updated": updated}


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    current: str = Depends(current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        await service.delete(current, notification_id)
    except Exception as e:
        raise _store_failure("delete notification", e)
    return {"ok": True}


@router.delete("")
async def clear_notifications(
    current: str = Depends(current_user_id),
    service: NotificationService = Depends(get_notification_service),
):
    try:
        deleted = await service.clear_all(current)
    except Exception as e:
        raise _store_failure("clear notifications", e)
    return {"ok": True, "deleted": deleted}
