# post_notifications/api/deps.py
from fastapi import Request

from post_notifications.services.dispatch import NotificationDispatcher
from post_notifications.services.notification_service import NotificationService


def get_notification_service(request: Request) -> NotificationService:
    return request.app.state.notification_service


def get_dispatcher(request: Request) -> NotificationDispatcher:
    return request.app.state.dispatcher
