# post_notifications/errors.py
"""Notification error types."""


class NotificationError(Exception):
    """Base notification error."""
    pass


class NotificationValidationError(NotificationError):
    """Notification data failed validation and was not persisted."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NotificationNotFoundError(NotificationError):
    """Notification does not exist for the recipient."""
    def __init__(self, user_id: str, notification_id: str):
        self.user_id = user_id
        self.notification_id = notification_id
        super().__init__(f"Notification {notification_id} not found for user {user_id}")
