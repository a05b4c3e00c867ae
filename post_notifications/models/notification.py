# post_notifications/models/notification.py
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"


class PostType(str, Enum):
    RECOMMENDATION = "recommendation"
    ROUTE = "route"


class NotificationCreate(BaseModel):
    """Fields a caller supplies; id and timestamp come from the store."""
    userId: str = Field(min_length=1)       # recipient (post owner)
    type: NotificationType
    postType: PostType
    postId: str = Field(min_length=1)
    postTitle: str = Field(min_length=1)
    actorId: str = Field(min_length=1)      # last actor
    actorName: str = Field(min_length=1)
    actorAvatar: Optional[str] = None
    count: int = Field(ge=1)
    batchThreshold: int = Field(ge=1)

    @field_validator("actorAvatar")
    @classmethod
    def empty_avatar_is_null(cls, value: Optional[str]) -> Optional[str]:
        return value or None


class Notification(NotificationCreate):
    id: str
    isRead: bool = False
    timestamp: datetime
