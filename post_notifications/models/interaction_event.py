# post_notifications/models/interaction_event.py
from typing import Any, Dict, Optional

from pydantic import BaseModel


class InteractionMessage(BaseModel):
    """
    Queue envelope for a like/comment event:
      {"type": "like", "data": {"postId": ..., "currentLikeCount": 10, ...}}
    """
    type: str
    data: Optional[Dict[str, Any]] = None
