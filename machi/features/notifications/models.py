"""
In-app notification rows as read back by their recipient.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(slots=True)
class Notification:
    id: str
    user_id: str
    type: str
    title: str
    body: str
    data: dict | None
    is_read: bool
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "title": self.title,
            "body": self.body,
            "data": self.data,
            "is_read": self.is_read,
            "created_at": self.created_at.isoformat(),
        }
