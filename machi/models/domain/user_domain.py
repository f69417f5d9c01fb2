"""
Shared read models for users and categories.

Only public profile fields live here; anything private (push tokens,
auth metadata) stays inside the repositories that need it.
"""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class PublicProfile:
    """Fields of a user that may be shown to other users."""

    id: str
    nickname: str | None
    avatar_url: str | None
    area: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "nickname": self.nickname,
            "avatar_url": self.avatar_url,
            "area": self.area,
        }


@dataclass(slots=True, frozen=True)
class CategorySummary:
    id: str
    name: str
    icon: str

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "icon": self.icon}
