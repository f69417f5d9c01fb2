"""
Want-to-do management and interest-based suggestions.
"""

from datetime import UTC, datetime
from typing import Any

from machi.config import settings
from machi.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from machi.features.nearby.domain.geo import is_valid_coordinate
from machi.features.want_to_dos.domain.expiry import compute_expires_at
from machi.features.want_to_dos.domain.models import (
    SuggestionQuery,
    Timing,
    WantToDo,
    WantToDoDraft,
    WantToDoQuery,
    WantToDoStatus,
)
from machi.features.want_to_dos.repository.want_to_do_repository import WantToDoRepository
from machi.infrastructure.observability.logging import get_logger
from machi.models.domain.pagination import Page

logger = get_logger(__name__)

COMMENT_MAX_LENGTH = 200
LOCATION_NAME_MAX_LENGTH = 100
SUGGESTION_LIMIT = 20
BROWSE_LIMIT = 20
BROWSE_LIMIT_MAX = 100


class WantToDoService:
    def __init__(self, repository: WantToDoRepository, timezone: str | None = None):
        self.repository = repository
        self.timezone = timezone or settings.APP_TIMEZONE

    async def create(self, draft: WantToDoDraft, now: datetime | None = None) -> WantToDo:
        """
        Declare a new want-to-do.

        Raises:
            ValidationError: comment/location too long or bad coordinates
            NotFoundError: category does not exist
            ConflictError(DUPLICATE_WANT_TO_DO): an active one exists in the category
        """
        _validate_text(draft.comment, draft.location_name)
        _validate_coordinates(draft.latitude, draft.longitude)
        now = now or datetime.now(UTC)

        if await self.repository.get_category(draft.category_id) is None:
            raise NotFoundError("Category", draft.category_id)

        existing = await self.repository.find_active_in_category(
            draft.user_id, draft.category_id, now
        )
        if existing is not None:
            raise ConflictError(
                "An active want-to-do already exists for this category",
                ConflictError.DUPLICATE_WANT_TO_DO,
            )

        expires_at = compute_expires_at(draft.timing, now, self.timezone)
        want_to_do = await self.repository.insert(draft, expires_at)

        logger.info(
            "Want-to-do created",
            want_to_do_id=want_to_do.id,
            user_id=draft.user_id,
            timing=draft.timing.value,
            expires_at=expires_at.isoformat(),
        )
        return want_to_do

    async def update(
        self,
        want_to_do_id: str,
        actor_id: str,
        fields: dict[str, Any],
        now: datetime | None = None,
    ) -> WantToDo:
        """Change timing and/or comment. A new timing recomputes expires_at."""
        unknown = set(fields) - {"timing", "comment"}
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        want_to_do = await self._get_owned(want_to_do_id, actor_id)

        changes: dict[str, Any] = {}
        if "comment" in fields:
            _validate_text(fields["comment"], None)
            changes["comment"] = fields["comment"]
        if fields.get("timing") is not None:
            timing = Timing(fields["timing"])
            changes["timing"] = timing
            changes["expires_at"] = compute_expires_at(
                timing, now or datetime.now(UTC), self.timezone
            )
            # A refreshed timing revives an expired declaration
            if want_to_do.status == WantToDoStatus.EXPIRED:
                changes["status"] = WantToDoStatus.ACTIVE

        if not changes:
            return want_to_do

        updated = await self.repository.update(want_to_do_id, changes)
        logger.info("Want-to-do updated", want_to_do_id=want_to_do_id, fields=sorted(changes))
        return updated

    async def delete(self, want_to_do_id: str, actor_id: str) -> None:
        await self._get_owned(want_to_do_id, actor_id)
        await self.repository.update(want_to_do_id, {"status": WantToDoStatus.DELETED})
        logger.info("Want-to-do deleted", want_to_do_id=want_to_do_id)

    async def list_mine(self, user_id: str) -> list[WantToDo]:
        return await self.repository.list_for_user(user_id)

    async def get(self, want_to_do_id: str) -> WantToDo:
        want_to_do = await self.repository.get(want_to_do_id)
        if want_to_do is None or want_to_do.status == WantToDoStatus.DELETED:
            raise NotFoundError("Want-to-do", want_to_do_id)
        return want_to_do

    async def browse(
        self,
        category_id: str | None = None,
        area: str | None = None,
        timing: Timing | None = None,
        page: int = 1,
        limit: int = BROWSE_LIMIT,
        now: datetime | None = None,
    ) -> Page[WantToDo]:
        """ACTIVE, unexpired want-to-dos of everyone, newest first."""
        if page < 1 or not 1 <= limit <= BROWSE_LIMIT_MAX:
            raise ValidationError(
                f"page must be positive and limit between 1 and {BROWSE_LIMIT_MAX}"
            )
        return await self.repository.browse(
            WantToDoQuery(
                now=now or datetime.now(UTC),
                category_id=category_id,
                area=area,
                timing=timing,
                page=page,
                limit=limit,
            )
        )

    async def suggestions(
        self, user_id: str, limit: int = SUGGESTION_LIMIT, now: datetime | None = None
    ) -> list[WantToDo]:
        category_ids, area = await self.repository.get_interests(user_id)
        if not category_ids:
            return []

        return await self.repository.find_suggestions(
            SuggestionQuery(
                user_id=user_id,
                category_ids=category_ids,
                area=area,
                now=now or datetime.now(UTC),
                limit=limit,
            )
        )

    async def _get_owned(self, want_to_do_id: str, actor_id: str) -> WantToDo:
        want_to_do = await self.get(want_to_do_id)
        if want_to_do.user_id != actor_id:
            raise ForbiddenError("You can only change your own want-to-do")
        return want_to_do


def _validate_text(comment: str | None, location_name: str | None) -> None:
    if comment is not None and len(comment) > COMMENT_MAX_LENGTH:
        raise ValidationError(f"comment must be at most {COMMENT_MAX_LENGTH} characters")
    if location_name is not None and len(location_name) > LOCATION_NAME_MAX_LENGTH:
        raise ValidationError(
            f"location_name must be at most {LOCATION_NAME_MAX_LENGTH} characters"
        )


def _validate_coordinates(latitude: float | None, longitude: float | None) -> None:
    if (latitude is None) != (longitude is None):
        raise ValidationError("latitude and longitude must be provided together")
    if latitude is not None and not is_valid_coordinate(latitude, longitude):
        raise ValidationError("Invalid coordinates")
