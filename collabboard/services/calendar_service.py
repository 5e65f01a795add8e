"""Calendar targets: personal goals pinned to a local calendar day."""
import logging
from typing import Callable, List

from collabboard.schemas.calendar import CalendarTarget
from collabboard.services.aggregation import DateLike, date_key
from collabboard.services.errors import AuthorizationError, NotFoundError, ValidationError
from collabboard.store.base import SERVER_TIMESTAMP, DocumentStore, FieldFilter, Subscription

logger = logging.getLogger(__name__)

TARGETS = "calendarTargets"


class CalendarService:
    """Service class for calendar target CRUD. Only the owner may edit or delete."""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_target(self, owner_id: str, text: str, day: DateLike) -> CalendarTarget:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Target text is required", {"field": "text"})
        try:
            normalized = date_key(day)
        except (AttributeError, TypeError, ValueError):
            raise ValidationError("Date must be YYYY-MM-DD", {"field": "date", "value": str(day)})

        target_id = await self.store.create_document(TARGETS, {
            "text": text,
            "date": normalized,
            "ownerId": owner_id,
            "createdAt": SERVER_TIMESTAMP,
        })
        return await self._get(target_id)

    async def edit_target(self, target_id: str, owner_id: str, text: str) -> CalendarTarget:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Target text is required", {"field": "text"})
        await self._owned(target_id, owner_id)
        await self.store.update_document(TARGETS, target_id, {"text": text})
        return await self._get(target_id)

    async def delete_target(self, target_id: str, owner_id: str) -> None:
        await self._owned(target_id, owner_id)
        await self.store.delete_document(TARGETS, target_id)
        logger.info(f"Calendar target {target_id} deleted by {owner_id}")

    async def list_targets(self, owner_id: str) -> List[CalendarTarget]:
        documents = await self.store.query(TARGETS, [FieldFilter("ownerId", "==", owner_id)])
        return [CalendarTarget.from_document(doc) for doc in documents]

    def subscribe_targets(
        self,
        owner_id: str,
        on_change: Callable[[List[CalendarTarget]], None],
        on_error=None,
    ) -> Subscription:
        return self.store.subscribe(
            TARGETS,
            [FieldFilter("ownerId", "==", owner_id)],
            lambda docs: on_change([CalendarTarget.from_document(doc) for doc in docs]),
            on_error,
        )

    async def _get(self, target_id: str) -> CalendarTarget:
        document = await self.store.get_document(TARGETS, target_id)
        if document is None:
            raise NotFoundError("Calendar target not found", {"target_id": target_id})
        return CalendarTarget.from_document(document)

    async def _owned(self, target_id: str, owner_id: str) -> CalendarTarget:
        target = await self._get(target_id)
        if target.owner_id != owner_id:
            raise AuthorizationError("Only the owner can change this target", {"target_id": target_id})
        return target
