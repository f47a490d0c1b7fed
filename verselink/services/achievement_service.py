"""Achievement (XP) notifications for newly created documents."""

from typing import Optional, Protocol
from uuid import UUID

import httpx

from verselink.core.config import settings
from verselink.utils.logging import get_logger

LOGGER = get_logger(__name__)

NOTE_CREATED_ACTIVITY = "note_created"


class AchievementHook(Protocol):
    async def document_created(self, owner_id: str, document_id: UUID) -> None: ...


class WebhookAchievementHook:
    """Posts a note-created activity to the achievement service.

    Without a configured webhook URL the event is only logged.
    """

    def __init__(self, webhook_url: Optional[str] = None, timeout: Optional[float] = None):
        self.webhook_url = webhook_url if webhook_url is not None else settings.achievements.webhook_url
        self.timeout = timeout if timeout is not None else settings.achievements.timeout

    async def document_created(self, owner_id: str, document_id: UUID) -> None:
        payload = {
            "owner_id": owner_id,
            "document_id": str(document_id),
            "activity": NOTE_CREATED_ACTIVITY,
        }

        if not self.webhook_url:
            LOGGER.info("Achievement event (no webhook configured)", extra=payload)
            return

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.webhook_url, json=payload)
            response.raise_for_status()

        LOGGER.debug("Achievement event delivered", extra=payload)
