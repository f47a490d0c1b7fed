"""Unit tests for the achievement webhook hook."""

from uuid import uuid4

import httpx
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from verselink.services.achievement_service import WebhookAchievementHook


class TestWebhookAchievementHook:
    """Tests for WebhookAchievementHook."""

    @pytest.mark.asyncio
    async def test_posts_note_created_activity(self):
        """Test the payload posted to the webhook."""
        document_id = uuid4()
        hook = WebhookAchievementHook(webhook_url="https://xp.test/events", timeout=2.0)

        with patch("verselink.services.achievement_service.httpx.AsyncClient") as client_cls:
            client = AsyncMock()
            client.post.return_value = MagicMock()
            client_cls.return_value.__aenter__.return_value = client

            await hook.document_created("user-1", document_id)

        client.post.assert_awaited_once_with(
            "https://xp.test/events",
            json={"owner_id": "user-1", "document_id": str(document_id), "activity": "note_created"},
        )
        client_cls.assert_called_once_with(timeout=2.0)

    @pytest.mark.asyncio
    async def test_without_url_only_logs(self):
        """Test that no request is made when no webhook is configured."""
        hook = WebhookAchievementHook(webhook_url="")

        with patch("verselink.services.achievement_service.httpx.AsyncClient") as client_cls:
            await hook.document_created("user-1", uuid4())

        client_cls.assert_not_called()

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        """Test that webhook failures are raised for the caller to handle."""
        hook = WebhookAchievementHook(webhook_url="https://xp.test/events")
        request = httpx.Request("POST", "https://xp.test/events")
        response = MagicMock()
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "boom", request=request, response=httpx.Response(500, request=request)
        )

        with patch("verselink.services.achievement_service.httpx.AsyncClient") as client_cls:
            client = AsyncMock()
            client.post.return_value = response
            client_cls.return_value.__aenter__.return_value = client

            with pytest.raises(httpx.HTTPStatusError):
                await hook.document_created("user-1", uuid4())
