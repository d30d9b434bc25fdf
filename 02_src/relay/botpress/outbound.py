"""Outbound senders: forward the user's text to the bot pipeline."""

from typing import Protocol

import httpx

from ..errors import ValidationError
from ..logging_config import get_logger
from .chat import BotpressChatClient, send_request

logger = get_logger(__name__)


class IOutboundSender(Protocol):
    """Fire-and-forget delivery of one user message upstream."""

    requires_user_key: bool

    async def send(self, conversation_id: str, text: str, user_key: str | None = None) -> None:
        ...


class N8NWebhookSender:
    """Posts the message to the workflow webhook, which replies via our inbound webhook."""

    requires_user_key = False

    def __init__(self, webhook_url: str, client: httpx.AsyncClient):
        self._webhook_url = webhook_url
        self._client = client

    async def send(self, conversation_id: str, text: str, user_key: str | None = None) -> None:
        await send_request(
            self._client,
            "POST",
            self._webhook_url,
            "N8N",
            json={"conversationId": conversation_id, "text": text, "userKey": user_key},
        )
        logger.info("Forwarded message for %s to workflow", conversation_id)


class BotpressDirectSender:
    """Posts the message straight into the Botpress conversation."""

    requires_user_key = True

    def __init__(self, chat: BotpressChatClient):
        self._chat = chat

    async def send(self, conversation_id: str, text: str, user_key: str | None = None) -> None:
        if not user_key:
            raise ValidationError("Missing userKey")
        await self._chat.send_text(user_key, conversation_id, text)
        logger.info("Forwarded message for %s to Botpress", conversation_id)
