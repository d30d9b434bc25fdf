"""Botpress Chat API client (users, conversations, messages)."""

from typing import Any

import httpx

from ..errors import UpstreamUnavailable
from ..logging_config import get_logger

logger = get_logger(__name__)


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    service: str,
    **kwargs: Any,
) -> httpx.Response:
    """Send a request; transport and HTTP errors become UpstreamUnavailable."""
    try:
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error(
            "%s %s %s failed with %s",
            service,
            method,
            url,
            e.response.status_code,
            extra={"context": {"body": e.response.text[:500]}},
        )
        raise UpstreamUnavailable(
            f"{service} returned HTTP {e.response.status_code}"
        ) from e
    except httpx.HTTPError as e:
        logger.error("%s %s %s failed: %s", service, method, url, e)
        raise UpstreamUnavailable(f"{service} is unreachable: {e}") from e
    return response


async def request_json(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    service: str,
    **kwargs: Any,
) -> Any:
    """Send a request and decode its JSON body."""
    response = await send_request(client, method, url, service, **kwargs)
    if not response.content:
        return {}
    try:
        return response.json()
    except ValueError as e:
        raise UpstreamUnavailable(f"{service} returned a non-JSON body") from e


class BotpressChatClient:
    """Thin wrapper over the Botpress Chat API for one chat integration."""

    def __init__(self, base_url: str | None, client: httpx.AsyncClient):
        self._base_url = base_url.rstrip("/") if base_url else None
        self._client = client

    def _url(self, path: str) -> str:
        if not self._base_url:
            raise UpstreamUnavailable("Botpress chat API is not configured (API_ID)")
        return f"{self._base_url}{path}"

    async def create_user(self) -> dict:
        """Create an anonymous chat user. Returns ``{"user": ..., "userKey": ...}``."""
        data = await request_json(
            self._client,
            "POST",
            self._url("/users"),
            "Botpress",
            json={},
            headers={"accept": "application/json"},
        )
        if not data.get("user") or not data.get("key"):
            raise UpstreamUnavailable("User or user key missing in Botpress response")
        return {"user": data["user"], "userKey": data["key"]}

    async def create_conversation(self, user_key: str) -> dict:
        """Open a conversation for the user identified by ``user_key``."""
        data = await request_json(
            self._client,
            "POST",
            self._url("/conversations"),
            "Botpress",
            json={},
            headers={"accept": "application/json", "x-user-key": user_key},
        )
        conversation = data.get("conversation")
        if not conversation or not conversation.get("id"):
            raise UpstreamUnavailable("Conversation missing in Botpress response")
        return conversation

    async def send_text(self, user_key: str, conversation_id: str, text: str) -> dict:
        """Post a user text message into a conversation."""
        return await request_json(
            self._client,
            "POST",
            self._url("/messages"),
            "Botpress",
            json={
                "conversationId": conversation_id,
                "payload": {"type": "text", "text": text},
            },
            headers={"accept": "application/json", "x-user-key": user_key},
        )
