"""Parsing of automation-webhook bodies into InboundFragments."""

from datetime import datetime
from typing import Any

from ..models import InboundFragment


def _first_text(*values: Any) -> str | None:
    """First non-empty string; numbers, objects and lists count as absent."""
    for value in values:
        if isinstance(value, str) and value.strip():
            return value
    return None


def _identifier(*values: Any) -> str | None:
    """First usable id, with numeric ids normalised to strings."""
    for value in values:
        if isinstance(value, bool):
            continue
        if isinstance(value, (int, float)):
            return str(int(value)) if float(value).is_integer() else str(value)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def parse_is_bot(value: Any) -> bool | None:
    """Accept booleans and their string spellings; anything else is absent."""
    if value is True or value is False:
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    return None


def parse_created_at(value: Any) -> float | None:
    """Vendor creation time as epoch milliseconds."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and value.strip():
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).timestamp() * 1000
        except ValueError:
            return None
    return None


def _from_data(data: dict) -> InboundFragment:
    payload = data.get("payload") if isinstance(data.get("payload"), dict) else {}
    return InboundFragment(
        conversation_id=_identifier(data.get("conversationId")),
        text=_first_text(payload.get("text"), data.get("text")),
        image=_first_text(
            payload.get("image"),
            payload.get("imageUrl"),
            data.get("image"),
            data.get("imageUrl"),
        ),
        is_bot=parse_is_bot(data.get("isBot")),
        message_id=_identifier(data.get("id"), data.get("messageId")),
        created_at=parse_created_at(data.get("createdAt")),
    )


def parse_webhook_body(body: Any) -> InboundFragment:
    """Extract an InboundFragment from any of the known webhook body shapes.

    Shapes, tried in order: ``{"body": {"data": {...}}}`` as forwarded by the
    workflow tool, a flat object with ``conversationId``, and a bare
    ``text``/``image`` object without a conversation.
    """
    if not isinstance(body, dict):
        return InboundFragment(conversation_id=None)

    nested = body.get("body")
    if isinstance(nested, dict) and isinstance(nested.get("data"), dict):
        return _from_data(nested["data"])

    if _identifier(body.get("conversationId")):
        return _from_data(body)

    return InboundFragment(
        conversation_id=None,
        text=_first_text(body.get("text")),
        image=_first_text(body.get("image"), body.get("imageUrl")),
        is_bot=parse_is_bot(body.get("isBot")),
    )
