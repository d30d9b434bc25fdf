"""Inbound webhook models."""

from dataclasses import dataclass
from enum import Enum


class Authorship(str, Enum):
    """Who wrote an inbound message."""

    BOT = "bot"
    USER = "user"
    UNKNOWN = "unknown"


@dataclass
class InboundFragment:
    """A message as delivered by the automation webhook, before classification."""

    conversation_id: str | None
    text: str | None = None
    image: str | None = None
    is_bot: bool | None = None
    message_id: str | None = None
    created_at: float | None = None  # epoch milliseconds, when the vendor supplied it
