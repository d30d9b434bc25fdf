"""Botpress and workflow integration."""

from .chat import BotpressChatClient
from .knowledge import KnowledgeBaseClient
from .outbound import BotpressDirectSender, IOutboundSender, N8NWebhookSender

__all__ = [
    "BotpressChatClient",
    "KnowledgeBaseClient",
    "IOutboundSender",
    "N8NWebhookSender",
    "BotpressDirectSender",
]
