"""ReplyPoller: client side of the delivery poll endpoint."""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable

import httpx

from ..logging_config import get_logger

logger = get_logger(__name__)


TIMEOUT_REPLY = (
    "It is taking longer than expected to get an answer. "
    "Please ask your question again or contact us directly."
)
ERROR_REPLY = "There was a problem fetching the answer. Please try again."


@dataclass
class PollOutcome:
    """Messages to show for one user turn."""

    messages: list[dict] = field(default_factory=list)
    attempts: int = 0
    synthetic: bool = False


class ReplyPoller:
    """Polls ``GET /api/bot-response/{id}`` until a reply is ready or a ceiling is hit."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str = "",
        interval: float = 2.0,
        slow_interval: float = 3.0,
        slowdown_after: int = 20,
        max_attempts: int = 60,
        max_empty: int = 20,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._interval = interval
        self._slow_interval = slow_interval
        self._slowdown_after = slowdown_after
        self._max_attempts = max_attempts
        self._max_empty = max_empty
        self._sleep = sleep

    async def wait_for_reply(self, conversation_id: str) -> PollOutcome:
        attempts = 0
        empty_polls = 0
        last_count = 0
        last_error: Exception | None = None

        while True:
            try:
                response = await self._client.get(
                    f"{self._base_url}/api/bot-response/{conversation_id}"
                )
                response.raise_for_status()
                data = response.json()
                last_error = None
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Poll for %s failed: %s", conversation_id, e)
                data = None
                last_error = e

            attempts += 1

            if data is not None:
                if data.get("status") == "ready" and data.get("messages"):
                    return PollOutcome(messages=data["messages"], attempts=attempts)

                count = data.get("count") or 0
                if data.get("status") == "collecting" and count > last_count:
                    # Still receiving fragments
                    last_count = count
                    empty_polls = 0
                else:
                    empty_polls += 1
            else:
                empty_polls += 1

            if attempts >= self._max_attempts or empty_polls >= self._max_empty:
                logger.info(
                    "Stopped polling %s after %d attempts (%d empty)",
                    conversation_id,
                    attempts,
                    empty_polls,
                )
                text = ERROR_REPLY if last_error is not None else TIMEOUT_REPLY
                return PollOutcome(
                    messages=[
                        {
                            "id": f"timeout-{int(time.time() * 1000)}",
                            "text": text,
                            "image": None,
                        }
                    ],
                    attempts=attempts,
                    synthetic=True,
                )

            delay = (
                self._interval if attempts < self._slowdown_after else self._slow_interval
            )
            await self._sleep(delay)
