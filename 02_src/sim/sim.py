"""SIM implementation - plays the automation workflow against a running relay."""

import asyncio
import random
from datetime import datetime, timedelta, timezone
from typing import Protocol

import httpx

from relay.client import ReplyPoller
from relay.logging_config import get_logger
from relay.tracing import ITraceRecorder

logger = get_logger(__name__)


SCENARIO = [
    {
        "conversation_id": "sim-conv-001",
        "question": "What are your opening hours?",
        "reply": [
            {"text": "We are open Monday to Friday from 8:00 to 17:30."},
            {"text": "On Saturdays the showroom is open from 9:00 to 13:00!"},
        ],
    },
    {
        "conversation_id": "sim-conv-002",
        "question": "Can you show me the wiring diagram?",
        "reply": [
            {"text": "Here is the diagram you asked for:"},
            {"image": "https://example.com/diagrams/wiring.png"},
            {"text": "Let me know if anything is unclear?"},
        ],
    },
    {
        "conversation_id": "sim-conv-003",
        "question": "Do you install charging stations?",
        "reply": [
            {"text": "Yes, we install home charging stations."},
        ],
    },
]


class ISim(Protocol):
    """Generate webhook traffic. Hardcoded scenario."""

    async def start(self) -> None:
        """Start hardcoded scenario."""
        ...

    async def stop(self) -> None:
        """Stop scenario."""
        ...


class Sim:
    """Tracks a question, replays fragmented replies out of order, then polls."""

    def __init__(
        self,
        api_url: str = "http://localhost:3001",
        recorder: ITraceRecorder | None = None,
        poll_interval: float = 2.0,
    ):
        self._api_url = api_url
        self._recorder = recorder
        self._poll_interval = poll_interval
        self._running = False
        self._task: asyncio.Task | None = None
        self._client: httpx.AsyncClient | None = None

    @property
    def running(self) -> bool:
        return self._running

    def set_recorder(self, recorder: ITraceRecorder) -> None:
        """Inject recorder for SIM trace events."""
        self._recorder = recorder

    async def start(self) -> None:
        """Start hardcoded scenario."""
        if self._running:
            return

        self._running = True
        self._client = httpx.AsyncClient(base_url=self._api_url, timeout=10.0)
        self._task = asyncio.create_task(self._run_scenario())

    async def stop(self) -> None:
        """Stop scenario."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._client:
            await self._client.aclose()
            self._client = None

    async def _run_scenario(self) -> None:
        """Run all conversations concurrently."""
        try:
            if self._recorder:
                await self._recorder.record(
                    "sim_started", "sim", {"conversations": len(SCENARIO)}
                )
            results = await asyncio.gather(
                *[self._play(item) for item in SCENARIO], return_exceptions=True
            )
            for item, result in zip(SCENARIO, results):
                if isinstance(result, Exception):
                    logger.error("SIM: %s failed: %s", item["conversation_id"], result)
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("SIM scenario error: %s", e)
        finally:
            self._running = False
            if self._recorder:
                await self._recorder.record(
                    "sim_completed", "sim", {"conversations": len(SCENARIO)}
                )

    async def _play(self, item: dict) -> None:
        conversation_id = item["conversation_id"]
        response = await self._client.post(
            "/api/track-user-message",
            json={"conversationId": conversation_id, "text": item["question"]},
        )
        response.raise_for_status()

        # The workflow echoes the user's own text first
        await self._post_webhook(
            {"conversationId": conversation_id, "text": item["question"], "isBot": False}
        )

        created = datetime.now(timezone.utc)
        payloads = []
        for index, part in enumerate(item["reply"]):
            payloads.append(
                {
                    "conversationId": conversation_id,
                    "id": f"{conversation_id}-part-{index}",
                    "createdAt": (created + timedelta(milliseconds=index)).isoformat(),
                    "isBot": True,
                    "payload": part,
                }
            )
        random.shuffle(payloads)

        for payload in payloads:
            if not self._running:
                return
            await asyncio.sleep(random.uniform(0.5, 2))
            await self._post_webhook({"body": {"data": payload}})

        poller = ReplyPoller(self._client, interval=self._poll_interval)
        outcome = await poller.wait_for_reply(conversation_id)
        logger.info(
            "SIM: %s received %d message(s) after %d poll(s)%s",
            conversation_id,
            len(outcome.messages),
            outcome.attempts,
            " (timeout)" if outcome.synthetic else "",
        )

    async def _post_webhook(self, body: dict) -> None:
        try:
            response = await self._client.post("/api/botpress-webhook", json=body)
            if response.status_code != 200:
                logger.error("SIM: webhook returned %s", response.status_code)
        except httpx.HTTPError as e:
            logger.error("SIM: failed to post webhook: %s", e)
