"""Delivery poll route."""

from pydantic import BaseModel
from fastapi import APIRouter

from ...app import Application
from ...models import PollStatus

_STATUS_MESSAGES = {
    PollStatus.READY: "Reply ready",
    PollStatus.ALREADY_DELIVERED: "All messages already delivered",
    PollStatus.COLLECTING: "Still collecting messages",
    PollStatus.EMPTY: "No bot messages available",
}


class FragmentResponse(BaseModel):
    """One delivered reply fragment."""

    id: str
    text: str | None = None
    image: str | None = None
    timestamp: float
    receivedAt: str


class PollResponse(BaseModel):
    """Response model for a delivery poll."""

    success: bool
    status: PollStatus
    messages: list[FragmentResponse] = []
    count: int = 0
    message: str


def create_delivery_router(app: Application) -> APIRouter:
    """Create delivery router."""
    router = APIRouter(prefix="/api", tags=["delivery"])

    @router.get("/bot-response/{conversation_id}", response_model=PollResponse)
    async def poll_bot_response(conversation_id: str) -> dict:
        """Return the finalized reply once; later polls see it as delivered."""
        result = await app.relay.poll(conversation_id)
        return {
            "success": result.status is PollStatus.READY,
            "status": result.status,
            "messages": [
                {
                    "id": str(f.id),
                    "text": f.text,
                    "image": f.image,
                    "timestamp": f.source_timestamp,
                    "receivedAt": f.received_at.isoformat(),
                }
                for f in result.fragments
            ],
            "count": result.count,
            "message": _STATUS_MESSAGES[result.status],
        }

    return router
