"""Inbound webhook route for the automation workflow."""

import secrets
import time
from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request

from ...app import Application
from ...errors import ValidationError
from ...logging_config import get_logger

logger = get_logger(__name__)


def create_webhook_router(app: Application) -> APIRouter:
    """Create webhook router."""
    router = APIRouter(prefix="/api", tags=["webhook"])

    @router.post("/botpress-webhook")
    async def receive_fragment(request: Request) -> dict:
        """Accept one reply fragment (or echo) from the workflow."""
        request_id = f"req-{int(time.time() * 1000)}-{secrets.token_hex(4)}"
        try:
            body = await request.json()
        except ValueError:
            raise HTTPException(status_code=400, detail="Body must be JSON")

        logger.debug("Webhook %s received", request_id, extra={"context": {"body": body}})

        try:
            outcome = await app.relay.handle_webhook(body)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

        return {
            "success": True,
            "requestId": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "outcome": outcome.value if outcome else "ignored",
        }

    return router
