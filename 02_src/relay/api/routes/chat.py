"""Chat API routes: Botpress session setup and outbound user messages."""

from pydantic import BaseModel
from fastapi import APIRouter, HTTPException

from ...app import Application
from ...errors import UpstreamUnavailable, ValidationError


class ConversationRequest(BaseModel):
    """Request model for opening a conversation."""

    userKey: str | None = None


class TrackRequest(BaseModel):
    """Request model for tracking a user message."""

    conversationId: str | None = None
    text: str | None = None


class SendRequest(TrackRequest):
    """Request model for sending a user message upstream."""

    userKey: str | None = None


class SuccessResponse(BaseModel):
    """Generic acknowledgement."""

    success: bool


def create_chat_router(app: Application) -> APIRouter:
    """Create chat router."""
    router = APIRouter(prefix="/api", tags=["chat"])

    @router.post("/user")
    async def create_user() -> dict:
        """Create a Botpress chat user."""
        try:
            return await app.chat.create_user()
        except UpstreamUnavailable as e:
            raise HTTPException(status_code=502, detail=str(e))

    @router.post("/conversation")
    async def create_conversation(request: ConversationRequest) -> dict:
        """Open a Botpress conversation for the given user key."""
        if not request.userKey:
            raise HTTPException(status_code=400, detail="Missing userKey")
        try:
            conversation = await app.chat.create_conversation(request.userKey)
            return {"conversation": conversation}
        except UpstreamUnavailable as e:
            raise HTTPException(status_code=502, detail=str(e))

    @router.post("/track-user-message", response_model=SuccessResponse)
    async def track_user_message(request: TrackRequest) -> dict:
        """Record the user's text and start a new reply cycle."""
        try:
            await app.relay.track_user_message(request.conversationId, request.text)
            return {"success": True}
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @router.post("/messages", response_model=SuccessResponse, status_code=202)
    async def send_message(request: SendRequest) -> dict:
        """Track the user's text and forward it to the bot pipeline."""
        try:
            await app.relay.send_user_message(
                request.conversationId, request.text, user_key=request.userKey
            )
            return {"success": True}
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except UpstreamUnavailable as e:
            raise HTTPException(status_code=502, detail=str(e))

    return router
