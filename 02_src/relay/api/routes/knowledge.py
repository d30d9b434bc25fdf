"""Knowledge-base document routes."""

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from ...app import Application
from ...botpress.knowledge import MAX_UPLOAD_BYTES
from ...errors import UpstreamUnavailable, ValidationError

CHUNK_BYTES = 1024 * 1024


async def _read_limited(file: UploadFile, limit: int = MAX_UPLOAD_BYTES) -> bytes:
    """Read an upload, refusing it as soon as it grows past ``limit``."""
    if file.size is not None and file.size > limit:
        raise ValidationError("File too large. Maximum size is 10MB.")
    chunks = []
    total = 0
    while chunk := await file.read(CHUNK_BYTES):
        total += len(chunk)
        if total > limit:
            raise ValidationError("File too large. Maximum size is 10MB.")
        chunks.append(chunk)
    return b"".join(chunks)


def create_knowledge_router(app: Application) -> APIRouter:
    """Create knowledge-base router."""
    router = APIRouter(prefix="/api", tags=["knowledge"])

    @router.post("/upload")
    async def upload_document(
        file: UploadFile = File(...),
        title: str | None = Form(None),
    ) -> dict:
        """Upload a document into the bot's knowledge base."""
        try:
            content = await _read_limited(file)
            result = await app.knowledge.upload(
                filename=file.filename or "document",
                content=content,
                content_type=file.content_type or "",
                title=title,
            )
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except UpstreamUnavailable as e:
            raise HTTPException(status_code=502, detail=str(e))
        return {
            "success": True,
            "message": "File uploaded to knowledge base successfully",
            **result,
        }

    @router.get("/documents")
    async def list_documents() -> dict:
        """List knowledge-base documents."""
        try:
            files = await app.knowledge.list_files()
        except UpstreamUnavailable as e:
            raise HTTPException(status_code=502, detail=str(e))
        return {"success": True, "files": files}

    @router.delete("/documents/{file_id}")
    async def delete_document(file_id: str) -> dict:
        """Delete a knowledge-base document."""
        try:
            result = await app.knowledge.delete_file(file_id)
        except UpstreamUnavailable as e:
            raise HTTPException(status_code=502, detail=str(e))
        return {"success": True, "result": result}

    return router
