"""Botpress admin API client for knowledge-base documents."""

import time

import httpx

from ..errors import UpstreamUnavailable, ValidationError
from ..logging_config import get_logger
from .chat import request_json, send_request

logger = get_logger(__name__)


ALLOWED_CONTENT_TYPES = frozenset(
    {
        "application/pdf",
        "text/plain",
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        "application/msword",
        "text/html",
        "text/markdown",
    }
)
MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class KnowledgeBaseClient:
    """Upload, list and delete knowledge-base files of one bot."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_root: str,
        token: str | None,
        bot_id: str | None,
        workspace_id: str | None = None,
        fallback_kb_id: str | None = None,
    ):
        self._client = client
        self._api_root = api_root.rstrip("/")
        self._token = token
        self._bot_id = bot_id
        self._workspace_id = workspace_id
        self._fallback_kb_id = fallback_kb_id

    def _headers(self, with_bot: bool = True) -> dict:
        if not self._token:
            raise UpstreamUnavailable("Botpress admin API is not configured (BOTPRESS_BEARER_TOKEN)")
        headers = {
            "Authorization": f"Bearer {self._token}",
            "Content-Type": "application/json",
        }
        if with_bot and self._bot_id:
            headers["x-bot-id"] = self._bot_id
        return headers

    async def resolve_knowledge_base(self) -> str | None:
        """First existing knowledge base, a newly created one, or the configured fallback."""
        try:
            listing = await request_json(
                self._client,
                "GET",
                f"{self._api_root}/v1/knowledge-bases",
                "Botpress admin",
                headers=self._headers(with_bot=False),
            )
            items = listing if isinstance(listing, list) else listing.get("knowledgeBases", [])
            if items:
                return items[0]["id"]

            created = await request_json(
                self._client,
                "POST",
                f"{self._api_root}/v1/knowledge-bases",
                "Botpress admin",
                json={
                    "name": "Documents",
                    "description": "Knowledge base for uploaded documents",
                },
                headers=self._headers(with_bot=False),
            )
            return created["id"]
        except (UpstreamUnavailable, KeyError) as e:
            logger.warning(
                "Knowledge base lookup failed (%s); using configured id %s",
                e,
                self._fallback_kb_id,
            )
            return self._fallback_kb_id

    async def upload(
        self,
        filename: str,
        content: bytes,
        content_type: str,
        title: str | None = None,
    ) -> dict:
        """Register, upload and index a document."""
        if content_type not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                "Invalid file type. Only PDF, TXT, DOCX, DOC, HTML, and MD files are allowed."
            )
        if len(content) > MAX_UPLOAD_BYTES:
            raise ValidationError("File too large. Maximum size is 10MB.")

        kb_id = await self.resolve_knowledge_base()
        file_key = f"kb-{kb_id}/{int(time.time() * 1000)}-{filename}"

        registered = await request_json(
            self._client,
            "PUT",
            f"{self._api_root}/v1/files",
            "Botpress admin",
            json={
                "key": file_key,
                "contentType": content_type,
                "size": len(content),
                "index": True,
                "accessPolicies": ["public_content"],
                "tags": {
                    "source": "knowledge-base",
                    "kbId": kb_id,
                    "title": title or filename,
                    "category": "support",
                    "uploadedVia": "api",
                },
            },
            headers=self._headers(),
        )
        file_obj = registered.get("file", registered)
        upload_url = file_obj.get("uploadUrl")
        file_id = file_obj.get("id")
        if not upload_url or not file_id:
            raise UpstreamUnavailable("No uploadUrl or fileId in Botpress response")

        await send_request(
            self._client,
            "PUT",
            upload_url,
            "File storage",
            content=content,
            headers={"Content-Type": content_type},
        )

        document = await request_json(
            self._client,
            "POST",
            f"{self._api_root}/v3/knowledge-bases/{kb_id}/documents",
            "Botpress admin",
            json={
                "name": filename,
                "type": "file",
                "fileId": file_id,
                "workspaceId": self._workspace_id,
            },
            headers=self._headers(),
        )
        logger.info("Uploaded %s to knowledge base %s as %s", filename, kb_id, file_id)
        return {"fileId": file_id, "documentId": document.get("id"), "fileName": filename}

    async def list_files(self, limit: int = 100) -> list:
        """Knowledge-base files tagged by this service."""
        data = await request_json(
            self._client,
            "GET",
            f"{self._api_root}/v1/files",
            "Botpress admin",
            params={
                "tags[category]": "support",
                "tags[source]": "knowledge-base",
                "limit": limit,
            },
            headers=self._headers(),
        )
        return data.get("files", []) if isinstance(data, dict) else data

    async def delete_file(self, file_id: str) -> dict:
        return await request_json(
            self._client,
            "DELETE",
            f"{self._api_root}/v1/files/{file_id}",
            "Botpress admin",
            headers=self._headers(),
        )
