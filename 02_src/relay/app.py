"""Application bootstrap and lifecycle management."""

import os
from datetime import timedelta
from typing import Protocol

import httpx

from .botpress import (
    BotpressChatClient,
    BotpressDirectSender,
    IOutboundSender,
    KnowledgeBaseClient,
    N8NWebhookSender,
)
from .config import RelaySettings
from .logging_config import get_logger
from .reconciliation import (
    ExpirySweeper,
    ReconciliationStore,
    ReplyRelay,
    build_classifier,
)
from .storage import ITraceStorage, TraceStorage
from .tracing import TraceRecorder

logger = get_logger(__name__)


class IApplication(Protocol):
    """Bootstrap and lifecycle."""

    async def start(self) -> None:
        """Initialize components in dependency order."""
        ...

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        ...

    async def reset(self) -> None:
        """Drop reconciliation state and trace data."""
        ...


class Application:
    """Main application bootstrap."""

    def __init__(
        self,
        settings: RelaySettings | None = None,
        db_path: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self._settings = settings or RelaySettings.from_env()
        if db_path is None:
            db_path = self._settings.database_url or os.getenv("DATABASE_URL")
        self._db_path = db_path
        self._external_http = http_client

        # Components (initialized in start())
        self._storage: ITraceStorage | None = None
        self._recorder: TraceRecorder | None = None
        self._http: httpx.AsyncClient | None = None
        self._chat: BotpressChatClient | None = None
        self._knowledge: KnowledgeBaseClient | None = None
        self._sender: IOutboundSender | None = None
        self._store: ReconciliationStore | None = None
        self._relay: ReplyRelay | None = None
        self._sweeper: ExpirySweeper | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        logger.info("Starting application")
        settings = self._settings

        # 1. Trace storage and recorder
        self._storage = TraceStorage(self._db_path)
        await self._storage.init()
        self._recorder = TraceRecorder(self._storage)
        logger.info("Trace storage initialized")

        # 2. Vendor clients
        self._http = self._external_http or httpx.AsyncClient(
            timeout=settings.upstream_timeout_seconds
        )
        self._chat = BotpressChatClient(settings.chat_base_url, self._http)
        self._knowledge = KnowledgeBaseClient(
            self._http,
            api_root=settings.admin_api_root,
            token=settings.bearer_token,
            bot_id=settings.bot_id,
            workspace_id=settings.workspace_id,
            fallback_kb_id=settings.knowledge_base_id,
        )
        if settings.n8n_webhook_url:
            self._sender = N8NWebhookSender(settings.n8n_webhook_url, self._http)
        else:
            self._sender = BotpressDirectSender(self._chat)
        logger.info("Outbound channel: %s", type(self._sender).__name__)

        # 3. Reconciliation core
        self._store = ReconciliationStore(
            quiet_period=settings.quiet_period_seconds,
            retention=settings.retention_seconds,
        )
        self._relay = ReplyRelay(
            store=self._store,
            classifier=build_classifier(
                settings.authorship_heuristic, settings.bot_keywords
            ),
            recorder=self._recorder,
            sender=self._sender,
        )

        # 4. Periodic sweep
        self._sweeper = ExpirySweeper(
            self._store,
            interval=settings.sweep_interval_seconds,
            on_sweep=self._relay.record_sweep,
            on_tick=self._prune_traces,
        )
        await self._sweeper.start()
        logger.info("All components initialized successfully")

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._sweeper:
            await self._sweeper.stop()
        if self._store:
            self._store.clear()
            logger.info("Pending countdowns cancelled")
        if self._http and self._http is not self._external_http:
            await self._http.aclose()
        if self._storage:
            await self._storage.close()
            logger.info("Trace storage closed")

    async def _prune_traces(self) -> None:
        cutoff = self._store.now() - timedelta(seconds=self._settings.trace_retention_seconds)
        removed = await self._storage.prune(cutoff)
        if removed:
            logger.info("Pruned %d trace event(s)", removed)

    async def reset(self) -> None:
        """Drop reconciliation state and trace data."""
        if self._store:
            counts = self._store.clear()
            logger.info("Reconciliation state cleared", extra={"context": counts})
        if self._storage:
            await self._storage.clear()
            logger.info("Trace storage cleared")

    @property
    def settings(self) -> RelaySettings:
        return self._settings

    @property
    def storage(self) -> ITraceStorage:
        """Get trace storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def recorder(self) -> TraceRecorder:
        if not self._recorder:
            raise RuntimeError("Application not started")
        return self._recorder

    @property
    def relay(self) -> ReplyRelay:
        """Get reply relay instance."""
        if not self._relay:
            raise RuntimeError("Application not started")
        return self._relay

    @property
    def store(self) -> ReconciliationStore:
        if not self._store:
            raise RuntimeError("Application not started")
        return self._store

    @property
    def chat(self) -> BotpressChatClient:
        if not self._chat:
            raise RuntimeError("Application not started")
        return self._chat

    @property
    def knowledge(self) -> KnowledgeBaseClient:
        if not self._knowledge:
            raise RuntimeError("Application not started")
        return self._knowledge
