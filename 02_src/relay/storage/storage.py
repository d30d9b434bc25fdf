"""SQLite persistence for the relay's diagnostic trace."""

import json
import uuid
from datetime import datetime, timezone
from importlib import resources
from pathlib import Path
from typing import Protocol

import aiosqlite

from ..config import resolve_db_path
from ..models import TraceEvent


class ITraceStorage(Protocol):
    """Append-only store of TraceEvents, queryable per conversation."""

    async def init(self) -> None:
        ...

    async def close(self) -> None:
        ...

    async def save_trace_event(self, event: TraceEvent) -> None:
        """Persist one event. ``data["conversation_id"]`` is indexed when present."""
        ...

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        conversation_id: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        """Matching events, newest first."""
        ...

    async def prune(self, before: datetime) -> int:
        """Delete events older than ``before``; returns how many went."""
        ...

    async def clear(self) -> None:
        ...


def _utc_text(value: datetime) -> str:
    # Stored as text; comparisons only hold when every value shares one offset
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _event_from_row(row: aiosqlite.Row) -> TraceEvent:
    return TraceEvent(
        id=row["id"],
        event_type=row["event_type"],
        actor=row["actor"],
        data=json.loads(row["data"]),
        timestamp=datetime.fromisoformat(row["timestamp"]),
    )


class TraceStorage:
    """TraceEvents in one SQLite table via aiosqlite."""

    def __init__(self, db_path: str | Path | None = None):
        self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None

    @property
    def connection(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("Storage not initialized")
        return self._conn

    async def init(self) -> None:
        self._conn = await aiosqlite.connect(self._db_path)
        self._conn.row_factory = aiosqlite.Row
        schema = resources.files(__package__).joinpath("schema.sql").read_text(encoding="utf-8")
        await self._conn.executescript(schema)
        await self._conn.commit()

    async def close(self) -> None:
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def save_trace_event(self, event: TraceEvent) -> None:
        conversation_id = event.data.get("conversation_id")
        await self.connection.execute(
            "INSERT INTO trace_events (id, event_type, actor, conversation_id, data, timestamp) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                event.id or str(uuid.uuid4()),
                event.event_type,
                event.actor,
                str(conversation_id) if conversation_id is not None else None,
                json.dumps(event.data, default=str),
                _utc_text(event.timestamp),
            ),
        )
        await self.connection.commit()

    async def get_trace_events(
        self,
        after: datetime | None = None,
        event_types: list[str] | None = None,
        actor: str | None = None,
        conversation_id: str | None = None,
        limit: int = 100,
    ) -> list[TraceEvent]:
        clauses: list[str] = []
        params: list = []

        if after is not None:
            clauses.append("timestamp > ?")
            params.append(_utc_text(after))
        if event_types:
            clauses.append(f"event_type IN ({', '.join('?' for _ in event_types)})")
            params.extend(event_types)
        if actor:
            clauses.append("actor = ?")
            params.append(actor)
        if conversation_id:
            clauses.append("conversation_id = ?")
            params.append(conversation_id)

        sql = "SELECT id, event_type, actor, data, timestamp FROM trace_events"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY timestamp DESC LIMIT ?"
        params.append(limit)

        async with self.connection.execute(sql, params) as cursor:
            rows = await cursor.fetchall()
        return [_event_from_row(row) for row in rows]

    async def prune(self, before: datetime) -> int:
        cursor = await self.connection.execute(
            "DELETE FROM trace_events WHERE timestamp < ?", (_utc_text(before),)
        )
        await self.connection.commit()
        return cursor.rowcount

    async def clear(self) -> None:
        await self.connection.execute("DELETE FROM trace_events")
        await self.connection.commit()
