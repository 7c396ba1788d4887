"""SQLite storage implementation."""

import asyncio
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Protocol

import aiosqlite

from ..config import resolve_db_path
from ..errors import PersistenceError
from ..models import (
    Agent,
    SpanStatus,
    Task,
    Tool,
    TraceSpan,
    UsageAction,
    UsageLog,
)


class IStorage(Protocol):
    """CRUD store for agents, tasks, trace spans and usage logs (SQLite)."""

    async def init(self) -> None:
        """Initialize database and create tables."""
        ...

    async def close(self) -> None:
        """Close database connection."""
        ...

    # Tools / Agents
    async def save_tool(self, tool: Tool) -> None:
        """Insert or update a tool."""
        ...

    async def list_tools(self) -> list[Tool]:
        """Get all tools."""
        ...

    async def save_agent(self, agent: Agent) -> None:
        """Insert or update an agent and its tool links."""
        ...

    async def get_agent(self, agent_id: str) -> Agent | None:
        """Get an agent by ID."""
        ...

    async def find_agent_by_role(self, role: str) -> Agent | None:
        """Get the first agent registered for a role."""
        ...

    async def list_agents(self) -> list[Agent]:
        """Get all agents with their tools."""
        ...

    # Tasks
    async def create_task(self, task: Task) -> Task:
        """Insert a task."""
        ...

    async def get_task(self, task_id: str) -> Task | None:
        """Get a task by ID."""
        ...

    async def list_tasks(self, agent_id: str | None = None) -> list[Task]:
        """Get tasks, optionally for one agent (oldest first)."""
        ...

    # TraceSpans
    async def create_span(self, span: TraceSpan) -> TraceSpan:
        """Insert a span."""
        ...

    async def update_span(
        self, span_id: str, duration_ms: int, status: SpanStatus
    ) -> None:
        """Set a span's terminal fields."""
        ...

    async def get_span(self, span_id: str) -> TraceSpan | None:
        """Get a span by ID."""
        ...

    async def list_spans(self, trace_id: str) -> list[TraceSpan]:
        """Get all spans of a trace (oldest first)."""
        ...

    # UsageLogs
    async def create_usage_log(self, log: UsageLog) -> UsageLog:
        """Append a usage log row."""
        ...

    async def list_usage_logs(
        self, agent_id: str | None = None, action: UsageAction | None = None
    ) -> list[UsageLog]:
        """Get usage logs with optional filters (oldest first)."""
        ...

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        ...


def _ts(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def _parse_ts(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class Storage:
    """SQLite storage implementation."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            self._db_path = resolve_db_path()
        else:
            self._db_path = resolve_db_path(db_path)
        self._conn: aiosqlite.Connection | None = None
        # One shared connection: a rollback must never reach another
        # coroutine's uncommitted statement.
        self._write_lock = asyncio.Lock()

    async def init(self) -> None:
        """Initialize database and create tables."""
        self._conn = await aiosqlite.connect(self._db_path)
        await self._conn.execute("PRAGMA foreign_keys = ON")

        # Read and execute schema
        schema_path = Path(__file__).parent / "schema.sql"
        with open(schema_path, "r", encoding="utf-8") as f:
            schema_sql = f.read()
        await self._conn.executescript(schema_sql)
        await self._conn.commit()

    async def close(self) -> None:
        """Close database connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    # Low-level helpers. Every write commits on its own: writes belonging to
    # one flow are never grouped in a transaction.
    def _require_conn(self) -> aiosqlite.Connection:
        if not self._conn:
            raise PersistenceError("Storage not initialized")
        return self._conn

    async def _write(self, sql: str, params: Iterable[Any] = ()) -> int:
        conn = self._require_conn()
        async with self._write_lock:
            try:
                cursor = await conn.execute(sql, tuple(params))
                await conn.commit()
            except aiosqlite.Error as e:
                await conn.rollback()
                raise PersistenceError(f"Write failed: {e}") from e
        return cursor.rowcount

    async def _fetchall(self, sql: str, params: Iterable[Any] = ()) -> list:
        conn = self._require_conn()
        try:
            cursor = await conn.execute(sql, tuple(params))
            return list(await cursor.fetchall())
        except aiosqlite.Error as e:
            raise PersistenceError(f"Read failed: {e}") from e

    async def _fetchone(self, sql: str, params: Iterable[Any] = ()):
        rows = await self._fetchall(sql, params)
        return rows[0] if rows else None

    # Tools
    async def save_tool(self, tool: Tool) -> None:
        """Insert or update a tool."""
        await self._write(
            """
            INSERT INTO tools (id, name, description)
            VALUES (?, ?, ?)
            ON CONFLICT (id) DO UPDATE SET
                name = excluded.name,
                description = excluded.description
            """,
            (tool.id or str(uuid.uuid4()), tool.name, tool.description),
        )

    async def list_tools(self) -> list[Tool]:
        """Get all tools."""
        rows = await self._fetchall(
            "SELECT id, name, description FROM tools ORDER BY name ASC"
        )
        return [Tool(id=row[0], name=row[1], description=row[2]) for row in rows]

    # Agents
    async def save_agent(self, agent: Agent) -> None:
        """Insert or update an agent and its tool links."""
        if not agent.id:
            agent.id = str(uuid.uuid4())

        await self._write(
            """
            INSERT INTO agents (id, name, role, goal, system_prompt, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (id) DO UPDATE SET
                name = excluded.name,
                role = excluded.role,
                goal = excluded.goal,
                system_prompt = excluded.system_prompt
            """,
            (
                agent.id,
                agent.name,
                agent.role,
                agent.goal,
                agent.system_prompt,
                _ts(agent.created_at),
            ),
        )

        await self._write("DELETE FROM agent_tools WHERE agent_id = ?", (agent.id,))
        for tool in agent.tools:
            await self._write(
                "INSERT INTO agent_tools (agent_id, tool_id) VALUES (?, ?)",
                (agent.id, tool.id),
            )

    async def _tools_for(self, agent_id: str) -> list[Tool]:
        rows = await self._fetchall(
            """
            SELECT t.id, t.name, t.description
            FROM tools t
            JOIN agent_tools link ON link.tool_id = t.id
            WHERE link.agent_id = ?
            ORDER BY t.name ASC
            """,
            (agent_id,),
        )
        return [Tool(id=row[0], name=row[1], description=row[2]) for row in rows]

    async def _row_to_agent(self, row) -> Agent:
        return Agent(
            id=row[0],
            name=row[1],
            role=row[2],
            goal=row[3],
            system_prompt=row[4],
            created_at=_parse_ts(row[5]),
            tools=await self._tools_for(row[0]),
        )

    async def get_agent(self, agent_id: str) -> Agent | None:
        """Get an agent by ID."""
        row = await self._fetchone(
            """
            SELECT id, name, role, goal, system_prompt, created_at
            FROM agents
            WHERE id = ?
            """,
            (agent_id,),
        )
        if not row:
            return None
        return await self._row_to_agent(row)

    async def find_agent_by_role(self, role: str) -> Agent | None:
        """Get the first agent registered for a role."""
        row = await self._fetchone(
            """
            SELECT id, name, role, goal, system_prompt, created_at
            FROM agents
            WHERE role = ?
            ORDER BY created_at ASC, id ASC
            LIMIT 1
            """,
            (role,),
        )
        if not row:
            return None
        return await self._row_to_agent(row)

    async def list_agents(self) -> list[Agent]:
        """Get all agents with their tools."""
        rows = await self._fetchall(
            """
            SELECT id, name, role, goal, system_prompt, created_at
            FROM agents
            ORDER BY created_at ASC, rowid ASC
            """
        )
        return [await self._row_to_agent(row) for row in rows]

    # Tasks
    async def create_task(self, task: Task) -> Task:
        """Insert a task."""
        if not task.id:
            task.id = str(uuid.uuid4())

        await self._write(
            """
            INSERT INTO tasks (id, description, input_payload, agent_id, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                task.id,
                task.description,
                json.dumps(task.input_payload),
                task.agent_id,
                _ts(task.created_at),
            ),
        )
        return task

    def _row_to_task(self, row) -> Task:
        return Task(
            id=row[0],
            description=row[1],
            input_payload=json.loads(row[2]),
            agent_id=row[3],
            created_at=_parse_ts(row[4]),
        )

    async def get_task(self, task_id: str) -> Task | None:
        """Get a task by ID."""
        row = await self._fetchone(
            """
            SELECT id, description, input_payload, agent_id, created_at
            FROM tasks
            WHERE id = ?
            """,
            (task_id,),
        )
        return self._row_to_task(row) if row else None

    async def list_tasks(self, agent_id: str | None = None) -> list[Task]:
        """Get tasks, optionally for one agent (oldest first)."""
        if agent_id:
            rows = await self._fetchall(
                """
                SELECT id, description, input_payload, agent_id, created_at
                FROM tasks
                WHERE agent_id = ?
                ORDER BY created_at ASC, rowid ASC
                """,
                (agent_id,),
            )
        else:
            rows = await self._fetchall(
                """
                SELECT id, description, input_payload, agent_id, created_at
                FROM tasks
                ORDER BY created_at ASC, rowid ASC
                """
            )
        return [self._row_to_task(row) for row in rows]

    # TraceSpans
    async def create_span(self, span: TraceSpan) -> TraceSpan:
        """Insert a span."""
        if not span.id:
            span.id = str(uuid.uuid4())

        await self._write(
            """
            INSERT INTO trace_spans
            (id, trace_id, parent_id, service, operation, duration_ms, status,
             metadata, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                span.id,
                span.trace_id,
                span.parent_id,
                span.service,
                span.operation,
                span.duration_ms,
                span.status.value if span.status else None,
                json.dumps(span.metadata),
                _ts(span.created_at),
            ),
        )
        return span

    async def update_span(
        self, span_id: str, duration_ms: int, status: SpanStatus
    ) -> None:
        """
        Set a span's terminal fields.

        Raises:
            PersistenceError: if no span with this ID exists.
        """
        updated = await self._write(
            """
            UPDATE trace_spans
            SET duration_ms = ?, status = ?
            WHERE id = ?
            """,
            (duration_ms, status.value, span_id),
        )
        if updated == 0:
            raise PersistenceError(f"TraceSpan {span_id} not found")

    def _row_to_span(self, row) -> TraceSpan:
        return TraceSpan(
            id=row[0],
            trace_id=row[1],
            parent_id=row[2],
            service=row[3],
            operation=row[4],
            duration_ms=row[5],
            status=SpanStatus(row[6]) if row[6] else None,
            metadata=json.loads(row[7]),
            created_at=_parse_ts(row[8]),
        )

    async def get_span(self, span_id: str) -> TraceSpan | None:
        """Get a span by ID."""
        row = await self._fetchone(
            """
            SELECT id, trace_id, parent_id, service, operation, duration_ms,
                   status, metadata, created_at
            FROM trace_spans
            WHERE id = ?
            """,
            (span_id,),
        )
        return self._row_to_span(row) if row else None

    async def list_spans(self, trace_id: str) -> list[TraceSpan]:
        """Get all spans of a trace (oldest first)."""
        rows = await self._fetchall(
            """
            SELECT id, trace_id, parent_id, service, operation, duration_ms,
                   status, metadata, created_at
            FROM trace_spans
            WHERE trace_id = ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (trace_id,),
        )
        return [self._row_to_span(row) for row in rows]

    # UsageLogs
    async def create_usage_log(self, log: UsageLog) -> UsageLog:
        """Append a usage log row."""
        if not log.id:
            log.id = str(uuid.uuid4())

        await self._write(
            """
            INSERT INTO usage_logs
            (id, agent_id, action, tokens, cost_usd, metadata, timestamp)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                log.id,
                log.agent_id,
                log.action.value,
                log.tokens,
                log.cost_usd,
                json.dumps(log.metadata),
                _ts(log.timestamp),
            ),
        )
        return log

    async def list_usage_logs(
        self, agent_id: str | None = None, action: UsageAction | None = None
    ) -> list[UsageLog]:
        """Get usage logs with optional filters (oldest first)."""
        conditions = []
        params: list[Any] = []

        if agent_id:
            conditions.append("agent_id = ?")
            params.append(agent_id)
        if action:
            conditions.append("action = ?")
            params.append(action.value)

        where_clause = f"WHERE {' AND '.join(conditions)}" if conditions else ""

        rows = await self._fetchall(
            f"""
            SELECT id, agent_id, action, tokens, cost_usd, metadata, timestamp
            FROM usage_logs
            {where_clause}
            ORDER BY timestamp ASC, rowid ASC
            """,
            params,
        )
        return [
            UsageLog(
                id=row[0],
                agent_id=row[1],
                action=UsageAction(row[2]),
                tokens=row[3],
                cost_usd=row[4],
                metadata=json.loads(row[5]),
                timestamp=_parse_ts(row[6]),
            )
            for row in rows
        ]

    # Lifecycle
    async def clear(self) -> None:
        """Clear all data."""
        tables = [
            "usage_logs",
            "tasks",
            "trace_spans",
            "agent_tools",
            "agents",
            "tools",
        ]

        for table in tables:
            await self._write(f"DELETE FROM {table}")
