"""Tests for Storage."""

import asyncio

import pytest

from egap.errors import PersistenceError
from egap.models import (
    Agent,
    SpanStatus,
    Task,
    Tool,
    TraceSpan,
    UsageAction,
    UsageLog,
)


class TestStorageInit:
    """Tests for Storage initialization."""

    async def test_init_creates_tables(self, storage):
        """Test that init creates all tables."""
        async with storage._conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ) as cursor:
            tables = [row[0] for row in await cursor.fetchall()]
            assert "agents" in tables
            assert "tools" in tables
            assert "agent_tools" in tables
            assert "tasks" in tables
            assert "trace_spans" in tables
            assert "usage_logs" in tables

    async def test_uninitialized_storage_raises(self):
        """Test that using storage before init raises PersistenceError."""
        from egap.storage import Storage

        st = Storage(":memory:")
        with pytest.raises(PersistenceError, match="not initialized"):
            await st.list_tools()


class TestStorageAgents:
    """Tests for Agent and Tool storage."""

    async def test_save_and_get_agent_with_tools(self, storage):
        """Test that agents round-trip with their tools."""
        search = Tool(id="t1", name="search", description="Google Search")
        email = Tool(id="t2", name="email", description="Send Emails")
        await storage.save_tool(search)
        await storage.save_tool(email)

        agent = Agent(id="a1", name="Scout", role="github", tools=[search, email])
        await storage.save_agent(agent)

        retrieved = await storage.get_agent("a1")
        assert retrieved is not None
        assert retrieved.role == "github"
        assert {t.name for t in retrieved.tools} == {"search", "email"}

    async def test_get_nonexistent_agent(self, storage):
        """Test that unknown agent IDs return None."""
        assert await storage.get_agent("missing") is None

    async def test_find_agent_by_role(self, storage, github_agent):
        """Test lookup by routing role."""
        found = await storage.find_agent_by_role("github")
        assert found is not None
        assert found.id == github_agent.id

    async def test_find_agent_by_role_miss(self, storage, github_agent):
        """Test that a lookup miss returns None, not an error."""
        assert await storage.find_agent_by_role("slack") is None

    async def test_save_agent_updates_existing(self, storage, github_agent):
        """Test that saving the same agent ID updates it and relinks tools."""
        github_agent.name = "Renamed"
        github_agent.tools = []
        await storage.save_agent(github_agent)

        retrieved = await storage.get_agent(github_agent.id)
        assert retrieved.name == "Renamed"
        assert retrieved.tools == []

    async def test_list_agents(self, storage, github_agent):
        """Test listing agents."""
        await storage.save_agent(Agent(id="a2", name="Chatty", role="slack"))
        agents = await storage.list_agents()
        assert [a.id for a in agents] == [github_agent.id, "a2"]

    async def test_list_tools(self, storage):
        """Test that tools are listed by name."""
        await storage.save_tool(Tool(id="t2", name="search"))
        await storage.save_tool(Tool(id="t1", name="email"))
        assert [t.name for t in await storage.list_tools()] == ["email", "search"]


class TestStorageTasks:
    """Tests for Task storage."""

    async def test_create_and_get_task(self, storage, github_agent):
        """Test creating a task."""
        task = Task(
            id="task1",
            description="Signal from github: {}",
            input_payload={"source": "github", "payload": {"msg": "x"}},
            agent_id=github_agent.id,
        )
        await storage.create_task(task)

        retrieved = await storage.get_task("task1")
        assert retrieved is not None
        assert retrieved.input_payload == {"source": "github", "payload": {"msg": "x"}}
        assert retrieved.agent_id == github_agent.id

    async def test_create_task_generates_id(self, storage, github_agent):
        """Test that a task without ID gets one."""
        task = Task(id=None, description="d", input_payload={}, agent_id=github_agent.id)  # type: ignore
        await storage.create_task(task)
        assert task.id is not None

    async def test_task_requires_existing_agent(self, storage):
        """Test that tasks must reference an existing agent."""
        task = Task(id="t", description="d", input_payload={}, agent_id="ghost")
        with pytest.raises(PersistenceError):
            await storage.create_task(task)

    async def test_list_tasks_by_agent(self, storage, github_agent):
        """Test filtering tasks by agent."""
        await storage.save_agent(Agent(id="a2", name="Other", role="slack"))
        await storage.create_task(
            Task(id="t1", description="d", input_payload={}, agent_id=github_agent.id)
        )
        await storage.create_task(
            Task(id="t2", description="d", input_payload={}, agent_id="a2")
        )

        assert len(await storage.list_tasks()) == 2
        assert [t.id for t in await storage.list_tasks(agent_id="a2")] == ["t2"]


class TestStorageSpans:
    """Tests for TraceSpan storage."""

    async def test_create_open_span(self, storage):
        """Test that a new span has no terminal fields."""
        await storage.create_span(
            TraceSpan(id="root", trace_id="t1", service="ingress", operation="op")
        )

        span = await storage.get_span("root")
        assert span.duration_ms is None
        assert span.status is None
        assert span.parent_id is None

    async def test_update_span(self, storage):
        """Test setting terminal fields."""
        await storage.create_span(
            TraceSpan(id="root", trace_id="t1", service="ingress", operation="op")
        )
        await storage.update_span("root", 42, SpanStatus.ERROR)

        span = await storage.get_span("root")
        assert span.duration_ms == 42
        assert span.status == SpanStatus.ERROR

    async def test_update_missing_span_raises(self, storage):
        """Test that updating an unknown span raises PersistenceError."""
        with pytest.raises(PersistenceError, match="not found"):
            await storage.update_span("missing", 1, SpanStatus.OK)

    async def test_child_requires_existing_parent(self, storage):
        """Test that a child span cannot reference a missing parent."""
        orphan = TraceSpan(
            id="child",
            trace_id="t1",
            service="ingress",
            operation="op",
            parent_id="missing",
        )
        with pytest.raises(PersistenceError):
            await storage.create_span(orphan)

    async def test_list_spans_by_trace(self, storage):
        """Test listing spans of one trace in insertion order."""
        await storage.create_span(
            TraceSpan(id="r1", trace_id="t1", service="s", operation="root")
        )
        await storage.create_span(
            TraceSpan(
                id="c1",
                trace_id="t1",
                service="s",
                operation="child",
                parent_id="r1",
                metadata={"found": False},
            )
        )
        await storage.create_span(
            TraceSpan(id="r2", trace_id="t2", service="s", operation="root")
        )

        spans = await storage.list_spans("t1")
        assert [s.id for s in spans] == ["r1", "c1"]
        assert spans[1].metadata == {"found": False}


class TestStorageUsageLogs:
    """Tests for UsageLog storage."""

    async def test_create_and_filter(self, storage, github_agent):
        """Test appending and filtering usage logs."""
        await storage.create_usage_log(
            UsageLog(
                id="u1",
                agent_id=github_agent.id,
                action=UsageAction.TOOL_CALL,
                tokens=120,
                cost_usd=0.0012,
                metadata={"taskId": "t1"},
            )
        )
        await storage.create_usage_log(
            UsageLog(
                id="u2",
                agent_id=github_agent.id,
                action=UsageAction.RESUME,
                tokens=50,
                cost_usd=0.0005,
            )
        )

        all_logs = await storage.list_usage_logs()
        assert [log.id for log in all_logs] == ["u1", "u2"]

        resumes = await storage.list_usage_logs(action=UsageAction.RESUME)
        assert len(resumes) == 1
        assert resumes[0].tokens == 50
        assert resumes[0].cost_usd == pytest.approx(0.0005)

        assert await storage.list_usage_logs(agent_id="other") == []


class TestStorageConcurrentWrites:
    """Tests for writes from concurrent flows on the shared connection."""

    async def test_failed_write_keeps_concurrent_task(self, storage, github_agent):
        """Test that a rejected insert does not undo another flow's task."""
        for i in range(20):
            ghost_log = UsageLog(
                id=f"u-{i}",
                agent_id="ghost",
                action=UsageAction.RESUME,
                tokens=50,
                cost_usd=0.0005,
            )
            task = Task(
                id=f"task-{i}",
                description="d",
                input_payload={},
                agent_id=github_agent.id,
            )

            results = await asyncio.gather(
                storage.create_usage_log(ghost_log),
                storage.create_task(task),
                return_exceptions=True,
            )

            assert isinstance(results[0], PersistenceError)
            assert results[1].id == task.id
            assert await storage.get_task(task.id) is not None

        assert len(await storage.list_tasks()) == 20
        assert await storage.list_usage_logs() == []


class TestStorageClear:
    """Tests for Storage.clear()."""

    async def test_clear_removes_everything(self, storage, github_agent):
        """Test that clear empties all tables."""
        await storage.create_task(
            Task(id="t1", description="d", input_payload={}, agent_id=github_agent.id)
        )
        await storage.create_span(
            TraceSpan(id="r1", trace_id="t1", service="s", operation="root")
        )

        await storage.clear()

        assert await storage.list_tasks() == []
        assert await storage.list_agents() == []
        assert await storage.list_tools() == []
        assert await storage.list_spans("t1") == []
