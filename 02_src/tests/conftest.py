"""Pytest configuration and fixtures."""

import json
import sys
import uuid
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

TOPIC = "egap-signals"
SUBSCRIPTION = "egap-signals-worker"


@pytest_asyncio.fixture
async def storage():
    """Create in-memory storage for testing."""
    from egap.storage import Storage

    st = Storage(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest_asyncio.fixture
async def queue():
    """Create in-memory queue with the signal subscription bound."""
    from egap.queue import InMemoryQueue

    q = InMemoryQueue()
    q.create_subscription(SUBSCRIPTION, TOPIC)
    yield q
    await q.close()


@pytest.fixture
def recorder(storage):
    """Create TraceRecorder over storage."""
    from egap.tracing import TraceRecorder

    return TraceRecorder(storage)


@pytest.fixture
def counters():
    """Create fresh audit counters."""
    from egap.ingress import AuditCounters

    return AuditCounters()


@pytest.fixture
def gateway(queue, recorder, counters, storage):
    """Create IngressGateway publishing to the test topic."""
    from egap.ingress import IngressGateway

    return IngressGateway(
        queue=queue,
        recorder=recorder,
        counters=counters,
        storage=storage,
        topic=TOPIC,
    )


@pytest_asyncio.fixture
async def worker(queue, storage, recorder):
    """Create and start OrchestratorWorker on the test subscription."""
    from egap.worker import OrchestratorWorker

    w = OrchestratorWorker(
        queue=queue,
        storage=storage,
        recorder=recorder,
        subscription=SUBSCRIPTION,
    )
    await w.start()
    yield w
    await w.stop()


@pytest_asyncio.fixture
async def github_agent(storage):
    """Register an agent routed to by source 'github'."""
    from egap.models import Agent, Tool

    tool = Tool(id="tool-github", name="github", description="GitHub Integration")
    await storage.save_tool(tool)
    agent = Agent(
        id="agent-github",
        name="Repo Watcher",
        role="github",
        goal="Review incoming commits",
        system_prompt="You review commits.",
        tools=[tool],
    )
    await storage.save_agent(agent)
    return agent


@pytest.fixture
def settings():
    """Settings for a single-process (local) application on in-memory backends."""
    from egap.config import Settings

    return Settings(
        role="local",
        project_id="test-project",
        topic_name=TOPIC,
        subscription_name=SUBSCRIPTION,
        queue_backend="memory",
        database_url=":memory:",
        service_name="egap-ingress",
    )


@pytest_asyncio.fixture
async def application(settings):
    """Create and start a local Application."""
    from egap.app import Application

    app = Application(settings)
    await app.start()
    yield app
    await app.stop()


@pytest_asyncio.fixture
async def client(application):
    """HTTP client bound to the FastAPI app (lifespan handled by `application`)."""
    from egap.api import create_fastapi_app

    fastapi_app = create_fastapi_app(application)
    transport = httpx.ASGITransport(app=fastapi_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def make_message():
    """Build ReceivedMessages for direct worker calls."""
    from egap.queue import ReceivedMessage

    def _make(data, attributes=None, message_id=None):
        raw = data if isinstance(data, bytes) else json.dumps(data).encode("utf-8")
        return ReceivedMessage(
            id=message_id or str(uuid.uuid4()),
            data=raw,
            attributes=attributes or {},
        )

    return _make
