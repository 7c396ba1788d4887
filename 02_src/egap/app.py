"""Application bootstrap and lifecycle management."""

from typing import Protocol

from .config import Settings, resolve_db_path
from .ingress import AuditCounters, IngressGateway
from .logging_config import get_logger
from .queue import InMemoryQueue, IQueueClient
from .queue.pubsub import PubSubQueue
from .storage import IStorage, Storage
from .tracing import TraceRecorder
from .worker import OrchestratorWorker

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
        """Reset data between test runs."""
        ...


class Application:
    """Wires the relay components for one process role."""

    def __init__(
        self,
        settings: Settings,
        queue: IQueueClient | None = None,
        db_path: str | None = None,
    ):
        self._settings = settings
        self._db_path = resolve_db_path(
            db_path if db_path is not None else settings.database_url
        )
        self._queue_override = queue

        # Components (will be initialized in start())
        self._storage: IStorage | None = None
        self._queue: IQueueClient | None = None
        self._recorder: TraceRecorder | None = None
        self._counters: AuditCounters | None = None
        self._gateway: IngressGateway | None = None
        self._worker: OrchestratorWorker | None = None

    async def start(self) -> None:
        """Initialize components in dependency order."""
        settings = self._settings
        logger.info("Starting application (role=%s)", settings.role)

        # 1. Storage (no dependencies)
        self._storage = Storage(self._db_path)
        await self._storage.init()
        logger.info("Storage initialized")

        # 2. Queue client (no internal dependencies)
        self._queue = self._build_queue()
        logger.info("Queue client initialized (%s)", type(self._queue).__name__)

        # 3. TraceRecorder (depends on Storage)
        self._recorder = TraceRecorder(self._storage)

        # 4. Ingress side: counters live as long as the process
        if settings.runs_ingress:
            self._counters = AuditCounters()
            self._gateway = IngressGateway(
                queue=self._queue,
                recorder=self._recorder,
                counters=self._counters,
                storage=self._storage,
                topic=settings.topic_name,
            )
            logger.info("Ingress gateway ready (topic=%s)", settings.topic_name)

        # 5. Worker side (depends on Queue, Storage, TraceRecorder)
        if settings.runs_worker:
            self._worker = OrchestratorWorker(
                queue=self._queue,
                storage=self._storage,
                recorder=self._recorder,
                subscription=settings.subscription_name,
                dead_letter_topic=settings.dead_letter_topic,
            )
            await self._worker.start()

        logger.info("All components initialized successfully")

    def _build_queue(self) -> IQueueClient:
        settings = self._settings
        if self._queue_override is not None:
            queue = self._queue_override
        elif settings.queue_backend == "memory":
            queue = InMemoryQueue()
        else:
            return PubSubQueue(settings.project_id)

        if (
            isinstance(queue, InMemoryQueue)
            and settings.topic_name
            and settings.subscription_name
        ):
            queue.create_subscription(settings.subscription_name, settings.topic_name)
        return queue

    async def stop(self) -> None:
        """Shutdown in reverse order."""
        if self._worker:
            await self._worker.stop()
        if self._queue:
            await self._queue.close()
            logger.info("Queue client closed")
        if self._storage:
            await self._storage.close()
            logger.info("Storage closed")

    async def reset(self) -> None:
        """Reset data and counters between test runs."""
        if self._storage:
            await self._storage.clear()
            logger.info("Storage cleared")
        if self._gateway and self._counters:
            self._counters = AuditCounters()
            self._gateway = IngressGateway(
                queue=self._queue,
                recorder=self._recorder,
                counters=self._counters,
                storage=self._storage,
                topic=self._settings.topic_name,
            )
        logger.info("Reset complete")

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def storage(self) -> IStorage:
        """Get storage instance."""
        if not self._storage:
            raise RuntimeError("Application not started")
        return self._storage

    @property
    def queue(self) -> IQueueClient:
        """Get queue client instance."""
        if not self._queue:
            raise RuntimeError("Application not started")
        return self._queue

    @property
    def gateway(self) -> IngressGateway:
        """Get ingress gateway instance."""
        if not self._gateway:
            raise RuntimeError("Application not started or not an ingress role")
        return self._gateway

    @property
    def counters(self) -> AuditCounters:
        """Get audit counters."""
        if not self._counters:
            raise RuntimeError("Application not started or not an ingress role")
        return self._counters

    @property
    def worker(self) -> OrchestratorWorker:
        """Get orchestrator worker instance."""
        if not self._worker:
            raise RuntimeError("Application not started or not a worker role")
        return self._worker
