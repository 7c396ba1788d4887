"""Main entry point for the EGAP relay.

Usage:
    python main.py ingress   # HTTP gateway, publishes to TOPIC_NAME
    python main.py worker    # orchestrator, consumes SUBSCRIPTION_NAME
    python main.py local     # both in one process
"""

import asyncio
import signal
import sys
from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from egap.api import create_fastapi_app
from egap.app import Application
from egap.config import Settings, load_settings
from egap.errors import ConfigError
from egap.logging_config import get_logger, setup_logging

logger = get_logger("egap.main")


async def run_worker(settings: Settings) -> None:
    """Run the orchestrator until SIGINT/SIGTERM."""
    application = Application(settings)
    await application.start()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info(
        "EGAP Orchestrator Worker is running",
        extra={
            "context": {
                "projectId": settings.project_id,
                "subscription": settings.subscription_name,
            }
        },
    )
    try:
        await stop_event.wait()
    finally:
        await application.stop()


def main():
    """Run the application."""
    project_root = Path(__file__).resolve().parent.parent
    load_dotenv(project_root / ".env")

    role = sys.argv[1] if len(sys.argv) > 1 else "ingress"
    setup_logging(service=role)

    try:
        settings = load_settings(role)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        sys.exit(1)

    if settings.role == "worker":
        asyncio.run(run_worker(settings))
        return

    logger.info(
        "EGAP Ingress Gateway listening on http://%s:%s",
        settings.api_host,
        settings.port,
        extra={
            "context": {
                "projectId": settings.project_id,
                "topic": settings.topic_name,
                "role": settings.role,
            }
        },
    )

    app = create_fastapi_app(Application(settings))

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
