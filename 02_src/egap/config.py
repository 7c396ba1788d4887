"""Project-level configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from .errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "egap.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

ROLES = ("ingress", "worker", "local")
QUEUE_BACKENDS = ("pubsub", "memory")


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


@dataclass
class Settings:
    """Runtime settings read from the environment."""

    role: str
    project_id: str
    topic_name: str | None = None
    subscription_name: str | None = None
    dead_letter_topic: str | None = None
    queue_backend: str = "pubsub"
    api_host: str = "0.0.0.0"
    port: int = 8080
    database_url: str | None = None
    service_name: str = "egap-ingress"
    log_level: str = "INFO"

    @property
    def runs_ingress(self) -> bool:
        return self.role in ("ingress", "local")

    @property
    def runs_worker(self) -> bool:
        return self.role in ("worker", "local")


def load_settings(role: str, env: dict[str, str] | None = None) -> Settings:
    """
    Build Settings for a process role from environment variables.

    Args:
        role: "ingress", "worker" or "local" (both in one process).
        env: Mapping to read from. Defaults to os.environ.

    Raises:
        ConfigError: if the role is unknown or a queue identifier is missing.
    """
    if env is None:
        env = dict(os.environ)

    if role not in ROLES:
        raise ConfigError(f"Unknown role {role!r}, expected one of {', '.join(ROLES)}")

    project_id = env.get("PROJECT_ID")
    topic_name = env.get("TOPIC_NAME")
    subscription_name = env.get("SUBSCRIPTION_NAME")

    missing = []
    if not project_id:
        missing.append("PROJECT_ID")
    if role in ("ingress", "local") and not topic_name:
        missing.append("TOPIC_NAME")
    if role in ("worker", "local") and not subscription_name:
        missing.append("SUBSCRIPTION_NAME")
    if missing:
        raise ConfigError(f"Missing required env vars: {', '.join(missing)}")

    queue_backend = env.get("QUEUE_BACKEND", "pubsub").lower()
    if queue_backend not in QUEUE_BACKENDS:
        raise ConfigError(f"Unsupported QUEUE_BACKEND {queue_backend!r}")

    try:
        port = int(env.get("PORT") or 8080)
    except ValueError as e:
        raise ConfigError(f"PORT must be an integer: {e}") from e

    return Settings(
        role=role,
        project_id=project_id,
        topic_name=topic_name,
        subscription_name=subscription_name,
        dead_letter_topic=env.get("DEAD_LETTER_TOPIC") or None,
        queue_backend=queue_backend,
        api_host=env.get("API_HOST", "0.0.0.0"),
        port=port,
        database_url=env.get("DATABASE_URL") or None,
        service_name=env.get("SERVICE_NAME", "egap-ingress"),
        log_level=env.get("LOG_LEVEL", "INFO"),
    )
