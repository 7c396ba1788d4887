"""Tests for settings loading."""

from pathlib import Path

import pytest

from egap.config import PROJECT_ROOT, load_settings, resolve_db_path
from egap.errors import ConfigError

BASE_ENV = {
    "PROJECT_ID": "proj",
    "TOPIC_NAME": "signals",
    "SUBSCRIPTION_NAME": "signals-worker",
}


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_ingress_defaults(self):
        """Test defaults for the ingress role."""
        settings = load_settings("ingress", {"PROJECT_ID": "proj", "TOPIC_NAME": "t"})

        assert settings.role == "ingress"
        assert settings.port == 8080
        assert settings.api_host == "0.0.0.0"
        assert settings.queue_backend == "pubsub"
        assert settings.dead_letter_topic is None
        assert settings.service_name == "egap-ingress"
        assert settings.runs_ingress
        assert not settings.runs_worker

    def test_worker_needs_only_subscription(self):
        """Test that the worker role does not need a topic."""
        settings = load_settings(
            "worker", {"PROJECT_ID": "proj", "SUBSCRIPTION_NAME": "sub"}
        )
        assert settings.runs_worker
        assert not settings.runs_ingress
        assert settings.topic_name is None

    def test_local_runs_both(self):
        """Test that local role runs ingress and worker."""
        settings = load_settings("local", BASE_ENV)
        assert settings.runs_ingress
        assert settings.runs_worker

    @pytest.mark.parametrize(
        "role, env, missing",
        [
            ("ingress", {"TOPIC_NAME": "t"}, "PROJECT_ID"),
            ("ingress", {"PROJECT_ID": "p"}, "TOPIC_NAME"),
            ("worker", {"PROJECT_ID": "p"}, "SUBSCRIPTION_NAME"),
            ("local", {"PROJECT_ID": "p", "TOPIC_NAME": "t"}, "SUBSCRIPTION_NAME"),
        ],
    )
    def test_missing_queue_identifiers(self, role, env, missing):
        """Test that missing queue identifiers raise ConfigError."""
        with pytest.raises(ConfigError, match=missing):
            load_settings(role, env)

    def test_unknown_role(self):
        """Test that an unknown role is rejected."""
        with pytest.raises(ConfigError, match="Unknown role"):
            load_settings("dashboard", BASE_ENV)

    def test_optional_values(self):
        """Test reading optional variables."""
        env = {
            **BASE_ENV,
            "PORT": "9090",
            "QUEUE_BACKEND": "MEMORY",
            "DEAD_LETTER_TOPIC": "signals-dead",
            "DATABASE_URL": ":memory:",
            "LOG_LEVEL": "DEBUG",
        }
        settings = load_settings("local", env)

        assert settings.port == 9090
        assert settings.queue_backend == "memory"
        assert settings.dead_letter_topic == "signals-dead"
        assert settings.database_url == ":memory:"
        assert settings.log_level == "DEBUG"

    def test_invalid_port(self):
        """Test that a non-numeric port raises ConfigError."""
        with pytest.raises(ConfigError, match="PORT"):
            load_settings("ingress", {**BASE_ENV, "PORT": "eighty"})

    def test_invalid_backend(self):
        """Test that an unknown queue backend raises ConfigError."""
        with pytest.raises(ConfigError, match="QUEUE_BACKEND"):
            load_settings("ingress", {**BASE_ENV, "QUEUE_BACKEND": "kafka"})


class TestResolveDbPath:
    """Tests for resolve_db_path()."""

    def test_memory(self):
        assert resolve_db_path(":memory:") == ":memory:"

    def test_relative_is_under_project_root(self):
        assert resolve_db_path("data/x.db") == PROJECT_ROOT / "data/x.db"

    def test_absolute_kept(self, tmp_path):
        target = tmp_path / "x.db"
        assert resolve_db_path(str(target)) == Path(target)
