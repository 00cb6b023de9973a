import random

import httpx
import pytest
from typer.testing import CliRunner

from asanacli.infrastructure.config import settings as settings_module
from asanacli.infrastructure.config.settings import ClientConfig, ENV_KEYS, clear_test_config
from asanacli.infrastructure.monitoring.debug_tracer import DebugTracer
from asanacli.infrastructure.resilience.backoff import BackoffPolicy

TEST_TOKEN = "test-token-1234567890"
TEST_BASE_URL = "https://api.test/1.0"


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keeps tests away from the real config file, .env files and ASANA_* variables."""
    for env_key in ENV_KEYS.values():
        monkeypatch.delenv(env_key, raising=False)
    monkeypatch.setattr(settings_module, "DEFAULT_CONFIG_FILE", tmp_path / "config.yaml")
    monkeypatch.setattr(settings_module, "_config", {})
    monkeypatch.chdir(tmp_path)
    yield
    clear_test_config()


@pytest.fixture
def env_token(monkeypatch):
    """Sets a dummy access token in the environment."""
    monkeypatch.setenv("ASANA_ACCESS_TOKEN", TEST_TOKEN)
    return TEST_TOKEN


@pytest.fixture
def client_config():
    return ClientConfig(access_token=TEST_TOKEN, base_url=TEST_BASE_URL, timeout=5.0)


@pytest.fixture
def fast_backoff():
    """Millisecond-scale backoff with a seeded random source."""
    return BackoffPolicy(base=0.001, cap=0.01, rng=random.Random(0))


@pytest.fixture
def silent_tracer():
    return DebugTracer(sink=None, enabled=False)


class RecordingTransport:
    """Wraps a handler in an ``httpx.MockTransport`` and records every request."""

    def __init__(self, handler):
        self.requests = []
        self._handler = handler
        self.transport = httpx.MockTransport(self._record)

    def _record(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._handler(request)

    @property
    def calls(self) -> int:
        return len(self.requests)


@pytest.fixture
def recording_transport():
    """Factory fixture: ``recording_transport(handler)`` returns a RecordingTransport."""
    return RecordingTransport
