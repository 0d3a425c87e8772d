"""Shared test fixtures and factories."""

from pathlib import Path

import pytest

from timetable.config.models import StoreConfig, TimetableConfig
from timetable.config.paths import ENV_VAR, get_timetable_home
from timetable.rpc import RPCServer, register_timetable_methods
from timetable.schedule import TimetableRegistry
from timetable.store import MemoryTimetableStore

# =============================================================================
# Environment
# =============================================================================


@pytest.fixture(autouse=True)
def timetable_home(tmp_path: Path, monkeypatch):
    """Point TIMETABLE_HOME at a temp dir for every test."""
    home = tmp_path / "home"
    monkeypatch.setenv(ENV_VAR, str(home))
    monkeypatch.delenv("TIMETABLE_DATABASE_URL", raising=False)
    monkeypatch.delenv("TIMETABLE_LOG_LEVEL", raising=False)
    get_timetable_home.cache_clear()
    yield home
    get_timetable_home.cache_clear()


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def store() -> MemoryTimetableStore:
    return MemoryTimetableStore()


@pytest.fixture
def registry(store: MemoryTimetableStore) -> TimetableRegistry:
    return TimetableRegistry(store)


@pytest.fixture
def rpc_server(registry: TimetableRegistry) -> RPCServer:
    server = RPCServer()
    register_timetable_methods(server, registry)
    return server


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def memory_config() -> TimetableConfig:
    return TimetableConfig(store=StoreConfig(backend="memory"))


@pytest.fixture
def config_toml_content() -> str:
    """Valid TOML config content."""
    return """
[server]
host = "0.0.0.0"
port = 9090
rpc_path = "/jsonrpc"

[store]
backend = "jsonl"
path = "/var/lib/timetable"

[logging]
level = "debug"
log_to_file = false
"""


@pytest.fixture
def config_file(tmp_path: Path, config_toml_content: str) -> Path:
    """Create a temporary config file."""
    config_path = tmp_path / "config.toml"
    config_path.write_text(config_toml_content)
    return config_path


@pytest.fixture
def cli_runner():
    """Create a Typer CLI test runner with colors disabled."""
    from typer.testing import CliRunner

    return CliRunner(env={"NO_COLOR": "1"})

