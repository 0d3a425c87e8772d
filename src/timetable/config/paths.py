"""Centralized path management for the timetable service.

All state (config, stores, logs) is stored under a single base directory.
The base directory can be overridden with the TIMETABLE_HOME environment
variable.

Default locations:
- Linux/macOS: ~/.timetable
- Windows: %USERPROFILE%\\.timetable
"""

import os
from functools import lru_cache
from pathlib import Path

ENV_VAR = "TIMETABLE_HOME"


@lru_cache(maxsize=1)
def get_timetable_home() -> Path:
    """Get the base directory for all timetable data.

    Resolution order:
    1. TIMETABLE_HOME environment variable (if set)
    2. Platform default (~/.timetable)
    """
    if env_home := os.environ.get(ENV_VAR):
        return Path(env_home).expanduser().resolve()
    return Path.home() / ".timetable"


def get_config_path() -> Path:
    """Get the default config file path."""
    return get_timetable_home() / "config.toml"


def get_store_dir() -> Path:
    """Get the directory holding the JSONL document store."""
    return get_timetable_home() / "data"


def get_database_path() -> Path:
    """Get the SQLite database path."""
    return get_timetable_home() / "data" / "timetables.db"


def get_logs_path() -> Path:
    """Get the JSONL log directory."""
    return get_timetable_home() / "logs"
