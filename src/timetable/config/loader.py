"""Configuration loading from TOML files and environment variables."""

import os
import tomllib
from pathlib import Path
from typing import Any

from pydantic import SecretStr

from timetable.config.models import TimetableConfig
from timetable.config.paths import get_config_path

DATABASE_URL_ENV = "TIMETABLE_DATABASE_URL"


def _get_default_config_paths() -> list[Path]:
    """Get ordered list of default config file locations."""
    return [
        Path("timetable.toml"),  # Current directory
        get_config_path(),  # ~/.timetable/config.toml (or TIMETABLE_HOME)
        Path("/etc/timetable/config.toml"),  # System-wide
    ]


def _resolve_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """Apply environment overrides where not set in config."""
    if url := os.environ.get(DATABASE_URL_ENV):
        store = config.setdefault("store", {})
        if store.get("database_url") is None:
            store["database_url"] = SecretStr(url)
            store.setdefault("backend", "sqlite")
    return config


def load_config(path: Path | None = None) -> TimetableConfig:
    """Load configuration from TOML file.

    Args:
        path: Explicit path to config file. If None, searches default locations.

    Returns:
        Validated TimetableConfig instance.

    Raises:
        FileNotFoundError: If no config file is found.
        ValueError: If config file is invalid.
    """
    config_path: Path | None = None

    default_paths = _get_default_config_paths()

    if path is not None:
        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        for default_path in default_paths:
            expanded = default_path.expanduser()
            if expanded.exists():
                config_path = expanded
                break

    if config_path is None:
        raise FileNotFoundError(
            f"No config file found. Searched: {', '.join(str(p) for p in default_paths)}"
        )

    with config_path.open("rb") as f:
        raw_config = tomllib.load(f)

    raw_config = _resolve_env_overrides(raw_config)

    return TimetableConfig.model_validate(raw_config)


def get_default_config() -> TimetableConfig:
    """Get a default configuration, honoring environment overrides."""
    return TimetableConfig.model_validate(_resolve_env_overrides({}))
