"""Configuration module."""

from timetable.config.loader import get_default_config, load_config
from timetable.config.models import (
    ConfigError,
    LoggingConfig,
    RPCConfig,
    ServerConfig,
    StoreConfig,
    TimetableConfig,
)
from timetable.config.paths import (
    get_config_path,
    get_database_path,
    get_logs_path,
    get_store_dir,
    get_timetable_home,
)

__all__ = [
    "ConfigError",
    "LoggingConfig",
    "RPCConfig",
    "ServerConfig",
    "StoreConfig",
    "TimetableConfig",
    "get_config_path",
    "get_database_path",
    "get_default_config",
    "get_logs_path",
    "get_store_dir",
    "get_timetable_home",
    "load_config",
]
