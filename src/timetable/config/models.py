"""Configuration models using Pydantic."""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from timetable.config.paths import get_database_path, get_store_dir


class ConfigError(Exception):
    """Configuration error."""

    pass


class ServerConfig(BaseModel):
    """Configuration for the HTTP JSON-RPC endpoint."""

    host: str = "127.0.0.1"
    port: int = 8080
    rpc_path: str = "/rpc"

    @field_validator("rpc_path")
    @classmethod
    def _leading_slash(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("rpc_path must start with '/'")
        return value


class RPCConfig(BaseModel):
    """Configuration for the optional Unix socket listener."""

    socket_path: Path | None = None


class StoreConfig(BaseModel):
    """Configuration for timetable persistence.

    Backends:
    - "jsonl": single JSONL document file under ``path``
    - "sqlite": SQL database at ``database_url`` or ``database_path``
    - "memory": nothing is persisted across restarts
    """

    backend: Literal["jsonl", "sqlite", "memory"] = "jsonl"
    path: Path = Field(default_factory=get_store_dir)
    database_path: Path = Field(default_factory=get_database_path)
    database_url: SecretStr | None = None


class LoggingConfig(BaseModel):
    """Configuration for logging output."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None
    log_to_file: bool = True

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class TimetableConfig(BaseModel):
    """Root configuration model."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    rpc: RPCConfig = Field(default_factory=RPCConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def _check_database_url(self) -> "TimetableConfig":
        url = self.store.database_url
        if url is None:
            return self
        if self.store.backend != "sqlite":
            raise ValueError(
                f"store.database_url requires backend 'sqlite', "
                f"got '{self.store.backend}'"
            )
        if "+" not in url.get_secret_value().split("://", 1)[0]:
            raise ValueError(
                "store.database_url must name an async driver, "
                "e.g. sqlite+aiosqlite:///timetables.db"
            )
        return self

    def resolve_database_url(self) -> str:
        """Get the SQL database URL for the sqlite backend.

        Raises:
            ConfigError: If the store backend is not SQL-based.
        """
        if self.store.backend != "sqlite":
            raise ConfigError(
                f"Store backend '{self.store.backend}' has no database URL"
            )
        if self.store.database_url is not None:
            return self.store.database_url.get_secret_value()
        return f"sqlite+aiosqlite:///{self.store.database_path}"
