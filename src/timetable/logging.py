"""Centralized logging configuration for the timetable service.

All entry points (CLI, server) should call configure_logging() early.

Logging Levels:
- DEBUG: Per-task mutations, RPC method failures returned to callers
- INFO: Startup/shutdown, timetable creation, loaded counts
- WARNING: Failed saves, unparsable run-at values, corrupt store lines
- ERROR: Unexpected exceptions in RPC handlers

Messages are short event names (``timetable_save_failed``) with details in
``extra=`` fields. While an RPC call is being handled, ``log_context`` tags
every record with the method name and timetable key.
"""

import json
import logging
import os
import re
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, TextIO

LEVEL_ENV_VAR = "TIMETABLE_LOG_LEVEL"

LOG_RETENTION_DAYS = 7

# Secrets that can reach log lines: store URLs, env-style credentials,
# HTTP auth headers. Group 1 is the part to mask.
DEFAULT_REDACT_PATTERNS: list[str] = [
    r"://[^/\s:@]+:([^@\s/]+)@",
    r"\b[A-Z0-9_]+(?:KEY|TOKEN|SECRET|PASSWORD|PASSWD)\s*[=:]\s*([^\s\"']{8,})",
    r"\bBearer\s+([A-Za-z0-9._\-+=]{20,})\b",
]

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Third-party loggers that are too noisy at INFO level
NOISY_LOGGERS = [
    "httpx",
    "httpcore",
    "uvicorn.access",
    "aiosqlite",
    "sqlalchemy.engine",
]

_rpc_method: ContextVar[str | None] = ContextVar("rpc_method", default=None)
_timetable_key: ContextVar[str | None] = ContextVar("timetable_key", default=None)

# Attributes present on every LogRecord; anything else came from ``extra=``.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "component"}


@contextmanager
def log_context(method: str | None = None, key: str | None = None) -> Iterator[None]:
    """Tag log records emitted inside the block with an RPC method and key.

    Values not given are inherited from an enclosing context.
    """
    tokens = []
    if method is not None:
        tokens.append((_rpc_method, _rpc_method.set(method)))
    if key is not None:
        tokens.append((_timetable_key, _timetable_key.set(key)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def current_context() -> dict[str, str]:
    """Return the active RPC method/key tags, omitting unset ones."""
    context = {}
    if method := _rpc_method.get():
        context["rpc.method"] = method
    if key := _timetable_key.get():
        context["timetable.key"] = key
    return context


@dataclass
class SecretRedactor:
    """Masks secrets in log text, keeping the ends of long ones visible."""

    patterns: list[re.Pattern[str]] = field(default_factory=list)
    enabled: bool = True

    def __post_init__(self) -> None:
        if not self.patterns:
            self.patterns = [
                re.compile(p, re.IGNORECASE) for p in DEFAULT_REDACT_PATTERNS
            ]

    def redact(self, text: str) -> str:
        if not self.enabled or not text:
            return text
        for pattern in self.patterns:
            text = pattern.sub(_mask, text)
        return text


def _mask(match: re.Match[str]) -> str:
    secret = match.group(1)
    if secret == "***" or "..." in secret:
        return match.group(0)
    masked = "***" if len(secret) < 12 else f"{secret[:4]}...{secret[-4:]}"
    start, end = match.span(1)
    offset = match.start(0)
    whole = match.group(0)
    return whole[: start - offset] + masked + whole[end - offset :]


_redactor = SecretRedactor()


def prune_old_logs(logs_dir: Path, retention_days: int = LOG_RETENTION_DAYS) -> int:
    """Delete ``*.jsonl`` log files not modified within ``retention_days``.

    Returns:
        Number of files deleted.
    """
    if not logs_dir.is_dir():
        return 0

    cutoff = (datetime.now(UTC) - timedelta(days=retention_days)).timestamp()
    deleted = 0
    for path in logs_dir.glob("*.jsonl"):
        try:
            if path.is_file() and path.stat().st_mtime < cutoff:
                path.unlink()
                deleted += 1
        except OSError:
            continue
    return deleted


def _scrub(value: Any) -> Any:
    if value is None or isinstance(value, (bool, int, float)):
        return value
    return _redactor.redact(str(value))


def _component(name: str) -> str:
    """Map a logger name to a short component (timetable.rpc.server -> rpc)."""
    prefix, _, rest = name.partition(".")
    if prefix == "timetable" and rest:
        return rest.split(".", 1)[0]
    return prefix


class JSONLHandler(logging.Handler):
    """Writes one JSON object per record to ``<logs_dir>/YYYY-MM-DD.jsonl``.

    The file rolls over at UTC midnight; each rollover prunes files older
    than ``retention_days``. Message, traceback and extra fields are all
    passed through secret redaction.
    """

    def __init__(self, logs_dir: Path, retention_days: int = LOG_RETENTION_DAYS):
        super().__init__()
        logs_dir.mkdir(parents=True, exist_ok=True)
        self._logs_dir = logs_dir
        self._retention_days = retention_days
        self._day: str | None = None
        self._stream: TextIO | None = None

    def _stream_for(self, day: str) -> TextIO:
        if self._stream is None or day != self._day:
            if self._stream is not None:
                self._stream.close()
            self._stream = (self._logs_dir / f"{day}.jsonl").open(
                "a", encoding="utf-8"
            )
            self._day = day
            prune_old_logs(self._logs_dir, self._retention_days)
        return self._stream

    def _build_entry(self, record: logging.LogRecord, now: datetime) -> dict[str, Any]:
        entry: dict[str, Any] = {
            "ts": now.isoformat(),
            "level": record.levelname,
            "component": _component(record.name),
            "logger": record.name,
            "message": _redactor.redact(record.getMessage()),
        }
        context = current_context()
        if context:
            entry["context"] = context
        if record.exc_info:
            formatter = self.formatter or logging.Formatter()
            entry["exception"] = _redactor.redact(
                formatter.formatException(record.exc_info)
            )
        extra = {
            k: _scrub(v) for k, v in record.__dict__.items() if k not in _RECORD_ATTRS
        }
        if extra:
            entry["extra"] = extra
        return entry

    def emit(self, record: logging.LogRecord) -> None:
        try:
            now = datetime.now(UTC)
            stream = self._stream_for(now.strftime("%Y-%m-%d"))
            stream.write(json.dumps(self._build_entry(record, now)) + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        super().close()


class ComponentFormatter(logging.Formatter):
    """Adds ``%(component)s`` and appends the active RPC context.

    ``timetable.schedule.registry`` becomes ``schedule``; a record logged
    while handling ``insert`` for key ``build-1`` ends in
    ``[insert build-1]``.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.component = _component(record.name)
        text = super().format(record)
        context = current_context()
        if context:
            return f"{text} [{' '.join(context.values())}]"
        return text


def resolve_level(level: str | None = None) -> str:
    """Resolve the log level from an explicit value or TIMETABLE_LOG_LEVEL."""
    value = (level or os.environ.get(LEVEL_ENV_VAR) or "INFO").upper()
    return value if value in _LEVELS else "INFO"


def configure_logging(
    level: str | None = None,
    use_rich: bool = False,
    log_to_file: bool = False,
    logs_dir: Path | None = None,
) -> None:
    """Configure logging for the timetable service.

    Call this once at application startup (CLI or server).

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
            If None, uses TIMETABLE_LOG_LEVEL env var or INFO.
        use_rich: Use Rich handler for colorful output (server mode).
        log_to_file: Also write logs to JSONL files.
        logs_dir: Directory for JSONL logs (default: $TIMETABLE_HOME/logs).
    """
    log_level = getattr(logging, resolve_level(level))

    if use_rich:
        from rich.logging import RichHandler

        console: logging.Handler = RichHandler(
            rich_tracebacks=False,
            show_path=False,
            show_time=True,
            markup=False,
        )
        console.setFormatter(ComponentFormatter("%(component)s | %(message)s"))
    else:
        console = logging.StreamHandler()
        console.setFormatter(
            ComponentFormatter(
                "%(asctime)s | %(levelname)-8s | %(component)s | %(message)s",
                datefmt="%H:%M:%S",
            )
        )
    handlers: list[logging.Handler] = [console]

    if log_to_file:
        if logs_dir is None:
            from timetable.config.paths import get_logs_path

            logs_dir = get_logs_path()
        file_handler = JSONLHandler(logs_dir)
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    # Route uvicorn loggers through our handlers (server mode)
    if use_rich:
        for logger_name in ("uvicorn", "uvicorn.error"):
            uv_logger = logging.getLogger(logger_name)
            uv_logger.handlers = handlers
            uv_logger.propagate = False
