"""Root logger wiring for the broker process."""

import io
import logging
import secrets
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.logging.context import set_log_context
from core.logging.formatters import ConsoleFormatter, JSONFormatter

DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG
DEFAULT_ROTATION_WHEN = "midnight"
DEFAULT_BACKUP_COUNT = 7

# HTTP client/server chatter is capped at WARNING
NOISY_LOGGERS = [
    "aiohttp",
    "aiohttp.access",
    "aiohttp.client",
    "aiohttp.server",
    "asyncio",
    "urllib3",
]

BANNER = "=" * 70


def _level(value: int | str) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {value}")
    return level


def _stdout_handler(json_format: bool, level: int | str) -> logging.Handler:
    stream = sys.stdout
    if sys.platform == "win32":
        # cp1252 consoles choke on non-ASCII provider names
        stream = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    handler = logging.StreamHandler(stream)
    handler.setLevel(_level(level))
    handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())
    return handler


def _file_handler(path: Path, level: int | str, when: str, backups: int) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = TimedRotatingFileHandler(path, when=when, backupCount=backups, encoding="utf-8")
    handler.setLevel(_level(level))
    handler.setFormatter(JSONFormatter())
    return handler


def setup_logging(
    name: str = "token_broker",
    component: str | None = None,
    json_format: bool = True,
    console_level: int | str = DEFAULT_CONSOLE_LEVEL,
    log_file: Path | None = None,
    file_level: int | str = DEFAULT_FILE_LEVEL,
    rotation_when: str = DEFAULT_ROTATION_WHEN,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    suppress_noisy: bool = True,
) -> logging.Logger:
    """
    Replace the root handlers with a stdout handler and an optional rotating file.

    Args:
        name: Logger to hand back
        component: Stamped onto every record through the logging context
        json_format: JSON lines on stdout when True, console lines otherwise
        console_level: Level for the stdout handler
        log_file: Time-rotated JSON log file; skipped when None
        file_level: Level for the file handler
        rotation_when: TimedRotatingFileHandler ``when`` value
        backup_count: Rotated files to keep
        suppress_noisy: Cap NOISY_LOGGERS at WARNING
    """
    if component:
        set_log_context(component=component)

    handlers = [_stdout_handler(json_format, console_level)]
    if log_file is not None:
        handlers.append(_file_handler(Path(log_file), file_level, rotation_when, backup_count))

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    root.handlers.clear()
    for handler in handlers:
        root.addHandler(handler)

    if suppress_noisy:
        for noisy in NOISY_LOGGERS:
            logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug("Logging initialized: json=%s, file=%s", json_format, log_file)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass ``__name__``."""
    return logging.getLogger(name)


def log_service_startup(
    logger: logging.Logger,
    service_name: str,
    providers: list[str] | None = None,
    extra_config: dict | None = None,
) -> None:
    """Log a startup banner with the registered providers and non-secret settings."""
    logger.info(BANNER)
    logger.info("Starting %s", service_name)
    logger.info(BANNER)
    if providers is not None:
        logger.info("Token providers: %s", ", ".join(sorted(providers)) or "none")
    for key, value in (extra_config or {}).items():
        logger.info("%s: %s", key, value)
    logger.info(BANNER)


def generate_request_id() -> str:
    """Random request id of the form ``r-`` plus 12 hex digits."""
    return f"r-{secrets.token_hex(6)}"
