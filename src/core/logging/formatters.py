"""Log formatters: one JSON object per line for collectors, plain text for terminals."""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import Any

from core.logging.context import get_log_context
from core.utils.json_serializers import json_serializer

# Query parameters whose values never reach the logs
_SECRET_QUERY = re.compile(
    r"([?&](?:sig|token|key|secret|client_secret|password|auth)=)[^&#]*",
    re.IGNORECASE,
)


def redact_url(url: str) -> str:
    """Replace secret-looking query parameter values with [REDACTED]."""
    return _SECRET_QUERY.sub(r"\1[REDACTED]", url)


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Request id, provider and component come from the logging context; known
    ``extra={...}`` keys are copied onto the entry and win over context
    values. Unknown extras are dropped so credentials passed by mistake never
    reach the log stream.
    """

    # extra key -> coercion applied before output (None: as-is)
    FIELDS: dict[str, Any] = {
        "request_id": None,
        "duration_ms": float,
        "http_status": int,
        "http_method": None,
        "http_url": None,
        "remote": None,
        "url": None,
        "error": None,
        "error_type": None,
        "error_category": None,
        "provider": None,
        "provider_type": None,
        "provider_count": int,
        "providers": None,
        "source": None,
        "cluster": None,
        "expires_at": None,
        "remaining_seconds": float,
        "lifetime_seconds": float,
        "cache_hit": None,
        "host": None,
        "port": int,
        "config_directory": None,
    }

    URL_FIELDS = frozenset({"url", "http_url"})

    CONTEXT_FIELDS = ("request_id", "provider", "component")

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = get_log_context()
        entry.update({name: context[name] for name in self.CONTEXT_FIELDS if context[name]})

        if record.levelno == logging.DEBUG or record.levelno >= logging.ERROR:
            entry["file"] = f"{record.filename}:{record.lineno}"

        for name, coerce in self.FIELDS.items():
            value = getattr(record, name, None)
            if value is None:
                continue
            entry[name] = self._clean(name, value, coerce)

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc_value) if exc_value else None,
                "stacktrace": self.formatException(record.exc_info),
            }

        return json.dumps(entry, default=json_serializer, ensure_ascii=False)

    def _clean(self, name: str, value: Any, coerce) -> Any:
        if coerce is not None:
            try:
                return coerce(value)
            except (TypeError, ValueError):
                return None
        if name in self.URL_FIELDS and isinstance(value, str):
            return redact_url(value)
        return value


class ConsoleFormatter(logging.Formatter):
    """
    Single-line console output: ``time - LEVEL - [component] - [request] [provider:x] message``.

    Level names are colored when writing to a terminal.
    """

    LEVEL_COLORS = {
        logging.DEBUG: "36",
        logging.INFO: "32",
        logging.WARNING: "33",
        logging.ERROR: "31",
        logging.CRITICAL: "35",
    }

    def __init__(self, use_colors: bool | None = None):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.use_colors = sys.stdout.isatty() if use_colors is None else use_colors

    def _level(self, record: logging.LogRecord) -> str:
        code = self.LEVEL_COLORS.get(record.levelno)
        if self.use_colors and code:
            return f"\033[{code}m{record.levelname}\033[0m"
        return record.levelname

    def format(self, record: logging.LogRecord) -> str:
        context = get_log_context()

        head = [self.formatTime(record, self.datefmt), self._level(record)]
        if context["component"]:
            head.append(f"[{context['component']}]")

        request_id = getattr(record, "request_id", None) or context["request_id"]
        provider = getattr(record, "provider", None) or context["provider"]
        tags = []
        if request_id:
            tags.append(f"[{request_id[:8]}]")
        if provider:
            tags.append(f"[provider:{provider}]")

        line = " - ".join(head) + " - " + " ".join(tags + [record.getMessage()])
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


__all__ = ["JSONFormatter", "ConsoleFormatter", "redact_url"]
