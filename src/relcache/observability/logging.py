"""Log formatting with entity context.

Invalidation handlers bind the entity they are working on (table name, id
and lifecycle event) with LogContext. Both formatters pick that context up,
so every line logged while a write is being invalidated names its entity:

    with LogContext(entity_type="products", entity_id=1, event="updated"):
        logger.info("Flushed 2 related caches")
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from relcache.config import settings

entity_type_var: contextvars.ContextVar[str] = contextvars.ContextVar("entity_type", default="")
entity_id_var: contextvars.ContextVar[str] = contextvars.ContextVar("entity_id", default="")
event_var: contextvars.ContextVar[str] = contextvars.ContextVar("event", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "entity_type": entity_type_var,
    "entity_id": entity_id_var,
    "event": event_var,
}

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


def current_context() -> dict[str, str]:
    """Entity context values that are currently set."""
    return {key: var.get() for key, var in _CONTEXT_VARS.items() if var.get()}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for key, value in vars(record).items():
        if key in _RECORD_ATTRS or key.startswith("_"):
            continue
        try:
            json.dumps(value)
        except (TypeError, ValueError):
            value = str(value)
        fields[key] = value
    return fields


class JsonFormatter(logging.Formatter):
    """One JSON object per line.

    Fields: timestamp, level, logger, message, module, function, line, the
    entity context, an ``exception`` object when one is attached, and any
    ``extra`` values (stringified when not JSON serializable).
    """

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            **current_context(),
        }

        if record.exc_info:
            exc_type, exc, _ = record.exc_info
            data["exception"] = {
                "type": exc_type.__name__ if exc_type else None,
                "message": str(exc) if exc else None,
                "traceback": self.formatException(record.exc_info),
            }

        data.update(_extra_fields(record))
        return json.dumps(data, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Single-line human-readable output.

    2026-01-10 12:34:56 | INFO     | relcache.cache.layer | Cache miss | products_1 event=updated
    """

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    @staticmethod
    def _subject() -> str:
        ctx = current_context()
        parts = []
        if "entity_type" in ctx:
            entity = ctx["entity_type"]
            if "entity_id" in ctx:
                entity = f"{entity}_{ctx['entity_id']}"
            parts.append(entity)
        if "event" in ctx:
            parts.append(f"event={ctx['event']}")
        return " ".join(parts)

    def format(self, record: logging.LogRecord) -> str:
        level = f"{record.levelname:8}"
        if self.use_colors:
            level = f"{self.LEVEL_COLORS.get(record.levelname, '')}{level}{self.RESET}"

        fields = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            level,
            record.name,
            record.getMessage(),
        ]
        subject = self._subject()
        if subject:
            fields.append(subject)

        line = " | ".join(fields)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


def configure_logging(
    json_format: bool | None = None,
    level: str | None = None,
    use_colors: bool = True,
) -> None:
    """Install a single stderr handler on the root logger.

    ``json_format`` and ``level`` fall back to ``settings.log_json`` and
    ``settings.log_level``.
    """
    json_format = settings.log_json if json_format is None else json_format
    level = settings.log_level if level is None else level

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_format else ConsoleFormatter(use_colors=use_colors))

    root = logging.getLogger()
    root.setLevel(level.upper())
    root.handlers[:] = [handler]


class LogContext:
    """Bind entity context for the duration of a ``with`` block.

    Keys other than entity_type, entity_id and event are ignored. Values
    are stored as strings.
    """

    def __init__(self, **kwargs: Any) -> None:
        self.values = {key: str(value) for key, value in kwargs.items() if key in _CONTEXT_VARS}
        self._tokens: list[tuple[contextvars.ContextVar[str], contextvars.Token[str]]] = []

    def __enter__(self) -> LogContext:
        for key, value in self.values.items():
            var = _CONTEXT_VARS[key]
            self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, *args: Any) -> None:
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
