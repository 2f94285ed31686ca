"""Logging setup: plain text for local runs, one JSON object per line in deployment."""
from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

TEXT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Record attributes lifted to top-level JSON keys when present
CONTEXT_FIELDS = ("request_id", "user_id", "project_id")

# Libraries that are chatty at INFO
QUIET_LOGGERS = ("sqlalchemy.engine", "uvicorn.access", "httpx", "alembic.runtime.migration")


class JSONFormatter(logging.Formatter):
    """Render a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        if hasattr(record, "extra_data"):
            entry["extra"] = record.extra_data
        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                entry[name] = getattr(record, name)
        return json.dumps(entry, default=str)


class ContextLogger(logging.LoggerAdapter):
    """
    Adapter that stamps fixed fields onto every record it emits.

    Usage:
        logger = get_context_logger(__name__, project_id="p1", user_id="u1")
        logger.info("Cruise submitted")
    """

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple[str, Dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_format: bool = False,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Root level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Also write to this file when given.
        json_format: Emit JSON lines instead of text.
    """
    if json_format:
        formatter: logging.Formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(TEXT_LOG_FORMAT, DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Module logger; call as ``get_logger(__name__)``."""
    return logging.getLogger(name)


def get_context_logger(name: str, **context: Any) -> ContextLogger:
    """
    Logger that adds ``context`` (e.g. ``project_id``, ``user_id``) to every record.

    Context keys named in :data:`CONTEXT_FIELDS` become top-level JSON fields.
    """
    return ContextLogger(logging.getLogger(name), context)


def log_state_change(
    logger: logging.Logger,
    entity: str,
    entity_id: str,
    old_status: Optional[str],
    new_status: Optional[str],
    **extra: Any,
) -> None:
    """
    Log a document status change with standard fields.

    Args:
        logger: Logger to write to.
        entity: Kind of document ("project", "inquiry").
        entity_id: Document id.
        old_status: Status before the change.
        new_status: Status after the change; None when the document was deleted.
        **extra: Additional context (caller, quote, transition name).
    """
    data = {
        "entity": entity,
        "entity_id": entity_id,
        "old_status": old_status,
        "new_status": new_status,
        **extra,
    }
    target = new_status if new_status is not None else "deleted"
    logger.info(
        f"{entity.capitalize()} {entity_id}: {old_status} -> {target}",
        extra={"extra_data": data},
    )


__all__ = [
    "setup_logging",
    "get_logger",
    "get_context_logger",
    "log_state_change",
    "JSONFormatter",
    "ContextLogger",
    "CONTEXT_FIELDS",
]
