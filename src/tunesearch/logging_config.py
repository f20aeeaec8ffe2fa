"""Logging setup for tunesearch.

The MCP server speaks JSON-RPC over stdout, so every handler installed here
writes to stderr. Modules log through ``get_logger(__name__)`` and emit
request lifecycle events with ``log_event``::

    logger = get_logger(__name__)
    log_event(logger, logging.INFO, "search.start", query="rock", limit=20)
"""

import logging
import os
import sys
from typing import Any

PACKAGE_LOGGER = "tunesearch"
LOG_LEVEL_ENV = "TUNESEARCH_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Library loggers that never go below WARNING, whatever the package level.
QUIET_LOGGERS = ("asyncio", "aiofiles", "mcp")


def _resolve_level(name: str) -> int:
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(level: str | None = None, format_string: str | None = None) -> logging.Logger:
    """Route all logging to stderr at ``level`` and return the package logger.

    ``level`` falls back to ``$TUNESEARCH_LOG_LEVEL``, then WARNING. Any
    handlers already on the root logger are replaced.
    """
    numeric_level = _resolve_level(level or os.getenv(LOG_LEVEL_ENV, DEFAULT_LOG_LEVEL))

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(logging.Formatter(format_string or DEFAULT_FORMAT))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(numeric_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(numeric_level)
    return package_logger


def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``, nested under the ``tunesearch`` namespace."""
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def _format_value(value: Any) -> str:
    text = str(value)
    if " " in text or "=" in text or not text:
        return repr(text)
    return text


def log_event(logger: logging.Logger, level: int, event: str, **context: Any) -> None:
    """Emit a structured log line: ``event key=value ...``.

    The raw context is also attached to the record as ``context`` so
    handlers that understand structured data can use it directly.
    """
    if not logger.isEnabledFor(level):
        return
    fields = " ".join(f"{key}={_format_value(value)}" for key, value in context.items())
    message = f"{event} {fields}" if fields else event
    logger.log(level, message, extra={"event": event, "context": context})


def sanitize_request(payload: Any, redacted_keys: tuple[str, ...] = ("auth_token", "token", "authorization")) -> Any:
    """Return a copy of a request payload that is safe to log."""
    if isinstance(payload, dict):
        return {
            key: "[REDACTED]" if key.lower() in redacted_keys else sanitize_request(value, redacted_keys)
            for key, value in payload.items()
        }
    if isinstance(payload, list):
        return [sanitize_request(item, redacted_keys) for item in payload]
    return payload
