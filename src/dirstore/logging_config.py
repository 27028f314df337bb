"""Logging setup for DirStore.

DirStore writes its own access line per request from the HTTP middleware,
so uvicorn's access logger is silenced here to avoid logging every request
twice. Its error logger is kept and routed through the same handler.
"""

import json
import logging
import sys
from datetime import datetime, timezone

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# Attributes every LogRecord has; anything else was passed via ``extra``.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


class JSONFormatter(logging.Formatter):
    """One JSON object per line.

    Carries timestamp, level, logger and message, the formatted traceback
    when there is one, and every attribute passed through ``extra=`` (the
    middleware passes method, path, status, duration_ms and request_id).
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        for key, value in vars(record).items():
            if key not in _RECORD_ATTRS and value is not None:
                entry[key] = value
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Install a single stderr handler on the root logger.

    Calling this again replaces the handler instead of adding a second one.
    Unknown level names fall back to INFO.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
        fmt: ``text`` or ``json``.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(numeric_level)
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(numeric_level)

    # uvicorn installs its own handlers; send its errors through ours and
    # drop its access lines.
    uvicorn_error = logging.getLogger("uvicorn.error")
    uvicorn_error.handlers.clear()
    uvicorn_error.propagate = True
    logging.getLogger("uvicorn.access").disabled = True
