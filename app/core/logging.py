"""Logging configuration for user-console.

WHAT GETS LOGGED
------------------
The console is a thin view over an external users API, so almost every
interesting event is an exchange with that API or a change of view state:

  - one completion line per inbound HTTP request (RequestContextMiddleware)
  - one line per upstream call, tagged with operation + outcome
  - a WARNING whenever the upstream sends a body we cannot interpret
  - INFO when a user is created or the list is replaced

Operators mostly care about the second and third kind: "is the users API
failing?" and "did its response shape change under us?".

TWO OUTPUT FORMATS
--------------------
  _ContainerFormatter: single-line text for a developer's terminal.

  _JsonFormatter: JSON Lines for a log pipeline.  Context fields attached
    via ``extra=`` (request_id, operation, outcome, body_type) become top-level
    keys, so "operation == fetch AND outcome == error" is a plain filter
    rather than a regex.

Set LOG_JSON=true to switch to JSON output.
"""

from __future__ import annotations

import json
import logging
import sys


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter tuned for container stdout.

    WARNING and above get a ``[filename:lineno]`` suffix; tracebacks are
    appended when the caller passed ``exc_info``.
    """

    _BASE_FMT = "%(asctime)s %(levelname)-8s %(name)s  %(message)s"
    _LOC_SUFFIX = "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        base = super().formatTime(record, datefmt)
        ms = int(record.msecs)
        # Splice .NNN in front of the +0000 offset
        return f"{base[:-5]}.{ms:03d}{base[-5:]}"

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.WARNING:
            self._style._fmt = self._BASE_FMT + self._LOC_SUFFIX
        else:
            self._style._fmt = self._BASE_FMT
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    """One JSON object per line, with known context fields lifted to the top."""

    _CONTEXT_FIELDS = (
        "request_id",
        "method",
        "path",
        "status_code",
        "duration_ms",
        "operation",
        "outcome",
        "body_type",
    )

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        log_entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in self._CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                log_entry[key] = value

        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Route every logger to stdout with the chosen formatter.

    Args:
        level_name: debug/info/warning/error; anything else means info.
        json_format: emit JSON Lines instead of the text format (LOG_JSON).
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # httpx logs every upstream request at INFO; our own client logs already cover it
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
