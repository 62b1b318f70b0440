"""Process-wide logging setup for the relay.

`configure_logging` is called once from `main` before the server starts.
Records up to INFO go to stdout, WARNING and above to stderr, and every line
carries the correlation id of the request or poll session that emitted it.
Uvicorn is built with `log_config=None`, so its loggers inherit these sinks.

Correlation ids:
* inbound requests get one from the `X-Request-ID` header (or a fresh one)
  in the web adapter middleware;
* every poll session task sets its own session id, so all log lines of one
  session can be grepped together even though sessions interleave.
"""

from __future__ import annotations

import contextvars
import logging
import sys
from typing import Optional, TextIO

correlation_id_var: contextvars.ContextVar[str] = contextvars.ContextVar(
    "correlation_id", default="-"
)

DEFAULT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s %(correlation_id)s: %(message)s"


def coerce_level(level: int | str | None) -> int:
    """Map `"debug"`, `"WARNING"`, `10`... to a logging level; unknown names give INFO."""
    if level is None:
        return logging.INFO
    if isinstance(level, int):
        return level
    return logging.getLevelNamesMapping().get(str(level).strip().upper(), logging.INFO)


class _CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get()
        return True


class _LevelRangeFilter(logging.Filter):
    """Let through records with `low <= levelno <= high`."""

    def __init__(self, low: int, high: int):
        super().__init__()
        self.low = low
        self.high = high

    def filter(self, record: logging.LogRecord) -> bool:
        return self.low <= record.levelno <= self.high


def _handler(stream: TextIO, low: int, high: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(stream=stream)
    handler.setLevel(low)
    handler.addFilter(_LevelRangeFilter(low, high))
    handler.addFilter(_CorrelationIdFilter())
    handler.setFormatter(formatter)
    return handler


def configure_logging(level: int | str | None = None, fmt: Optional[str] = None) -> None:
    """Replace the root handlers with the stdout/stderr pair at `level`."""
    numeric_level = coerce_level(level)
    formatter = logging.Formatter(fmt or DEFAULT_FORMAT)

    root = logging.getLogger()
    root.setLevel(numeric_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    root.addHandler(_handler(sys.stdout, logging.NOTSET, logging.INFO, formatter))
    root.addHandler(_handler(sys.stderr, logging.WARNING, logging.CRITICAL, formatter))

    logging.getLogger("notify_relay").debug(
        "Logging configured level=%s", logging.getLevelName(numeric_level)
    )
