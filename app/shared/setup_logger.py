"""Process-wide logging for the lounge backend.

Every record carries the request trace id (``-`` outside a request). The
level comes from ``LOG_LEVEL`` and falls back to DEBUG/INFO from ``APP_DEBUG``.
"""

import logging
import os
import sys
from typing import Optional

from app.shared.trace import get_trace_id

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [trace=%(trace_id)s] %(message)s"
# chatty transport loggers stay at WARNING unless we are debugging them
QUIET_LOGGERS = ("urllib3", "werkzeug")


class TraceIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.trace_id = get_trace_id() or "-"
        return True


def resolve_level() -> int:
    name = os.getenv("LOG_LEVEL", "").strip().upper()
    if name and isinstance(logging.getLevelName(name), int):
        return logging.getLevelName(name)
    return logging.DEBUG if os.getenv("APP_DEBUG", "false").lower() == "true" else logging.INFO


class LoggerManager:
    app_name = "sparkhub"

    def __init__(self, level: int = logging.INFO) -> None:
        self.level = level
        self._install_handler()

    def _install_handler(self) -> None:
        root = logging.getLogger()
        if any(getattr(h, "_sparkhub", False) for h in root.handlers):
            return
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler.addFilter(TraceIdFilter())
        handler._sparkhub = True  # type: ignore[attr-defined]
        root.handlers = [handler]
        root.setLevel(self.level)
        if self.level > logging.DEBUG:
            for name in QUIET_LOGGERS:
                logging.getLogger(name).setLevel(logging.WARNING)

    def get_logger(self, name: Optional[str] = None) -> logging.Logger:
        return logging.getLogger(name or self.app_name)


LOGGER = LoggerManager(level=resolve_level())
