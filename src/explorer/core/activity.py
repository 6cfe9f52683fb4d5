from __future__ import annotations

import logging
from typing import Optional

from explorer.core.models import LogEntry, LogSink

_LEVELS = {
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class ActivityLog:
    """
    Sends operator-visible events to a module logger and, when given,
    to the caller's sink. Never used for control flow.
    """

    def __init__(self, logger: logging.Logger, sink: Optional[LogSink] = None) -> None:
        self._logger = logger
        self._sink = sink

    def emit(self, level: str, message: str) -> None:
        self._logger.log(_LEVELS.get(level, logging.INFO), message)
        if self._sink is not None:
            self._sink(LogEntry(level=level, message=message))

    def info(self, message: str) -> None:
        self.emit("info", message)

    def warn(self, message: str) -> None:
        self.emit("warn", message)

    def error(self, message: str) -> None:
        self.emit("error", message)
