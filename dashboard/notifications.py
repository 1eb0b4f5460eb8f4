"""Toast-style notification channel.

Views drain `Notifier.pending` to show toasts; every notification is also
written to the log so headless runs keep a trace.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from portal.errors import GENERIC_MESSAGE, PortalError

from dashboard.utils.logging import get_logger

logger = get_logger(__name__)


class Level(Enum):
    SUCCESS = "success"
    INFO = "info"
    ERROR = "error"


_LOG_LEVELS = {
    Level.SUCCESS: logging.INFO,
    Level.INFO: logging.INFO,
    Level.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class Notification:
    level: Level
    message: str
    detail: Optional[str] = None


def friendly_error(error: BaseException) -> str:
    """Message suitable for a toast."""
    if isinstance(error, PortalError):
        return error.message or GENERIC_MESSAGE
    text = str(error)
    if "Missing access token" in text:
        return "Your session has expired. Please refresh the page and try again."
    return text or GENERIC_MESSAGE


class Notifier:
    def __init__(self, sink: Optional[Callable[[Notification], None]] = None):
        self._sink = sink
        self.pending: List[Notification] = []

    def _emit(self, note: Notification) -> Notification:
        self.pending.append(note)
        logger.log(_LOG_LEVELS[note.level], "%s%s", note.message, f": {note.detail}" if note.detail else "")
        if self._sink is not None:
            self._sink(note)
        return note

    def success(self, message: str) -> Notification:
        return self._emit(Notification(Level.SUCCESS, message))

    def info(self, message: str) -> Notification:
        return self._emit(Notification(Level.INFO, message))

    def error(self, message: str, error: Optional[BaseException] = None) -> Notification:
        detail = friendly_error(error) if error is not None else None
        return self._emit(Notification(Level.ERROR, message, detail))

    def drain(self) -> List[Notification]:
        notes, self.pending = self.pending, []
        return notes
