"""
Diagnostics
===========

Side channel for non-fatal validation events.

The validators report every substitution they make as a ``DiagnosticEvent``
to an injectable sink. Sinks are plain callables; outputs never depend on
whether a sink is wired up or whether it fails.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .logging_config import get_logger

logger = get_logger(__name__)

LOG = "log"
WARN = "warn"
ERROR = "error"

_LOGGING_LEVELS = {
    LOG: logging.INFO,
    WARN: logging.WARNING,
    ERROR: logging.ERROR,
}


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class DiagnosticEvent:
    level: str
    source: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = field(default_factory=_utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "source": self.source,
            "message": self.message,
            "data": self.data,
            "timestamp": self.timestamp,
        }


DiagnosticSink = Callable[[DiagnosticEvent], None]


class LoggingSink:
    """Default sink: forwards events to the standard logging tree."""

    def __init__(self, logger_name: str = __name__):
        self._logger = logging.getLogger(logger_name)

    def __call__(self, event: DiagnosticEvent) -> None:
        level = _LOGGING_LEVELS.get(event.level, logging.INFO)
        self._logger.log(level, "[%s] %s %s", event.source, event.message, event.data or "")


class CollectingSink:
    """Keeps events in memory (tests, CLI summaries)."""

    def __init__(self):
        self.events: List[DiagnosticEvent] = []

    def __call__(self, event: DiagnosticEvent) -> None:
        self.events.append(event)

    @property
    def warnings(self) -> List[DiagnosticEvent]:
        return [e for e in self.events if e.level == WARN]

    @property
    def errors(self) -> List[DiagnosticEvent]:
        return [e for e in self.events if e.level == ERROR]

    def for_field(self, name: str) -> List[DiagnosticEvent]:
        return [e for e in self.events if e.data.get("field") == name]

    def clear(self) -> None:
        self.events.clear()


_default_sink = LoggingSink()


def emit(
    sink: Optional[DiagnosticSink],
    level: str,
    source: str,
    message: str,
    **data: Any,
) -> None:
    """Deliver one event to ``sink`` (the logging sink when None). Never raises."""
    event = DiagnosticEvent(level=level, source=source, message=message, data=data)
    target = sink if sink is not None else _default_sink
    try:
        target(event)
    except Exception:
        logger.debug("Diagnostic sink failed for %s event from %s", level, source, exc_info=True)
