"""Threshold filtering and routing for harness log output."""

from __future__ import annotations

import logging

from .schemas.options import LogLevel, ReporterSink

logger = logging.getLogger("appharness")

_PYTHON_LEVELS: dict[LogLevel, int] = {
    LogLevel.CHILD: logging.DEBUG,
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARNING: logging.WARNING,
    LogLevel.CRITICAL: logging.CRITICAL,
    LogLevel.ERROR: logging.ERROR,
}


def collapse_lines(message: str) -> str:
    """Join multi-line output into one line."""
    return " ".join(part.strip() for part in message.splitlines() if part.strip())


class LogRouter:
    """Sends messages at or above the threshold to the reporter or the process log."""

    def __init__(self, threshold: LogLevel, reporter: ReporterSink | None = None) -> None:
        self.threshold = threshold
        self.reporter = reporter

    @property
    def mirrors_child(self) -> bool:
        return self.threshold is LogLevel.CHILD

    def enabled(self, level: LogLevel) -> bool:
        return level >= self.threshold

    def emit(self, level: LogLevel, message: str, *args: object) -> bool:
        """Format and route a message. Returns whether it was emitted."""
        if not self.enabled(level):
            return False
        text = message % args if args else message
        self._write(level, f"{level.name}: {collapse_lines(text)}")
        return True

    def mirror_child(self, line: str) -> None:
        """Forward one line of child output."""
        if not self.mirrors_child:
            return
        self._write(LogLevel.CHILD, collapse_lines(line))

    def _write(self, level: LogLevel, text: str) -> None:
        if self.reporter is not None:
            self.reporter.log(text)
        else:
            logger.log(_PYTHON_LEVELS[level], "%s", text)
