"""Pluggable notification protocol for watchrun.

Keeps the user-visible console lines ("run successful", "failed", ...)
separate from diagnostic logging. Replace with a custom handler for
testing or embedding.
"""

import logging
import sys
from typing import Protocol, TextIO


class WatchNotifier(Protocol):
    """Protocol for notifications - host can provide custom implementation."""

    def info(self, message: str) -> None:
        """Informational message."""
        ...

    def warning(self, message: str) -> None:
        """Warning message."""
        ...

    def error(self, message: str) -> None:
        """Error message."""
        ...


class ConsoleNotifier:
    """Writes every message as one line on stdout. Default for the CLI."""

    def __init__(self, stream: TextIO | None = None):
        self._stream = stream

    def _write(self, msg: str) -> None:
        print(msg, file=self._stream or sys.stdout, flush=True)

    def info(self, msg: str) -> None:
        self._write(msg)

    def warning(self, msg: str) -> None:
        self._write(msg)

    def error(self, msg: str) -> None:
        self._write(msg)


class NoOpNotifier:
    """Silent notifier - default when watchrun is embedded."""

    def info(self, msg: str) -> None:
        """Do nothing."""
        pass

    def warning(self, msg: str) -> None:
        """Do nothing."""
        pass

    def error(self, msg: str) -> None:
        """Do nothing."""
        pass


class LoggingNotifier:
    """Implementation using stdlib logging - for debugging/development."""

    def __init__(self, logger: logging.Logger | None = None):
        self._logger = logger or logging.getLogger("watchrun")

    def info(self, msg: str) -> None:
        self._logger.info(msg)

    def warning(self, msg: str) -> None:
        self._logger.warning(msg)

    def error(self, msg: str) -> None:
        self._logger.error(msg)
