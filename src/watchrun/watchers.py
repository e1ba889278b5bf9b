"""Abstract watch source protocol and its error types."""

from typing import Protocol

from watchrun.models import ChangeNotification


class WatchError(Exception):
    """A non-fatal failure while receiving change notifications."""


class WatchSetupError(WatchError):
    """The watch could not be established. Fatal at startup."""


class WatchSource(Protocol):
    """Protocol for watch source implementations."""

    def start(self) -> None:
        """Start watching. Raises WatchSetupError on failure."""
        ...

    def receive(self, timeout: float | None = None) -> ChangeNotification | None:
        """Block for the next notification.

        Returns None when ``timeout`` elapses. Raises WatchError on receive failures.
        """
        ...

    def drain(self) -> list["ChangeNotification | WatchError"]:
        """Remove and return notifications and errors already waiting, without blocking."""
        ...

    def stop(self) -> None:
        """Stop watching."""
        ...
