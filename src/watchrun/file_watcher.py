"""Watch source implementation using watchdog."""

import logging
import os
import queue
import time
from collections.abc import Callable
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CLOSED,
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from watchrun.debouncer import Debouncer
from watchrun.models import ChangeKind, ChangeNotification, WatchConfig
from watchrun.watchers import WatchError, WatchSetupError

logger = logging.getLogger(__name__)

# Upper bound on a single blocking wait, so a dead observer is noticed
POLL_INTERVAL = 1.0


def _to_path(raw: str | bytes) -> Path:
    return Path(os.fsdecode(raw))


def classify(event: FileSystemEvent) -> ChangeNotification | None:
    """Translate a raw watchdog event into a change notification.

    Args:
        event: Event delivered by the observer

    Returns:
        The notification, or None for events that carry no change
        (directory mtime updates, opened/closed-without-write)
    """
    path = _to_path(event.src_path)

    if event.event_type == EVENT_TYPE_CREATED:
        return ChangeNotification(kind=ChangeKind.CREATE, path=path)
    if event.event_type == EVENT_TYPE_MODIFIED:
        # Directory mtime bumps accompany every child change
        if event.is_directory:
            return None
        return ChangeNotification(kind=ChangeKind.WRITE, path=path)
    if event.event_type == EVENT_TYPE_DELETED:
        return ChangeNotification(kind=ChangeKind.REMOVE, path=path)
    if event.event_type == EVENT_TYPE_MOVED:
        return ChangeNotification.rename(path, _to_path(event.dest_path))
    if event.event_type == EVENT_TYPE_CLOSED:
        return ChangeNotification(kind=ChangeKind.OTHER, path=path, detail=event.event_type)
    return None


class _NotificationHandler(FileSystemEventHandler):
    """Feeds classified watchdog events into a debouncer."""

    def __init__(
        self,
        debouncer: Debouncer,
        report_error: Callable[[WatchError], None],
        only: Path | None = None,
    ):
        """Initialize handler.

        Args:
            debouncer: Debouncer receiving classified notifications
            report_error: Sink for errors raised while handling an event
            only: If set, ignore events that do not touch this path
        """
        super().__init__()
        self.debouncer = debouncer
        self.report_error = report_error
        self.only = only

    def _matches(self, notification: ChangeNotification) -> bool:
        if self.only is None:
            return True
        return self.only in (notification.path, notification.dest_path)

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle every file system event."""
        # Exceptions escaping here would kill the observer thread
        try:
            notification = classify(event)
            if notification is None or not self._matches(notification):
                logger.debug(f"Ignoring {event.event_type} event for {event.src_path!r}")
                return
            self.debouncer.add(notification)
        except Exception as e:
            logger.error(f"Failed to handle {event!r}: {e}")
            self.report_error(WatchError(f"failed to handle {event.event_type} event: {e}"))


class FileWatchSource:
    """Watch source backed by a watchdog observer.

    Usage:
        source = FileWatchSource(config)
        source.start()
        try:
            notification = source.receive()
        finally:
            source.stop()
    """

    def __init__(self, config: WatchConfig, observer_factory: Callable[[], Observer] = Observer):
        """Initialize watch source.

        Args:
            config: Watch configuration (path, recursion, debounce interval, notices)
            observer_factory: Callable returning a watchdog observer
        """
        self.config = config
        self._observer_factory = observer_factory
        self._observer = None
        self._queue: queue.Queue = queue.Queue()
        self._debouncer = Debouncer(config.rate_limit, self._queue.put, notices=config.notices)

    @property
    def is_running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        """Schedule the target path and start the observer.

        Raises:
            WatchSetupError: If the path does not exist or cannot be watched
        """
        if self._observer is not None:
            logger.warning("Watch source already started")
            return

        target = self.config.path.expanduser()
        if not target.exists():
            raise WatchSetupError(f"Cannot watch {target}: path does not exist")
        target = target.resolve()

        if target.is_dir():
            watch_dir, recursive, only = target, self.config.recursive, None
        else:
            # Single files are watched through their parent directory
            watch_dir, recursive, only = target.parent, False, target

        handler = _NotificationHandler(self._debouncer, self._queue.put, only=only)
        try:
            observer = self._observer_factory()
            observer.schedule(handler, str(watch_dir), recursive=recursive)
            observer.start()
        except OSError as e:
            raise WatchSetupError(f"Cannot watch {target}: {e}") from e

        self._observer = observer
        logger.info(
            f"Watching {target} (recursive: {recursive}, rate limit: {self.config.rate_limit}s, "
            f"notices: {self.config.notices})"
        )

    def receive(self, timeout: float | None = None) -> ChangeNotification | None:
        """Block until the next notification arrives.

        Args:
            timeout: Maximum seconds to wait, or None to wait indefinitely

        Returns:
            The next notification, or None if the timeout elapsed

        Raises:
            WatchError: If the source is not running, the observer died,
                or a handler error was queued
        """
        if self._observer is None:
            raise WatchError("watch source is not started")

        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if deadline is None:
                wait = POLL_INTERVAL
            else:
                wait = min(POLL_INTERVAL, max(deadline - time.monotonic(), 0.0))

            try:
                item = self._queue.get(timeout=wait)
            except queue.Empty:
                if not self._observer.is_alive():
                    raise WatchError("observer thread has stopped") from None
                if deadline is not None and time.monotonic() >= deadline:
                    return None
                continue

            if isinstance(item, WatchError):
                raise item
            return item

    def drain(self) -> list[ChangeNotification | WatchError]:
        """Remove and return everything already queued, without blocking.

        Queued errors are returned in order alongside notifications.
        """
        drained = []
        while True:
            try:
                drained.append(self._queue.get_nowait())
            except queue.Empty:
                return drained

    def stop(self) -> None:
        """Stop the observer and cancel pending debounce timers."""
        self._debouncer.cancel()
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        if observer.is_alive():
            observer.join(timeout=2.0)
        logger.info("Stopped watching")
