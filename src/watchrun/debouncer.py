"""Per-path coalescing of raw change notifications."""

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from watchrun.models import ChangeKind, ChangeNotification

logger = logging.getLogger(__name__)

# (pending kind, incoming kind) -> merged kind; None drops the path entirely
_MERGE_RULES: dict[tuple[ChangeKind, ChangeKind], ChangeKind | None] = {
    (ChangeKind.CREATE, ChangeKind.CREATE): ChangeKind.CREATE,
    (ChangeKind.CREATE, ChangeKind.WRITE): ChangeKind.CREATE,
    (ChangeKind.CREATE, ChangeKind.REMOVE): None,
    (ChangeKind.WRITE, ChangeKind.CREATE): ChangeKind.WRITE,
    (ChangeKind.WRITE, ChangeKind.WRITE): ChangeKind.WRITE,
    (ChangeKind.WRITE, ChangeKind.REMOVE): ChangeKind.REMOVE,
    (ChangeKind.REMOVE, ChangeKind.CREATE): ChangeKind.WRITE,
    (ChangeKind.REMOVE, ChangeKind.WRITE): ChangeKind.WRITE,
    (ChangeKind.REMOVE, ChangeKind.REMOVE): ChangeKind.REMOVE,
}


def merge(previous: ChangeNotification | None, incoming: ChangeNotification) -> ChangeNotification | None:
    """Merge an incoming notification into the one pending for the same path.

    Args:
        previous: Notification currently pending for the path, if any
        incoming: Newly observed notification (not a rename)

    Returns:
        The merged notification, or None if the changes cancel out
    """
    if previous is None:
        return incoming
    if incoming.kind is ChangeKind.OTHER:
        return previous
    if previous.kind is ChangeKind.OTHER:
        return incoming

    if previous.kind is ChangeKind.RENAME:
        # Renamed and then removed: the original file is gone
        if incoming.kind is ChangeKind.REMOVE:
            return ChangeNotification(kind=ChangeKind.REMOVE, path=previous.path)
        return previous

    rule = (previous.kind, incoming.kind)
    if rule not in _MERGE_RULES:
        return incoming
    kind = _MERGE_RULES[rule]
    if kind is None:
        return None
    return ChangeNotification(kind=kind, path=incoming.path)


def _notice_for(previous: ChangeNotification | None, incoming: ChangeNotification) -> ChangeNotification | None:
    previous_kind = previous.kind if previous is not None else None
    if incoming.kind is ChangeKind.WRITE and previous_kind in (None, ChangeKind.OTHER):
        return ChangeNotification(kind=ChangeKind.NOTICE_WRITE, path=incoming.path)
    if incoming.kind is ChangeKind.REMOVE and previous_kind in (None, ChangeKind.OTHER, ChangeKind.WRITE):
        return ChangeNotification(kind=ChangeKind.NOTICE_REMOVE, path=incoming.path)
    return None


class Debouncer:
    """Coalesces rapid changes per path and emits them once the path goes quiet.

    Each path keeps one pending notification and one timer. Every new event on
    the path merges into the pending notification and restarts the timer, so a
    notification is emitted only after ``delay`` seconds without further events
    on that path. A delay of 0 emits every notification as it arrives.
    """

    def __init__(
        self,
        delay: float,
        emit: Callable[[ChangeNotification], None],
        notices: bool = False,
    ):
        """Initialize debouncer.

        Args:
            delay: Quiet period in seconds before a path's changes are emitted
            emit: Callback receiving coalesced notifications (called from timer threads)
            notices: Emit NoticeWrite/NoticeRemove immediately when a burst starts
        """
        if delay < 0:
            raise ValueError(f"Debounce delay must be non-negative, got {delay}")
        self.delay = delay
        self.notices = notices
        self._emit = emit
        self._pending: dict[Path, ChangeNotification] = {}
        self._timers: dict[Path, threading.Timer] = {}
        self._lock = threading.Lock()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def add(self, notification: ChangeNotification) -> None:
        """Record a raw notification."""
        if self.delay <= 0:
            self._emit(notification)
            return

        notice = None
        with self._lock:
            if notification.kind is ChangeKind.RENAME:
                merged = self._merge_rename(notification)
            else:
                previous = self._pending.get(notification.key)
                if self.notices:
                    notice = _notice_for(previous, notification)
                merged = merge(previous, notification)

            key = notification.key
            if merged is None:
                logger.debug(f"Changes on {key} cancelled out")
                self._discard(key)
            else:
                self._pending[key] = merged
                self._schedule(key)

        if notice is not None:
            self._emit(notice)

    def cancel(self) -> None:
        """Drop all pending notifications and cancel their timers."""
        with self._lock:
            for timer in self._timers.values():
                timer.cancel()
            self._timers.clear()
            self._pending.clear()

    def _merge_rename(self, notification: ChangeNotification) -> ChangeNotification:
        previous = self._pending.get(notification.path)
        if previous is None:
            return notification
        self._discard(notification.path)

        dest = notification.key
        if previous.kind is ChangeKind.CREATE:
            return ChangeNotification(kind=ChangeKind.CREATE, path=dest)
        if previous.kind is ChangeKind.RENAME:
            return ChangeNotification.rename(previous.path, dest)
        return notification

    def _discard(self, key: Path) -> None:
        self._pending.pop(key, None)
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

    def _schedule(self, key: Path) -> None:
        existing = self._timers.get(key)
        if existing is not None:
            existing.cancel()

        timer = threading.Timer(self.delay, self._fire, args=(key,))
        timer.daemon = True
        self._timers[key] = timer
        timer.start()

    def _fire(self, key: Path) -> None:
        with self._lock:
            # A timer cancelled after it started running must not emit
            if self._timers.get(key) is not threading.current_thread():
                return
            del self._timers[key]
            notification = self._pending.pop(key, None)

        if notification is not None:
            self._emit(notification)
