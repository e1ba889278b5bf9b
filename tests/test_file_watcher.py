"""Tests for watchrun.file_watcher."""

import time
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from watchdog.events import (
    DirModifiedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from watchrun import file_watcher
from watchrun.file_watcher import FileWatchSource, _NotificationHandler, classify
from watchrun.models import ChangeKind, ChangeNotification
from watchrun.watchers import WatchError, WatchSetupError


def receive_qualifying(source: FileWatchSource, path: Path, timeout: float) -> ChangeNotification | None:
    """Receive until a qualifying notification for ``path`` arrives or time runs out."""
    deadline = time.monotonic() + timeout
    while (remaining := deadline - time.monotonic()) > 0:
        item = source.receive(timeout=remaining)
        if item is not None and item.is_qualifying and path in (item.path, item.dest_path):
            return item
    return None


class TestClassify:
    """Tests for translating watchdog events."""

    def test_created(self):
        assert classify(FileCreatedEvent("/w/a")) == ChangeNotification(kind=ChangeKind.CREATE, path=Path("/w/a"))

    def test_modified(self):
        assert classify(FileModifiedEvent("/w/a")).kind is ChangeKind.WRITE

    def test_directory_modified_is_dropped(self):
        assert classify(DirModifiedEvent("/w")) is None

    def test_deleted(self):
        assert classify(FileDeletedEvent("/w/a")).kind is ChangeKind.REMOVE

    def test_moved(self):
        assert classify(FileMovedEvent("/w/a", "/w/b")) == ChangeNotification.rename(Path("/w/a"), Path("/w/b"))

    def test_closed_is_other(self):
        result = classify(FileClosedEvent("/w/a"))
        assert result.kind is ChangeKind.OTHER
        assert result.detail == "closed"
        assert not result.is_qualifying

    def test_bytes_paths_are_decoded(self):
        assert classify(FileModifiedEvent(b"/w/a")).path == Path("/w/a")


class TestNotificationHandler:
    """Tests for the watchdog event handler."""

    def test_forwards_to_debouncer(self):
        debouncer = MagicMock()
        handler = _NotificationHandler(debouncer, MagicMock())
        handler.dispatch(FileModifiedEvent("/w/a"))

        debouncer.add.assert_called_once_with(ChangeNotification(kind=ChangeKind.WRITE, path=Path("/w/a")))

    def test_only_filter_keeps_target_file(self):
        debouncer = MagicMock()
        handler = _NotificationHandler(debouncer, MagicMock(), only=Path("/w/a"))
        handler.dispatch(FileModifiedEvent("/w/other"))
        handler.dispatch(FileModifiedEvent("/w/a"))
        handler.dispatch(FileMovedEvent("/w/tmp", "/w/a"))

        assert debouncer.add.call_count == 2

    def test_errors_are_reported_not_raised(self):
        debouncer = MagicMock()
        debouncer.add.side_effect = RuntimeError("boom")
        report_error = MagicMock()
        handler = _NotificationHandler(debouncer, report_error)

        handler.dispatch(FileModifiedEvent("/w/a"))

        report_error.assert_called_once()
        error = report_error.call_args[0][0]
        assert isinstance(error, WatchError)
        assert "boom" in str(error)


class TestFileWatchSource:
    """Tests for FileWatchSource with a mocked observer."""

    def test_missing_path_is_fatal(self, make_config, tmp_path):
        source = FileWatchSource(make_config(path=tmp_path / "missing"), observer_factory=MagicMock)
        with pytest.raises(WatchSetupError, match="does not exist"):
            source.start()

    def test_observer_failure_is_fatal(self, make_config):
        observer = MagicMock()
        observer.start.side_effect = OSError("inotify instance limit reached")
        source = FileWatchSource(make_config(), observer_factory=lambda: observer)

        with pytest.raises(WatchSetupError, match="inotify instance limit"):
            source.start()
        assert not source.is_running

    def test_directory_scheduled_with_recursion(self, make_config, tmp_path):
        observer = MagicMock()
        source = FileWatchSource(make_config(recursive=True), observer_factory=lambda: observer)
        source.start()

        _, path = observer.schedule.call_args[0]
        assert path == str(tmp_path.resolve())
        assert observer.schedule.call_args[1] == {"recursive": True}
        observer.start.assert_called_once()

    def test_file_target_watches_parent(self, make_config, tmp_path):
        target = tmp_path / "notes.txt"
        target.write_text("x")
        observer = MagicMock()
        source = FileWatchSource(make_config(path=target, recursive=True), observer_factory=lambda: observer)
        source.start()

        handler, path = observer.schedule.call_args[0]
        assert path == str(tmp_path.resolve())
        assert observer.schedule.call_args[1] == {"recursive": False}
        assert handler.only == target.resolve()

    def test_receive_before_start(self, make_config):
        source = FileWatchSource(make_config(), observer_factory=MagicMock)
        with pytest.raises(WatchError, match="not started"):
            source.receive(timeout=0.1)

    def test_receive_timeout_returns_none(self, make_config):
        source = FileWatchSource(make_config(), observer_factory=MagicMock)
        source.start()
        assert source.receive(timeout=0.1) is None

    def test_receive_reports_dead_observer(self, make_config, monkeypatch):
        monkeypatch.setattr(file_watcher, "POLL_INTERVAL", 0.05)
        observer = MagicMock()
        observer.is_alive.return_value = False
        source = FileWatchSource(make_config(), observer_factory=lambda: observer)
        source.start()

        with pytest.raises(WatchError, match="observer thread has stopped"):
            source.receive()

    def test_receive_raises_queued_errors(self, make_config):
        source = FileWatchSource(make_config(), observer_factory=MagicMock)
        source.start()
        source._queue.put(WatchError("lost events"))

        with pytest.raises(WatchError, match="lost events"):
            source.receive(timeout=1.0)

    def test_drain_returns_queued_notifications_and_errors(self, make_config):
        source = FileWatchSource(make_config(), observer_factory=MagicMock)
        source.start()
        first = ChangeNotification(kind=ChangeKind.WRITE, path=Path("/w/a"))
        error = WatchError("lost events")
        second = ChangeNotification(kind=ChangeKind.REMOVE, path=Path("/w/b"))
        source._queue.put(first)
        source._queue.put(error)
        source._queue.put(second)

        assert source.drain() == [first, error, second]
        assert source.drain() == []

    def test_stop_is_idempotent(self, make_config):
        observer = MagicMock()
        source = FileWatchSource(make_config(), observer_factory=lambda: observer)
        source.start()
        source.stop()
        source.stop()

        observer.stop.assert_called_once()
        assert not source.is_running


class TestFileWatchSourceIntegration:
    """Tests against a real watchdog observer."""

    def test_write_is_delivered(self, make_config, tmp_path):
        target = tmp_path / "data.txt"
        source = FileWatchSource(make_config())
        source.start()
        try:
            target.write_text("hello")
            assert receive_qualifying(source, target.resolve(), timeout=5.0) is not None
        finally:
            source.stop()

    def test_rate_limit_coalesces_two_writes(self, make_config, tmp_path):
        target = tmp_path / "data.txt"
        target.write_text("initial")
        source = FileWatchSource(make_config(path=target, rate_limit=2))
        source.start()
        try:
            target.write_text("first")
            time.sleep(0.5)
            target.write_text("second")

            coalesced = receive_qualifying(source, target.resolve(), timeout=6.0)
            assert coalesced == ChangeNotification(kind=ChangeKind.WRITE, path=target.resolve())
            assert receive_qualifying(source, target.resolve(), timeout=3.0) is None
        finally:
            source.stop()
