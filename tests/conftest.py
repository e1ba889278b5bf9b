"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

from watchrun.models import ChangeKind, ChangeNotification, WatchConfig  # noqa: E402


class RecordingNotifier:
    """Notifier that keeps every message for assertions."""

    def __init__(self):
        self.messages: list[tuple[str, str]] = []

    def info(self, msg: str) -> None:
        self.messages.append(("info", msg))

    def warning(self, msg: str) -> None:
        self.messages.append(("warning", msg))

    def error(self, msg: str) -> None:
        self.messages.append(("error", msg))

    @property
    def lines(self) -> list[str]:
        return [msg for _, msg in self.messages]


class FakeSource:
    """Scripted watch source.

    ``receive`` pops scripted items (notifications or exceptions to raise).
    Once the script is exhausted it calls ``on_empty`` and returns None.
    Anything put in ``backlog`` is returned by the next ``drain``.
    """

    def __init__(self, items=None):
        self.items = list(items or [])
        self.backlog: list[ChangeNotification] = []
        self.received = 0
        self.on_empty = None

    def start(self) -> None:
        pass

    def stop(self) -> None:
        pass

    def receive(self, timeout=None):
        if not self.items:
            if self.on_empty is not None:
                self.on_empty()
            return None
        item = self.items.pop(0)
        self.received += 1
        if isinstance(item, Exception):
            raise item
        return item

    def drain(self):
        drained, self.backlog = self.backlog, []
        return drained


def notification(kind: ChangeKind, path: str = "/watched/file.txt") -> ChangeNotification:
    if kind is ChangeKind.RENAME:
        return ChangeNotification.rename(Path(path), Path(path + ".new"))
    return ChangeNotification(kind=kind, path=Path(path))


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def make_config(tmp_path):
    """Factory for WatchConfig instances rooted in a temporary directory."""

    def _make(**overrides) -> WatchConfig:
        values = {"path": tmp_path, "command": ("echo", "hi")}
        values.update(overrides)
        return WatchConfig(**values)

    return _make


@pytest.fixture
def tmp_config(tmp_path):
    """Create a temporary config file."""
    config = tmp_path / "watchrun.toml"
    config.write_text(
        """
[watch]
path = "src"
command = ["make", "test"]
recursive = true
rate_limit = 0.5
"""
    )
    (tmp_path / "src").mkdir()
    return config
