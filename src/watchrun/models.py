"""Shared data models for watchrun."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ChangeKind(str, Enum):
    """Kinds of change notification delivered by a watch source."""

    NOTICE_WRITE = "notice_write"
    NOTICE_REMOVE = "notice_remove"
    CREATE = "create"
    WRITE = "write"
    REMOVE = "remove"
    RENAME = "rename"
    OTHER = "other"
    """Catch-all for signals that never trigger a run (e.g. close-after-write)."""


QUALIFYING_KINDS = frozenset(
    {
        ChangeKind.NOTICE_WRITE,
        ChangeKind.NOTICE_REMOVE,
        ChangeKind.CREATE,
        ChangeKind.WRITE,
        ChangeKind.REMOVE,
        ChangeKind.RENAME,
    }
)

_DISPLAY_NAMES = {
    ChangeKind.NOTICE_WRITE: "NoticeWrite",
    ChangeKind.NOTICE_REMOVE: "NoticeRemove",
    ChangeKind.CREATE: "Create",
    ChangeKind.WRITE: "Write",
    ChangeKind.REMOVE: "Remove",
    ChangeKind.RENAME: "Rename",
    ChangeKind.OTHER: "Other",
}


@dataclass(frozen=True)
class ChangeNotification:
    """A single (possibly coalesced) change observed under the watched path."""

    kind: ChangeKind
    """What happened."""

    path: Path
    """Affected path. For renames, the source path."""

    dest_path: Path | None = None
    """Destination path, set for renames only."""

    detail: str | None = None
    """Raw event name for OTHER notifications."""

    @classmethod
    def rename(cls, src: Path, dest: Path) -> "ChangeNotification":
        return cls(kind=ChangeKind.RENAME, path=src, dest_path=dest)

    @property
    def is_qualifying(self) -> bool:
        """Whether this notification should trigger a run."""
        return self.kind in QUALIFYING_KINDS

    @property
    def key(self) -> Path:
        """Path the notification is coalesced under (destination for renames)."""
        if self.kind is ChangeKind.RENAME and self.dest_path is not None:
            return self.dest_path
        return self.path

    def __str__(self) -> str:
        name = _DISPLAY_NAMES[self.kind]
        if self.kind is ChangeKind.RENAME:
            return f'{name}("{self.path}", "{self.dest_path}")'
        if self.kind is ChangeKind.OTHER:
            return f'{name}({self.detail or "unknown"}, "{self.path}")'
        return f'{name}("{self.path}")'


class RunOutcome(str, Enum):
    """Result of one command execution."""

    SUCCESS = "success"
    """The process was started and ran to completion, whatever its exit code."""

    FAILURE = "failure"
    """The process could not be spawned or run."""


@dataclass(frozen=True)
class RunResult:
    """Transient report of one dispatch."""

    outcome: RunOutcome
    returncode: int | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is RunOutcome.SUCCESS


@dataclass(frozen=True)
class WatchConfig:
    """Immutable configuration, built once at startup."""

    path: Path
    """Target file or directory to watch."""

    command: tuple[str, ...]
    """Command template: executable followed by its arguments."""

    recursive: bool = False
    """Watch subdirectories too."""

    immediate: bool = False
    """Run the command once before the first change."""

    stop_on_error: bool = False
    """Terminate the whole process on the first failed run."""

    rate_limit: float = 0.0
    """Debounce window in seconds. 0 disables coalescing."""

    notices: bool = False
    """Deliver NoticeWrite/NoticeRemove as soon as a burst starts."""
