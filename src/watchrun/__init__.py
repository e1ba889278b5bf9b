"""watchrun: rerun a command whenever a watched path changes."""

__version__ = "0.1.0"

# Models
from watchrun.models import (
    QUALIFYING_KINDS,
    ChangeKind,
    ChangeNotification,
    RunOutcome,
    RunResult,
    WatchConfig,
)

# Config
from watchrun.config import ConfigError, build_config, load_watch_settings

# Pipeline
from watchrun.controller import ControllerStats, WatchController
from watchrun.debouncer import Debouncer
from watchrun.dispatcher import DispatchAborted, RunDispatcher
from watchrun.file_watcher import FileWatchSource
from watchrun.notifier import ConsoleNotifier, LoggingNotifier, NoOpNotifier, WatchNotifier
from watchrun.watchers import WatchError, WatchSetupError, WatchSource

__all__ = [
    "__version__",
    # Models
    "ChangeKind",
    "ChangeNotification",
    "QUALIFYING_KINDS",
    "RunOutcome",
    "RunResult",
    "WatchConfig",
    # Config
    "ConfigError",
    "build_config",
    "load_watch_settings",
    # Pipeline
    "Debouncer",
    "FileWatchSource",
    "RunDispatcher",
    "DispatchAborted",
    "WatchController",
    "ControllerStats",
    # Notifiers
    "WatchNotifier",
    "ConsoleNotifier",
    "LoggingNotifier",
    "NoOpNotifier",
    # Errors
    "WatchError",
    "WatchSetupError",
    "WatchSource",
]
