"""Control loop tying a watch source to the run dispatcher. Primary embed point."""

import logging
import threading
from dataclasses import dataclass

from watchrun.dispatcher import DispatchAborted, RunDispatcher
from watchrun.models import ChangeNotification, WatchConfig
from watchrun.notifier import NoOpNotifier, WatchNotifier
from watchrun.watchers import WatchError, WatchSource

logger = logging.getLogger(__name__)


@dataclass
class ControllerStats:
    """Counters kept by the control loop."""

    notifications: int = 0
    dispatches: int = 0
    failures: int = 0
    watch_errors: int = 0
    dropped: int = 0


class WatchController:
    """Receives notifications and runs the command for qualifying ones.

    States are Idle (blocked in receive) and Dispatching (command running).
    At most one command runs at a time. Notifications that pile up while the
    command runs are drained and shown afterwards, never dispatched: bursts
    are dropped, not queued.
    """

    def __init__(
        self,
        config: WatchConfig,
        source: WatchSource,
        dispatcher: RunDispatcher,
        notifier: WatchNotifier | None = None,
        receive_timeout: float = 1.0,
    ):
        """Initialize controller.

        Args:
            config: Watch configuration
            source: Started watch source
            dispatcher: Dispatcher running the command
            notifier: Sink for user-visible lines (defaults to NoOpNotifier - silent)
            receive_timeout: Seconds between checks of the stop flag while idle
        """
        self.config = config
        self.source = source
        self.dispatcher = dispatcher
        self.notifier = notifier or NoOpNotifier()
        self.receive_timeout = receive_timeout
        self.stats = ControllerStats()
        self._stop_event = threading.Event()

    def run(self) -> None:
        """Run until stopped or interrupted.

        Raises:
            DispatchAborted: When a run fails and stop-on-error is set
        """
        try:
            if self.config.immediate:
                self._dispatch()

            while not self._stop_event.is_set():
                try:
                    notification = self.source.receive(timeout=self.receive_timeout)
                except WatchError as e:
                    self._report_error(e)
                    continue

                if notification is not None:
                    self.handle(notification)
        except KeyboardInterrupt:
            logger.info("Watch interrupted by user")
        finally:
            logger.info(
                f"Watch stopped after {self.stats.notifications} notifications, "
                f"{self.stats.dispatches} runs ({self.stats.failures} failed), "
                f"{self.stats.watch_errors} watch errors"
            )

    def stop(self) -> None:
        """Signal the loop to stop at the next opportunity."""
        self._stop_event.set()

    def handle(self, notification: ChangeNotification) -> bool:
        """Show a notification and run the command if it qualifies.

        Returns:
            True if the command was dispatched
        """
        self.stats.notifications += 1
        self.notifier.info(str(notification))
        if not notification.is_qualifying:
            return False

        self._dispatch()
        return True

    def _report_error(self, error: WatchError) -> None:
        self.stats.watch_errors += 1
        self.notifier.warning(f"watch error: {error}")

    def _dispatch(self) -> None:
        self.stats.dispatches += 1
        try:
            result = self.dispatcher.dispatch()
        except DispatchAborted:
            self.stats.failures += 1
            raise
        if not result.ok:
            self.stats.failures += 1

        for dropped in self.source.drain():
            if isinstance(dropped, WatchError):
                self._report_error(dropped)
                continue
            self.stats.dropped += 1
            self.stats.notifications += 1
            logger.debug(f"Dropping {dropped} received during run")
            self.notifier.info(str(dropped))
