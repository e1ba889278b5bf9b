"""Synchronous execution of the configured command."""

import logging
import subprocess

from watchrun.models import RunOutcome, RunResult, WatchConfig
from watchrun.notifier import NoOpNotifier, WatchNotifier

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "run successful"
FAILURE_MESSAGE = "failed"


class DispatchAborted(Exception):
    """A run failed while stop-on-error is set; the whole process should exit."""

    def __init__(self, result: RunResult):
        super().__init__(f"Command failed to run: {result.error}")
        self.result = result


class RunDispatcher:
    """Runs the command template in the foreground and reports the outcome.

    Only spawn/run failures count as FAILURE. A command that starts and exits
    with a non-zero status is still a SUCCESS for the dispatcher.
    """

    def __init__(self, config: WatchConfig, notifier: WatchNotifier | None = None):
        """Initialize dispatcher.

        Args:
            config: Watch configuration (command template and stop-on-error flag)
            notifier: Sink for "run successful" / "failed" lines
        """
        if not config.command:
            raise ValueError("Command template must contain at least the executable")
        self.config = config
        self.notifier = notifier or NoOpNotifier()

    def dispatch(self) -> RunResult:
        """Run the command once and wait for it to finish.

        Returns:
            RunResult describing the run

        Raises:
            DispatchAborted: If the command could not run and stop-on-error is set
        """
        program, *arguments = self.config.command
        logger.debug(f"Running {program!r} with arguments {arguments!r}")

        try:
            completed = subprocess.run([program, *arguments], check=False)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to run {program!r}: {e}")
            result = RunResult(outcome=RunOutcome.FAILURE, error=str(e))
            self.notifier.error(FAILURE_MESSAGE)
            if self.config.stop_on_error:
                raise DispatchAborted(result) from e
            return result

        logger.debug(f"{program!r} exited with status {completed.returncode}")
        self.notifier.info(SUCCESS_MESSAGE)
        return RunResult(outcome=RunOutcome.SUCCESS, returncode=completed.returncode)
