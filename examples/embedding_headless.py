#!/usr/bin/env python3
"""
Example: Embedding the watch loop in another program
Shows how to drive WatchController without the CLI.

This example demonstrates:
- Building a WatchConfig in code
- Routing user-visible lines to logging instead of stdout
- Stopping the loop from another thread
- Reading the loop's counters afterwards
"""

import logging
import sys
import threading
from pathlib import Path
from tempfile import TemporaryDirectory

try:
    from watchrun import FileWatchSource, LoggingNotifier, RunDispatcher, WatchConfig, WatchController
except ImportError:
    print("Error: Install watchrun first: pip install watchrun")
    sys.exit(1)


def example_touch_and_run(duration: float = 5.0) -> None:
    """Watch a scratch directory, touch a file in it, and stop after ``duration`` seconds."""
    print("=" * 60)
    print("Example: Rerun a command on change")
    print("=" * 60)

    with TemporaryDirectory() as tmpdir:
        watched = Path(tmpdir)
        config = WatchConfig(
            path=watched,
            command=(sys.executable, "-c", "print('change seen')"),
            immediate=True,
            rate_limit=0.5,
        )

        notifier = LoggingNotifier()
        source = FileWatchSource(config)
        source.start()
        controller = WatchController(config, source, RunDispatcher(config, notifier), notifier)

        threading.Timer(1.0, (watched / "input.txt").write_text, args=("hello",)).start()
        threading.Timer(duration, controller.stop).start()
        try:
            controller.run()
        finally:
            source.stop()

        stats = controller.stats
        print(f"\n📊 {stats.dispatches} runs, {stats.notifications} notifications, {stats.failures} failures")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s - %(message)s")
    example_touch_and_run()
