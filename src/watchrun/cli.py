"""CLI entry point for watchrun: watches a path and reruns a command on changes."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from watchrun import __version__
from watchrun.config import (
    DEFAULT_CONFIG_NAME,
    ConfigError,
    build_config,
    create_default_config,
    load_watch_settings,
)
from watchrun.controller import WatchController
from watchrun.dispatcher import DispatchAborted, RunDispatcher
from watchrun.file_watcher import FileWatchSource
from watchrun.models import WatchConfig
from watchrun.notifier import ConsoleNotifier
from watchrun.watchers import WatchSetupError

logger = logging.getLogger(__name__)

EXIT_RUN_FAILED = 1
EXIT_USAGE = 2


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Flags left unset on the command line are None so that config file
    values can fill them in.

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="watchrun",
        description="Watch a path and rerun a command whenever it changes.",
        epilog="Examples:\n"
        "  watchrun src make                  # Run make when a file in src/ changes\n"
        "  watchrun -r -i -l 1 . pytest -q    # Recursive, run now, 1s debounce\n"
        "  watchrun -c watchrun.toml          # Take everything from a config file\n"
        "  watchrun --init                    # Write a default watchrun.toml",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("path", nargs="?", help="File or directory to watch")
    parser.add_argument(
        "command",
        nargs=argparse.REMAINDER,
        help="Command to run, followed by its arguments",
    )
    parser.add_argument(
        "-r",
        "--recursive",
        action="store_true",
        default=None,
        help="Watch subdirectories too",
    )
    parser.add_argument(
        "-i",
        "--immediate",
        action="store_true",
        default=None,
        help="Run the command once before waiting for changes",
    )
    parser.add_argument(
        "-s",
        "--stop-on-error",
        action="store_true",
        default=None,
        help="Exit with status 1 if the command cannot be run",
    )
    parser.add_argument(
        "-l",
        "--rate-limit",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Coalesce changes to the same path within this window (default: 0)",
    )
    parser.add_argument(
        "-n",
        "--notices",
        action="store_true",
        default=None,
        help="Also react as soon as a write or removal starts (needs --rate-limit)",
    )
    parser.add_argument(
        "-c",
        "--config",
        default=None,
        help=f"TOML config file with a [watch] table (--init writes {DEFAULT_CONFIG_NAME} by default)",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Write a default config file and exit",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Diagnostic logging level on stderr (DEBUG, INFO, WARNING, ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )


def resolve_config(args: argparse.Namespace) -> WatchConfig:
    """Merge config file values with command-line values (command line wins).

    Raises:
        ConfigError: If the merged settings are incomplete or invalid
    """
    settings: dict[str, Any] = {}
    if args.config:
        settings.update(load_watch_settings(args.config))

    command = list(args.command or [])
    if command and command[0] == "--":
        command = command[1:]

    overrides = {
        "path": args.path,
        "command": command or None,
        "recursive": args.recursive,
        "immediate": args.immediate,
        "stop_on_error": args.stop_on_error,
        "rate_limit": args.rate_limit,
        "notices": args.notices,
    }
    settings.update({key: value for key, value in overrides.items() if value is not None})
    return build_config(settings)


def init_config(config: str | None) -> None:
    config_path = Path(config or DEFAULT_CONFIG_NAME).resolve()
    try:
        if create_default_config(config_path):
            print(f"Created default config at: {config_path}")
        else:
            print(f"Config already exists at: {config_path}")
    except OSError as e:
        print(f"Error: Failed to create config: {e}", file=sys.stderr)
        sys.exit(EXIT_RUN_FAILED)


def main(argv: list[str] | None = None) -> None:
    """
    Main entry point for the watchrun CLI.

    Handles:
    - Argument parsing and config file merge
    - Starting the watch source
    - Running the control loop
    - Error handling and exit codes
    """
    args = parse_args(argv)
    configure_logging(args.log_level)

    if args.init:
        init_config(args.config)
        return

    try:
        config = resolve_config(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_USAGE)

    notifier = ConsoleNotifier()
    source = FileWatchSource(config)
    try:
        source.start()
    except WatchSetupError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_RUN_FAILED)

    controller = WatchController(config, source, RunDispatcher(config, notifier), notifier)
    try:
        controller.run()
    except DispatchAborted as e:
        logger.error(f"Stopping on error: {e}")
        sys.exit(EXIT_RUN_FAILED)
    finally:
        source.stop()


if __name__ == "__main__":
    main()
