"""
Relaunch Command Line Interface.

Watches source directories, rebuilds on change and restarts the program.

Usage:
    relaunch -e go,tmpl -o ./bin/server -x "-port 8080" ./cmd ./internal
"""

import argparse
import asyncio
import sys
from collections.abc import Callable

from pydantic import ValidationError
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver

from relaunch.build.builder import Builder
from relaunch.errors import WatcherSetupError
from relaunch.process.supervisor import ProcessSupervisor
from relaunch.utils.config import LoggingSettings, WatchConfig, get_settings
from relaunch.utils.logger import configure_logging, get_logger
from relaunch.watcher.debouncer import BuildState, EventDebouncer
from relaunch.watcher.path_filter import PathFilter
from relaunch.watcher.scanner import DirectoryScanner
from relaunch.watcher.watch_loop import WatchLoop

logger = get_logger("relaunch.cli")


async def run(
    config: WatchConfig,
    observer_factory: Callable[[], BaseObserver] = Observer,
) -> int:
    """
    Build once, then watch and rebuild until the watcher fails.

    Args:
        config: Watch configuration
        observer_factory: Creates the watchdog observer

    Returns:
        Process exit status
    """
    state = BuildState()
    path_filter = PathFilter.from_config(config)
    scanner = DirectoryScanner(path_filter)
    supervisor = ProcessSupervisor(config.artifact, config.app_args)
    builder = Builder(config.build_argv, state, supervisor, delay=config.delay)
    debouncer = EventDebouncer(
        path_filter,
        state,
        config.artifact,
        config.cooldown,
        dedup=config.dedup,
        delay=config.delay,
    )

    directories = scanner.filter_watchable(scanner.collect(config.paths, config.recursive))
    if not directories:
        logger.error(
            "nothing_to_watch",
            paths=[str(p) for p in config.paths],
            extensions=config.extensions,
        )
        return 1

    watch_loop = WatchLoop(directories, debouncer, builder.run, observer_factory)

    try:
        await builder.build()
        await watch_loop.run()
    except WatcherSetupError as e:
        logger.error("watcher_setup_failed", error=str(e))
        await supervisor.stop()
        return 1
    except asyncio.CancelledError:
        logger.info("shutting_down")
        await supervisor.stop()
        raise

    # The watcher is gone but the last started process keeps running.
    try:
        await watch_loop.drain()
        if supervisor.is_running:
            logger.warning("watcher_stopped_process_running", pid=supervisor.process.pid)
            await supervisor.wait()
    except asyncio.CancelledError:
        await supervisor.stop()
        raise
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="relaunch",
        description="Rebuild and restart a program whenever its sources change",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        help="Files or directories to watch (default: current directory)",
    )
    parser.add_argument(
        "-e",
        "--ext",
        dest="extensions",
        default=None,
        help='Comma-separated extensions to watch, "*" watches everything (default: go)',
    )
    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Path of the built program (default: ./<current directory name>)",
    )
    parser.add_argument(
        "-x",
        "--app-args",
        default=None,
        help="Arguments passed to the built program",
    )
    parser.add_argument(
        "-b",
        "--build-args",
        default=None,
        help="Arguments passed to the build command (default: build -o <output>)",
    )
    parser.add_argument(
        "--build-command",
        default=None,
        help="Build command (default: go)",
    )
    parser.add_argument(
        "-c",
        "--cooldown",
        type=float,
        default=None,
        help="Seconds after a build during which changes are ignored",
    )
    parser.add_argument(
        "-d",
        "--delay",
        type=float,
        default=None,
        help="Seconds to wait between a change and the build it triggers",
    )
    parser.add_argument(
        "--no-dedup",
        dest="dedup",
        action="store_false",
        default=None,
        help="Build immediately on every accepted change instead of coalescing",
    )
    parser.add_argument(
        "--no-recursive",
        dest="recursive",
        action="store_false",
        default=None,
        help="Do not watch subdirectories",
    )
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--log-format", default=None, choices=["console", "json"])
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = get_settings()
        log_overrides = {"level": args.log_level, "format": args.log_format}
        log_settings = LoggingSettings(
            **{
                **settings.logging.model_dump(),
                **{k: v for k, v in log_overrides.items() if v is not None},
            }
        )
        config = settings.to_watch_config(
            paths=args.paths or None,
            extensions=args.extensions,
            output=args.output,
            app_args=args.app_args,
            build_args=args.build_args,
            build_command=args.build_command,
            cooldown=args.cooldown,
            delay=args.delay,
            dedup=args.dedup,
            recursive=args.recursive,
        )
    except ValidationError as e:
        print(f"Error: invalid configuration\n{e}", file=sys.stderr)
        return 2

    configure_logging(log_settings)
    logger.info(
        "relaunch_starting",
        artifact=str(config.artifact),
        build=config.build_argv,
        extensions=config.extensions,
        cooldown=config.cooldown,
        dedup=config.dedup,
    )

    try:
        return asyncio.run(run(config))
    except KeyboardInterrupt:
        print("\nCancelled by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
