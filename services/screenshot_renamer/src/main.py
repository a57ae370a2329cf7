"""Main entry point for the screenshot renamer."""

import asyncio
import re
import signal
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import structlog
from dotenv import load_dotenv

from .cli import CliOptions, parse_cli_options
from .config import Settings, compile_filename_pattern, load_settings
from .exceptions import ScreenshotRenamerError
from .file_processor import ScreenshotProcessor
from .logging_config import configure_logging
from .processing_queue import ProcessingQueue
from .providers import RenameProvider, create_provider
from .watcher import DirectoryWatcher, ScreenshotEventHandler, scan_existing_files, validate_watch_directory

logger = structlog.get_logger()


@dataclass
class RuntimeContext:
    """Everything the service needs once startup checks have passed."""

    options: CliOptions
    settings: Settings
    pattern: re.Pattern[str]
    provider: RenameProvider


def ensure_output_directories(settings: Settings) -> None:
    """Create the output folder, one folder per category and the backup folder."""
    directories = [settings.output_dir, *(settings.output_dir / name for name in settings.categories)]
    directories.append(settings.backup_dir)

    if not settings.categories:
        logger.warning("No categories defined in configuration")

    for directory in directories:
        if not directory.exists():
            logger.info("Creating directory", path=str(directory))
            directory.mkdir(parents=True, exist_ok=True)


def bootstrap(options: CliOptions) -> RuntimeContext:
    """Validate configuration and prepare the filesystem and provider.

    Raises:
        ConfigurationError: On any startup problem; nothing has been queued yet
    """
    settings = load_settings(options.config, options.settings_overrides())
    configure_logging(settings.log_level)

    pattern = compile_filename_pattern(settings.file_name_regex)
    logger.info("Using file matching pattern", pattern=settings.file_name_regex)

    validate_watch_directory(settings.watchdir)
    ensure_output_directories(settings)

    provider = create_provider(settings)
    return RuntimeContext(options=options, settings=settings, pattern=pattern, provider=provider)


def install_signal_handlers(queue: ProcessingQueue, loop: asyncio.AbstractEventLoop) -> None:
    """Request a queue stop on SIGINT/SIGTERM."""

    def signal_handler(signum: int, _frame: Any) -> None:
        logger.info("Shutdown signal received", signal=signum)
        loop.call_soon_threadsafe(queue.request_stop)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


async def run_service(context: RuntimeContext) -> None:
    """Feed the queue from the retroactive scan and/or the watcher and drain it."""
    settings = context.settings
    processor = ScreenshotProcessor(
        provider=context.provider,
        categories=settings.categories,
        output_dir=settings.output_dir,
        backup_dir=settings.backup_dir,
        detail=settings.detail,
        classify_timeout=settings.classify_timeout_seconds,
    )
    queue = ProcessingQueue(processor, keep_alive=context.options.watch)
    loop = asyncio.get_running_loop()
    watcher: DirectoryWatcher | None = None

    if context.options.retroactive:
        logger.info("Checking for existing files", path=str(settings.watchdir))
        existing = scan_existing_files(settings.watchdir, context.pattern)
        for path in existing:
            queue.submit(path)
        if existing:
            logger.info("Added existing files to the processing queue", count=len(existing))
        else:
            logger.info("No existing files matching the pattern found to process retroactively")

    if context.options.watch:
        handler = ScreenshotEventHandler(
            queue,
            context.pattern,
            loop,
            stability_threshold=settings.write_stability_seconds,
            poll_interval=settings.write_poll_interval_seconds,
        )
        watcher = DirectoryWatcher(settings.watchdir, handler)
        watcher.start()

    install_signal_handlers(queue, loop)

    try:
        await queue.run()
    finally:
        if watcher:
            watcher.stop()
        await context.provider.aclose()

    if not context.options.watch:
        logger.info("Exiting as --watch mode is not enabled and queue is empty")


def main(argv: list[str] | None = None) -> int:
    """Run the screenshot renamer.

    Returns:
        Process exit status: 0 on normal completion, 1 on startup failure
    """
    load_dotenv()
    configure_logging()

    try:
        options = parse_cli_options(argv)
        context = bootstrap(options)
    except ScreenshotRenamerError as e:
        logger.error("Startup failed", error=str(e))
        return 1

    try:
        asyncio.run(run_service(context))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    return 0


def run() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
