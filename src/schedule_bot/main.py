"""
Main entry point for Schedule Bot.

This module sets up logging, loads the configuration, opens the entry
store, creates the bot with its entry manager and runs it until shutdown.
"""

import asyncio
import logging
import logging.handlers
import signal
import sys
from datetime import datetime
from pathlib import Path
from typing_extensions import override

import discord
from discord.ext import commands

from .bot.entry_manager import EntryManager
from .bot.extensions import load_extensions
from .bot.gateway import MessagingGateway
from .bot.scheduling import DocumentCollection, JsonFileCollection, MemoryCollection
from .config.manager import ConfigManager
from .config.schema import ScheduleBotConfig
from .utils.cli.args import get_parsed_args

LOG_FILES: tuple[str, str] = ("schedule-bot.log", "schedule-bot-errors.log")


def rotate_logs_on_startup(logs_dir: Path) -> None:
    """Rename the previous session's log files with a timestamp suffix."""
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    for log_file in LOG_FILES:
        log_path = logs_dir / log_file
        if log_path.exists():
            try:
                _ = log_path.rename(logs_dir / f"{log_file}.{timestamp}")
            except OSError as e:
                print(f"Warning: Failed to rotate {log_file}: {e}", file=sys.stderr)


def cleanup_old_logs(logs_dir: Path, max_files: int = 10) -> None:
    """
    Delete old timestamped log files, keeping the newest ones.

    Args:
        logs_dir: Directory containing log files
        max_files: Timestamped files to keep per log type
    """
    for log_type in LOG_FILES:
        timestamped_files = [
            path for path in logs_dir.glob(f"{log_type}.*") if path.name != log_type
        ]
        timestamped_files.sort(key=lambda x: x.stat().st_mtime, reverse=True)
        for file_path in timestamped_files[max_files:]:
            try:
                file_path.unlink()
            except OSError as e:
                print(f"Warning: Failed to remove {file_path.name}: {e}", file=sys.stderr)


def setup_logging(logs_dir: Path) -> None:
    """
    Configure file and console logging with rotation.

    A detailed log and an errors-only log are written to ``logs_dir``;
    INFO and above also goes to stdout.
    """
    logs_dir.mkdir(exist_ok=True, parents=True)
    rotate_logs_on_startup(logs_dir)
    cleanup_old_logs(logs_dir, max_files=10)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers.clear()

    detailed_formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
    )
    simple_formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")

    file_handler = logging.handlers.RotatingFileHandler(
        logs_dir / LOG_FILES[0],
        maxBytes=5 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(detailed_formatter)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(simple_formatter)

    error_handler = logging.handlers.RotatingFileHandler(
        logs_dir / LOG_FILES[1],
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(detailed_formatter)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(error_handler)

    # Noisy libraries
    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("discord.http").setLevel(logging.WARNING)
    logging.getLogger("discord.gateway").setLevel(logging.INFO)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


def open_collection(config: ScheduleBotConfig, data_folder: Path) -> DocumentCollection:
    """Open the configured entry collection; relative paths live under ``data_folder``."""
    if config.storage.backend == "memory":
        logger.warning("Using the in-memory entry store, entries are lost on shutdown")
        return MemoryCollection()

    path = config.storage.path
    if not path.is_absolute():
        path = data_folder / path
    logger.info(f"Using entry store at {path}")
    return JsonFileCollection(path)


class ScheduleBot(commands.Bot):
    """
    Schedule Bot - Discord bot for scheduled events.

    Owns the entry manager; its timer lanes run between setup_hook and close.
    """

    def __init__(self, config_manager: ConfigManager, collection: DocumentCollection) -> None:
        intents = discord.Intents.default()
        super().__init__(command_prefix="!", intents=intents, help_command=None)

        self.config_manager: ConfigManager = config_manager
        self.gateway: MessagingGateway = MessagingGateway(self)
        self.entry_manager: EntryManager = EntryManager(
            self.gateway, config_manager.get_current_config(), collection
        )
        self._is_shutting_down: bool = False

    def is_shutting_down(self) -> bool:
        return self._is_shutting_down

    @override
    async def setup_hook(self) -> None:
        """Load the command extensions, sync commands and start the timers."""
        logger.info("Setting up Schedule Bot...")

        results = await load_extensions(self)
        failed = [r for r in results if not r.loaded]
        for status in failed:
            logger.warning(f"  - {status.name}: {status.error}")

        try:
            synced = await self.tree.sync()
            logger.info(f"Successfully synced {len(synced)} slash commands")
        except discord.HTTPException as e:
            logger.error(f"Failed to sync slash commands: {e}")
            logger.warning("Continuing without command sync - some commands may not appear")

        await self.entry_manager.start()
        logger.info("Schedule Bot setup complete")

    async def on_ready(self) -> None:
        if self.user is None:
            logger.error("Bot user is None after ready event")
            return
        logger.info(f"Schedule Bot is ready! Logged in as {self.user} (ID: {self.user.id})")
        logger.info(f"Connected to {len(self.guilds)} guild(s)")

    @override
    async def on_error(self, event_method: str, /, *args: object, **kwargs: object) -> None:
        logger.exception(f"Unhandled exception in event '{event_method}' with args: {args}")

    @override
    async def close(self) -> None:
        """Stop the timer lanes, then close the Discord connection."""
        if self._is_shutting_down:
            logger.debug("Shutdown already in progress, skipping duplicate close")
            return
        self._is_shutting_down = True
        logger.info("Initiating graceful shutdown of Schedule Bot...")

        try:
            await self.entry_manager.stop()
        except Exception as e:
            logger.exception(f"Error stopping entry manager: {e}")
        await super().close()
        logger.info("Schedule Bot shutdown complete")


def setup_signal_handlers(bot: ScheduleBot) -> None:
    """Close the bot gracefully on SIGTERM and SIGINT."""
    loop = asyncio.get_running_loop()

    def signal_handler(signum: int) -> None:
        logger.info(f"Received {signal.Signals(signum).name} signal, initiating graceful shutdown...")
        _ = loop.create_task(bot.close())

    for signum in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(signum, signal_handler, signum)
        except NotImplementedError:
            logger.debug("Signal handlers are not supported on this platform")
            return
    logger.debug("Signal handlers registered for graceful shutdown")


async def main(args: list[str] | None = None) -> None:
    """Parse arguments, load configuration and run the bot until it closes."""
    parsed_args = get_parsed_args(args)
    setup_logging(parsed_args.log_folder)
    logger.info("Schedule Bot starting up...")

    config_path = parsed_args.config_file
    if not config_path.exists():
        ConfigManager.create_sample_config(config_path)
        logger.error(f"Configuration file '{config_path}' not found, a sample was written there")
        logger.error("Fill in your Discord token and restart the bot")
        sys.exit(1)

    config_manager = ConfigManager()
    try:
        config = config_manager.load_config(config_path)
    except Exception as e:
        logger.exception(f"Failed to load configuration: {e}")
        sys.exit(1)
    if parsed_args.store_backend is not None:
        config.storage.backend = parsed_args.store_backend
    config_manager.set_current_config(config)
    logger.info("Configuration loaded and validated successfully")

    if parsed_args.check_config:
        logger.info(
            f"Configuration OK: store '{config.storage.backend}', "
            f"{len(config.channels.overrides)} channel override(s), "
            f"at most {config.limits.max_entries} entries per server"
        )
        return

    bot = ScheduleBot(config_manager, open_collection(config, parsed_args.data_folder))
    setup_signal_handlers(bot)

    try:
        await bot.start(config.services.discord.token)
    except discord.LoginFailure as e:
        logger.error(f"Failed to login to Discord: {e}")
        logger.error("Please check your Discord bot token in the configuration file")
        sys.exit(1)
    finally:
        if not bot.is_shutting_down():
            await bot.close()
