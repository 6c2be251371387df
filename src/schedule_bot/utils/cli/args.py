"""
Command-line argument parsing for Schedule Bot.

Paths given on the command line are resolved and checked here, then passed
explicitly to the components that need them. Besides paths, the command
line can override the entry store backend and ask for a configuration
check without connecting to Discord.
"""

import argparse
import sys
from pathlib import Path
from typing import Literal, NamedTuple

from ..core.version import get_version

StoreBackend = Literal["json", "memory"]


class PathValidationError(Exception):
    """Raised when a path validation fails."""


class ParsedArgs(NamedTuple):
    """Container for parsed command-line arguments."""

    config_file: Path
    data_folder: Path
    log_folder: Path
    store_backend: StoreBackend | None = None
    check_config: bool = False


class DefaultPaths:
    """Default paths for Schedule Bot."""

    CONFIG_FILE: Path = Path("config.yml")
    DATA_FOLDER: Path = Path("data")
    LOG_FOLDER: Path = Path("logs")


def resolve_path(value: str, label: str, *, is_file: bool) -> Path:
    """
    Resolve a path argument and check it can serve its purpose.

    Neither the file nor the folder has to exist yet: the config sample, the
    entry store and the log folder are created on first run. A file's parent
    folder must exist though.

    Args:
        value: Path as given on the command line
        label: Name used in error messages, e.g. "config file"
        is_file: Whether the path names a file rather than a folder

    Raises:
        PathValidationError: If the path cannot be used
    """
    try:
        path = Path(value).expanduser().resolve()
    except (OSError, ValueError) as e:
        raise PathValidationError(f"Invalid {label} path: {e}") from e

    if is_file:
        if path.is_dir():
            raise PathValidationError(f"{label.capitalize()} path is a directory: {path}")
        if not path.parent.is_dir():
            raise PathValidationError(f"Parent directory for {label} does not exist: {path.parent}")
    elif path.exists() and not path.is_dir():
        raise PathValidationError(f"{label.capitalize()} path exists but is not a directory: {path}")
    return path


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the argument parser for Schedule Bot."""
    parser = argparse.ArgumentParser(
        prog="schedule-bot",
        description="Schedule Bot - Discord bot for scheduling events and announcing them",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  schedule-bot --check-config
    Validate config.yml and exit

  schedule-bot --store memory
    Run without persisting entries, e.g. for a trial server

  schedule-bot --data-folder /var/lib/schedule-bot --log-folder /var/log/schedule-bot
    Keep the entry store and logs elsewhere
""",
    )

    defaults = DefaultPaths()
    paths = parser.add_argument_group("paths")
    _ = paths.add_argument(
        "--config-file",
        default=str(defaults.CONFIG_FILE),
        help="Configuration file; a sample is written there if missing (default: %(default)s)",
        metavar="PATH",
    )
    _ = paths.add_argument(
        "--data-folder",
        default=str(defaults.DATA_FOLDER),
        help="Folder for a relative storage.path (default: %(default)s)",
        metavar="PATH",
    )
    _ = paths.add_argument(
        "--log-folder",
        default=str(defaults.LOG_FOLDER),
        help="Folder for application logs (default: %(default)s)",
        metavar="PATH",
    )

    _ = parser.add_argument(
        "--store",
        dest="store_backend",
        choices=["json", "memory"],
        default=None,
        help="Override storage.backend from the configuration file",
    )
    _ = parser.add_argument(
        "--check-config",
        action="store_true",
        help="Load and validate the configuration, then exit without connecting",
    )
    _ = parser.add_argument(
        "--version", action="version", version=f"%(prog)s {get_version()}"
    )
    return parser


def parse_arguments(args: list[str] | None = None) -> ParsedArgs:
    """
    Parse command-line arguments.

    Args:
        args: Arguments to parse (defaults to sys.argv[1:])

    Raises:
        SystemExit: If parsing or path validation fails, or --help was requested
    """
    parsed = create_argument_parser().parse_args(args)

    try:
        return ParsedArgs(
            config_file=resolve_path(getattr(parsed, "config_file"), "config file", is_file=True),
            data_folder=resolve_path(getattr(parsed, "data_folder"), "data folder", is_file=False),
            log_folder=resolve_path(getattr(parsed, "log_folder"), "log folder", is_file=False),
            store_backend=getattr(parsed, "store_backend"),
            check_config=getattr(parsed, "check_config"),
        )
    except PathValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def get_parsed_args(args: list[str] | None = None) -> ParsedArgs:
    """Parse arguments and make sure the data and log folders exist."""
    parsed_args = parse_arguments(args)
    parsed_args.data_folder.mkdir(parents=True, exist_ok=True)
    parsed_args.log_folder.mkdir(parents=True, exist_ok=True)
    return parsed_args
