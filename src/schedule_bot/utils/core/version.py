"""
Version utilities for Schedule Bot.

Reads the project version from the installed distribution metadata, falling
back to pyproject.toml for source checkouts.
"""

import logging
import tomllib
from functools import lru_cache
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

logger = logging.getLogger(__name__)

DISTRIBUTION_NAME = "schedule-bot"


@lru_cache(maxsize=1)
def get_version() -> str:
    """
    Get the project version.

    Returns:
        Version string (e.g., "1.0.0"), or "unknown" if it cannot be found
    """
    try:
        return version(DISTRIBUTION_NAME)
    except PackageNotFoundError:
        logger.debug("Distribution metadata not found, falling back to pyproject.toml")

    pyproject_path = Path(__file__).resolve().parents[4] / "pyproject.toml"
    try:
        with pyproject_path.open("rb") as f:
            data = tomllib.load(f)
        project = data.get("project", {})
        if isinstance(project, dict) and isinstance(project.get("version"), str):
            return project["version"]
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.debug(f"Could not read version from {pyproject_path}: {e}")

    return "unknown"
