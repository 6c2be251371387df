"""Configuration manager for Schedule Bot.

This module provides functionality for loading and validating YAML
configuration files with Pydantic model validation, and for writing a
documented sample file on first run.
"""

import logging
import threading
from pathlib import Path

import yaml
from pydantic import ValidationError

from ..config.schema import ScheduleBotConfig


logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Configuration manager for handling YAML config files with Pydantic validation.

    The configuration is loaded once at startup; the resulting
    ScheduleBotConfig is handed explicitly to the components that need it.
    """

    def __init__(self) -> None:
        """Initialize the configuration manager."""
        self._current_config: ScheduleBotConfig | None = None
        self._config_lock: threading.RLock = threading.RLock()

    @staticmethod
    def load_config(config_path: Path) -> ScheduleBotConfig:
        """
        Load and validate configuration from a YAML file.

        Args:
            config_path: Path to the YAML configuration file

        Returns:
            ScheduleBotConfig: Validated configuration object

        Raises:
            FileNotFoundError: If the config file doesn't exist
            yaml.YAMLError: If the YAML syntax is invalid
            ValueError: If the document is not a mapping
            ValidationError: If the configuration fails Pydantic validation
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as f:
                raw_config_data: object = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML syntax in {config_path}: {e}") from e

        if raw_config_data is None:
            config_data: dict[str, object] = {}
        elif isinstance(raw_config_data, dict):
            config_data = raw_config_data
        else:
            raise ValueError(
                f"Configuration file must contain a YAML dictionary, got {type(raw_config_data).__name__}"
            )

        try:
            return ScheduleBotConfig.model_validate(config_data)
        except ValidationError:
            logger.error(f"Configuration in {config_path} failed validation")
            raise

    @staticmethod
    def create_sample_config(sample_path: Path) -> None:
        """
        Create a sample configuration file with all options and documentation.

        Args:
            sample_path: Path where to create the sample configuration file
        """
        _ = sample_path.parent.mkdir(parents=True, exist_ok=True)
        _ = sample_path.write_text(ConfigManager._generate_sample_content(), encoding="utf-8")

    @staticmethod
    def _generate_sample_content() -> str:
        """Generate sample configuration file content."""
        return """# Schedule Bot Configuration File

services:
  discord:
    # Discord bot token - Get this from Discord Developer Portal
    token: "your_discord_bot_token_here"

storage:
  # "json" persists entries to `path`, "memory" forgets them on restart
  backend: "json"
  path: "entries.json"

limits:
  # Maximum number of entries per server
  max_entries: 15

channels:
  defaults:
    # Minutes before start / end at which reminders are announced
    reminders: [10]
    end_reminders: []
    rsvp_enabled: false
    rsvp_options:
      "✅": "Yes"
      "❌": "No"
    # Emoji for clearing an RSVP, "" to disable
    rsvp_clear: ""
    # none, ascending or descending
    auto_sort: "none"
    # Placeholders: {title} {id} {url} {start} {end} {start_relative} {end_relative}
    start_message: "**{title}** has started!"
    end_message: "**{title}** has ended."
    reminder_message: "**{title}** starts {start_relative}."
    end_reminder_message: "**{title}** ends {end_relative}."
  # Per-channel settings keyed by channel ID
  overrides: {}
"""

    def set_current_config(self, config: ScheduleBotConfig) -> None:
        """
        Set the current configuration.

        Args:
            config: Configuration object to set as current
        """
        with self._config_lock:
            self._current_config = config

    def get_current_config(self) -> ScheduleBotConfig:
        """
        Get the current configuration.

        Returns:
            ScheduleBotConfig: The current configuration

        Raises:
            RuntimeError: If no configuration has been set
        """
        with self._config_lock:
            if self._current_config is None:
                raise RuntimeError(
                    "No configuration has been set. Call set_current_config() first."
                )
            return self._current_config
