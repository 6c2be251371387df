"""
Extension loading for Schedule Bot.

The command cogs are listed explicitly and loaded one by one; a cog that
fails to load is reported without preventing the others from loading.
"""

import logging
from typing import NamedTuple

from discord.ext import commands

logger = logging.getLogger(__name__)

EXTENSIONS: tuple[str, ...] = (
    "schedule_bot.bot.commands.destroy",
    "schedule_bot.bot.commands.rsvp",
)


class ExtensionStatus(NamedTuple):
    """Status information for an extension."""

    name: str
    loaded: bool
    error: str | None = None


async def load_extension_safe(bot: commands.Bot, extension_name: str) -> ExtensionStatus:
    """
    Load a single extension, reporting instead of raising on failure.

    Args:
        bot: The Discord bot instance
        extension_name: Dotted module name of the extension

    Returns:
        ExtensionStatus with the load result
    """
    try:
        await bot.load_extension(extension_name)
        logger.info(f"Successfully loaded extension: {extension_name}")
        return ExtensionStatus(extension_name, True)

    except commands.ExtensionAlreadyLoaded:
        logger.warning(f"Extension already loaded: {extension_name}")
        return ExtensionStatus(extension_name, True)

    except commands.ExtensionNotFound as e:
        error_msg = f"Extension not found: {e}"
        logger.error(error_msg)
        return ExtensionStatus(extension_name, False, error_msg)

    except commands.NoEntryPointError as e:
        error_msg = f"No setup function found: {e}"
        logger.error(error_msg)
        return ExtensionStatus(extension_name, False, error_msg)

    except commands.ExtensionFailed as e:
        error_msg = f"Extension setup failed: {e}"
        logger.error(error_msg)
        return ExtensionStatus(extension_name, False, error_msg)


async def load_extensions(
    bot: commands.Bot, extensions: tuple[str, ...] = EXTENSIONS
) -> list[ExtensionStatus]:
    """Load every command extension of the bot."""
    logger.info(f"Loading {len(extensions)} extensions...")
    results = [await load_extension_safe(bot, name) for name in extensions]

    failed = [status.name for status in results if not status.loaded]
    logger.info(
        f"Extension loading complete: {len(results) - len(failed)} loaded, {len(failed)} failed"
    )
    if failed:
        logger.warning(f"Failed extensions: {failed}")
    return results
