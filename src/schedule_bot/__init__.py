"""
Schedule Bot - A Discord bot that keeps a schedule of events and announces them.
"""

import asyncio
import logging
import sys

from .main import main as async_main


def main() -> None:
    """Synchronous entry point that runs the async main function."""
    try:
        asyncio.run(async_main())
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Bot stopped by user")
    except Exception as e:
        logging.getLogger(__name__).exception(f"Failed to start bot: {e}")
        print(f"Failed to start bot: {e}", file=sys.stderr)
        sys.exit(1)


__all__ = ["main"]
