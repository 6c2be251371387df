"""
Entry identifier allocation.

IDs are drawn uniformly from the positive 32-bit space with a
non-cryptographic generator seeded once from the OS entropy source, and
checked against the store until an unused one is found.
"""

import logging
import random
import secrets
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

MAX_ENTRY_ID = 2**32 - 1


class IdAllocator:
    """Generates entry IDs that are unique across the whole store."""

    def __init__(
        self,
        exists: Callable[[int], Awaitable[bool]],
        generator: random.Random | None = None,
    ) -> None:
        """
        Initialize the allocator.

        Args:
            exists: Coroutine function reporting whether an ID is already stored
            generator: Random source; seeded from the OS when omitted
        """
        self._exists: Callable[[int], Awaitable[bool]] = exists
        self._generator: random.Random = generator or random.Random(secrets.randbits(64))

    def _draw(self) -> int:
        return self._generator.randint(1, MAX_ENTRY_ID)

    async def allocate(self) -> int:
        """
        Draw IDs until one is free in the store.

        Retries are unbounded; collisions are negligible at realistic entry counts.

        Returns:
            An ID not present in the store at the time of the lookup
        """
        candidate = self._draw()
        attempts = 1
        while await self._exists(candidate):
            logger.debug(f"Entry ID {candidate:x} already in use, drawing again")
            candidate = self._draw()
            attempts += 1

        if attempts > 1:
            logger.info(f"Allocated entry ID {candidate:x} after {attempts} draws")
        return candidate
