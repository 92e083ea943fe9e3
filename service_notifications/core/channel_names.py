"""Channel name allocation.

Channels are named after their event's start date. Several events on the
same day get `_2`, `_3`, … suffixes. The probe is not a reservation: it
relies on a single writer running at a time.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

MAX_NAME_ATTEMPTS = 100
DATE_FORMAT = "%Y-%m-%d"


class ChannelNameError(ValueError):
    """Raised when no free name is found within the attempt cap."""


def base_channel_name(starts_at: datetime) -> str:
    return starts_at.strftime(DATE_FORMAT)


async def allocate_channel_name(
    base: str,
    exists: Callable[[str], Awaitable[bool]],
    max_attempts: int = MAX_NAME_ATTEMPTS,
) -> str:
    """Return `base` or the first free `base_N` (N starting at 2)."""
    name = base
    for suffix in range(2, max_attempts + 2):
        if not await exists(name):
            return name
        logger.debug("Channel name '%s' taken", name)
        name = f"{base}_{suffix}"
    raise ChannelNameError(
        f"No free channel name for '{base}' after {max_attempts} attempts"
    )
