"""
Service Notifications — Synchronization run.

One batch run: fetch roster and directory, store them, link accounts to
roster people, compute the window, and bring the event channels in line.
Runs must not overlap; the external scheduler guarantees one at a time.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Awaitable, Callable

from service_notifications.core.channel_sync import (
    DEFAULT_TOPIC_DELAY_SECONDS,
    ChannelLifecycleEngine,
    SyncReport,
)
from service_notifications.core.identity_matcher import MATCH_THRESHOLD, link_accounts
from service_notifications.core.importer import (
    fetch_directory,
    fetch_roster,
    refresh_cutoff,
    store_roster,
)
from service_notifications.core.window import NO_ANCHOR, compute_window

if TYPE_CHECKING:
    from service_notifications.data.db import ChannelDB, DirectoryDB, RosterDB
    from service_notifications.ports.chat_port import ChatPort, DirectoryPort
    from service_notifications.ports.roster_port import RosterPort

logger = logging.getLogger(__name__)


@dataclass
class SyncOptions:
    """Tunable parameters of a run."""

    lookahead: timedelta = timedelta(days=8)
    anchor_weekday: int = NO_ANCHOR
    sticky_accounts: list[str] = field(default_factory=list)
    service_type_ids: list[int] = field(default_factory=list)
    topic_delay: float = DEFAULT_TOPIC_DELAY_SECONDS
    match_threshold: int = MATCH_THRESHOLD


async def run_sync(
    *,
    roster: RosterPort,
    directory: DirectoryPort,
    chat: ChatPort,
    roster_db: RosterDB,
    directory_db: DirectoryDB,
    channel_db: ChannelDB,
    options: SyncOptions | None = None,
    now: datetime | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> SyncReport:
    """Run one full synchronization.

    Raises:
        RosterError / ChatError: the roster or directory could not be
            fetched. Raised before any row is written.
    """
    options = options or SyncOptions()
    now = now or datetime.now(timezone.utc)
    logger.info("Sync run started at %s", now.isoformat())

    cutoff = refresh_cutoff(roster_db, now)
    snapshot = await fetch_roster(roster, options.service_type_ids, cutoff)
    accounts = await fetch_directory(directory)

    store_roster(roster_db, snapshot)

    people = roster_db.list_people()
    for account in link_accounts(accounts, people, options.match_threshold):
        directory_db.upsert_account(account)

    window = compute_window(now, options.lookahead, options.anchor_weekday)
    logger.info("Sync window: %s to %s", window.start.isoformat(), window.end.isoformat())

    engine = ChannelLifecycleEngine(
        chat,
        roster_db,
        directory_db,
        channel_db,
        sticky_accounts=options.sticky_accounts,
        topic_delay=options.topic_delay,
        sleep=sleep,
    )
    return await engine.sync(window)
