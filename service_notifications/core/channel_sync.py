"""
Service Notifications — Channel lifecycle engine.

For every event starting inside the sync window, makes sure a private
channel exists, its topic matches the event, and everyone on the event
has been invited. Channels of events that started before the window are
archived.

Per channel the states are absent → active → archived, with no way back.

Failure policy:
- Event without a service type or without assignments → skipped, logged
- Channel creation failure → event skipped, logged
- Topic/purpose, invite and archive failures → logged, run continues.
  An archive failure still marks the channel archived; a failed invite
  is not recorded, so the next run retries it.
- Channel whose event is missing from the roster → orphaned, logged,
  never archived

This module is provider-agnostic: it depends on the ChatPort protocol.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Awaitable, Callable

from service_notifications.core.channel_names import (
    ChannelNameError,
    allocate_channel_name,
    base_channel_name,
)
from service_notifications.core.invitees import compute_invitees, resolve_assignee_accounts
from service_notifications.data.models import Channel, Event, EventAssignment
from service_notifications.ports.chat_port import ChatError

if TYPE_CHECKING:
    from datetime import datetime

    from service_notifications.core.window import SyncWindow
    from service_notifications.data.db import ChannelDB, DirectoryDB, RosterDB
    from service_notifications.ports.chat_port import ChatPort

logger = logging.getLogger(__name__)

DEFAULT_TOPIC_DELAY_SECONDS = 120.0


@dataclass
class SyncReport:
    """Counters for one synchronization run."""

    created: int = 0
    topics_updated: int = 0
    invited: int = 0
    archived: int = 0
    skipped: int = 0


def compose_topic(service_type_name: str, series_title: str = "", title: str = "") -> str:
    """Build the channel topic, e.g. "Sunday Service - Advent (Week 1)"."""
    topic = service_type_name
    if series_title and title:
        topic += f" - {series_title} ({title})"
    elif title:
        topic += f" - {title}"
    elif series_title:
        topic += f" - {series_title}"
    return topic


class ChannelLifecycleEngine:
    """Creates, refreshes and archives event channels."""

    def __init__(
        self,
        chat: ChatPort,
        roster_db: RosterDB,
        directory_db: DirectoryDB,
        channel_db: ChannelDB,
        sticky_accounts: list[str] | None = None,
        topic_delay: float = DEFAULT_TOPIC_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._chat = chat
        self._roster = roster_db
        self._directory = directory_db
        self._channels = channel_db
        self._sticky = list(sticky_accounts or [])
        self._topic_delay = topic_delay
        self._sleep = sleep
        # Platform channel names, listed once per run on first use.
        self._platform_names: set[str] | None = None

    async def sync(self, window: SyncWindow) -> SyncReport:
        """Process every due event, then archive stale channels."""
        report = SyncReport()
        self._platform_names = None

        events = self._roster.events_starting_between(window.start, window.end)
        if not events:
            logger.info("No events found between %s and %s", window.start, window.end)
        for event in events:
            await self._sync_event(event, report)

        await self.archive_stale(window.start, report)

        logger.info(
            "Channel sync done: %d created, %d topic(s) updated, %d invite(s), "
            "%d archived, %d skipped",
            report.created, report.topics_updated, report.invited,
            report.archived, report.skipped,
        )
        return report

    async def _sync_event(self, event: Event, report: SyncReport) -> None:
        service_type = self._roster.get_service_type(event.service_type_id)
        if service_type is None:
            logger.warning(
                "Unable to find service type %d for event %d",
                event.service_type_id, event.id,
            )
            report.skipped += 1
            return

        assignments = self._roster.assignments_for_event(event.id)
        if not assignments:
            logger.warning("No people assigned to event %d", event.id)
            report.skipped += 1
            return

        topic = compose_topic(service_type.name, event.series_title, event.title)

        channel = self._channels.get_channel_for_event(event.id)
        if channel is None:
            channel = await self._create_channel(event, topic)
            if channel is None:
                report.skipped += 1
                return
            report.created += 1
        elif channel.archived:
            logger.debug("Channel %s for event %d is archived; leaving it", channel.id, event.id)
            return
        elif await self._refresh_topic(channel, topic):
            report.topics_updated += 1

        report.invited += await self._invite(channel, assignments)

    async def _name_taken(self, name: str) -> bool:
        if self._channels.name_exists(name):
            return True
        if self._platform_names is None:
            self._platform_names = await self._chat.list_channel_names()
        return name in self._platform_names

    async def _create_channel(self, event: Event, topic: str) -> Channel | None:
        try:
            name = await allocate_channel_name(
                base_channel_name(event.starts_at), self._name_taken,
            )
            logger.info("Creating channel: %s", name)
            channel_id = await self._chat.create_channel(name, is_private=True)
            if self._platform_names is not None:
                self._platform_names.add(name)
        except (ChannelNameError, ChatError) as exc:
            logger.warning("Failed to create channel for event %d: %s", event.id, exc)
            return None

        if topic:
            # The platform needs time before a new channel accepts a topic.
            await self._sleep(self._topic_delay)
            await self._apply_topic(channel_id, topic)

        return self._channels.add_channel(Channel(
            id=channel_id,
            name=name,
            event_id=event.id,
            starts_at=event.starts_at,
            ends_at=event.ends_at,
            description=topic,
        ))

    async def _apply_topic(self, channel_id: str, topic: str) -> bool:
        """Set topic and purpose; True only if both calls succeeded."""
        ok = True
        try:
            await self._chat.set_topic(channel_id, topic)
        except ChatError as exc:
            logger.error("Failed to set topic on %s: %s", channel_id, exc)
            ok = False
        try:
            await self._chat.set_purpose(channel_id, topic)
        except ChatError as exc:
            logger.error("Failed to set purpose on %s: %s", channel_id, exc)
            ok = False
        return ok

    async def _refresh_topic(self, channel: Channel, topic: str) -> bool:
        if channel.description == topic:
            return False
        if not await self._apply_topic(channel.id, topic):
            return False
        self._channels.set_description(channel.id, topic)
        channel.description = topic
        logger.info("Channel %s topic updated: %s", channel.name, topic)
        return True

    async def _invite(self, channel: Channel, assignments: list[EventAssignment]) -> int:
        assignee_ids = resolve_assignee_accounts(
            assignments, self._directory.accounts_for_person,
        )
        to_invite = compute_invitees(channel.invited, self._sticky, assignee_ids)
        if not to_invite:
            return 0

        try:
            await self._chat.invite_accounts(channel.id, to_invite)
        except ChatError as exc:
            logger.error("Failed to invite users to channel %s: %s", channel.name, exc)
            return 0

        channel.invited = self._channels.add_invited(channel.id, to_invite)
        logger.info("Invited %d user(s) to %s", len(to_invite), channel.name)
        return len(to_invite)

    async def archive_stale(self, before: datetime, report: SyncReport | None = None) -> int:
        """Archive unarchived channels whose event started before `before`."""
        archived = 0
        for channel in self._channels.channels_to_archive(before):
            if self._roster.get_event(channel.event_id) is None:
                logger.warning(
                    "Channel %s has no event %d; leaving it untouched",
                    channel.name, channel.event_id,
                )
                continue
            try:
                await self._chat.archive_channel(channel.id)
            except ChatError as exc:
                logger.error("Error archiving old channel %s: %s", channel.name, exc)
            if self._channels.mark_archived(channel.id):
                archived += 1
                logger.info("Channel archived: %s", channel.name)
        if report is not None:
            report.archived += archived
        return archived
